from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from oscdgram.core.errors import ConfigError


GROUPS = ("open", "send", "multicast")

DEFAULT_OPEN_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "host": "localhost",
        "port": 41234,
        "exclusive": False,
    }
)

# send.routing is not listed: it mirrors the merged top-level routing.
DEFAULT_SEND_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "host": "localhost",
        "port": 41235,
    }
)

DEFAULT_MULTICAST_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "ttl": 1,
        "loopback": False,
        "address": None,
        "interface": None,
    }
)

DEFAULT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "type": "udp4",
        "routing": "unicast",
        "open": DEFAULT_OPEN_OPTIONS,
        "send": DEFAULT_SEND_OPTIONS,
        "multicast": DEFAULT_MULTICAST_OPTIONS,
    }
)


def _group(layer: Mapping[str, Any] | None, name: str) -> Mapping[str, Any]:
    if not layer:
        return {}
    value = layer.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Invalid config: {name} must be a mapping")
    return value


def merge_options(
    defaults: Mapping[str, Any] = DEFAULT_OPTIONS,
    base: Mapping[str, Any] | None = None,
    custom: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Merge ``custom`` over ``base`` over ``defaults``.

    Top-level keys are last-writer-wins. The ``open``, ``send`` and
    ``multicast`` groups are merged key by key so that overriding one field
    keeps the defaults of its siblings. Values are not validated.

    The result is a fresh dict; none of the inputs are mutated.
    """
    merged: dict[str, Any] = {**defaults, **(base or {}), **(custom or {})}
    for name in GROUPS:
        merged[name] = {
            **_group(defaults, name),
            **_group(base, name),
            **_group(custom, name),
        }
    merged["send"].setdefault("routing", merged.get("routing"))
    return merged


def merge_group(stored: Mapping[str, Any], overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Per-call options: ``overrides`` on top of one stored group."""
    return {**stored, **(overrides or {})}


def load_options_file(path: Path) -> dict[str, Any]:
    """Load a YAML or JSON options file for use as the ``base`` layer."""
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise ConfigError(f"Unsupported config file type: {path.name}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config: {path.name} must contain a mapping")
    return data
