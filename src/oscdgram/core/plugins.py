from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Callable, Mapping

from oscdgram.core.events import NotifyCallback


class SocketStatus(IntEnum):
    NOT_INITIALIZED = -1
    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class Transport(ABC):
    @abstractmethod
    def open(self, options: Mapping[str, Any] | None = None) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def send(self, binary: bytes, options: Mapping[str, Any] | None = None) -> None: ...

    @abstractmethod
    def status(self) -> SocketStatus: ...

    @abstractmethod
    def register_notify(self, callback: NotifyCallback) -> None: ...


TransportFactory = Callable[[Mapping[str, Any]], Transport]

_TRANSPORTS: dict[str, TransportFactory] = {}


def register_transport(name: str) -> Callable[[TransportFactory], TransportFactory]:
    def _decorator(factory: TransportFactory) -> TransportFactory:
        _TRANSPORTS[name] = factory
        return factory

    return _decorator


def create_transport(transport_type: str, config: Mapping[str, Any] | None = None) -> Transport:
    if transport_type not in _TRANSPORTS:
        raise KeyError(f"Unknown transport type: {transport_type}")
    return _TRANSPORTS[transport_type](config or {})


def load_builtin_plugins() -> None:
    # Import for side-effects (registration).
    from oscdgram.plugins import transports as _transports  # noqa: F401


def list_plugins() -> dict[str, list[str]]:
    return {"transports": sorted(_TRANSPORTS.keys())}
