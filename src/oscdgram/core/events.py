from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Union


@dataclass(frozen=True)
class RemoteInfo:
    address: str
    family: str
    port: int
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "family": self.family, "port": self.port, "size": self.size}


@dataclass(frozen=True)
class OpenEvent:
    name: ClassVar[str] = "open"

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name}


@dataclass(frozen=True)
class CloseEvent:
    name: ClassVar[str] = "close"

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name}


@dataclass(frozen=True)
class ErrorEvent:
    error: BaseException
    name: ClassVar[str] = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, "error": str(self.error), "error_type": type(self.error).__name__}


@dataclass(frozen=True)
class MessageEvent:
    payload: bytes
    remote: RemoteInfo
    name: ClassVar[str] = "message"

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, "data_hex": self.payload.hex(), "remote": self.remote.to_dict()}


TransportEvent = Union[OpenEvent, CloseEvent, ErrorEvent, MessageEvent]
NotifyCallback = Callable[[TransportEvent], None]


def _noop(_event: TransportEvent) -> None:
    return None


class NotifyBridge:
    """
    Single-subscriber callback slot.

    ``register_notify`` replaces the current callback; there is never more
    than one. Until a callback is registered, events are dropped.
    """

    def __init__(self) -> None:
        self._notify: NotifyCallback = _noop

    def register_notify(self, callback: NotifyCallback) -> None:
        self._notify = callback

    def notify(self, event: TransportEvent) -> None:
        self._notify(event)


def legacy_notify(fn: Callable[..., Any]) -> NotifyCallback:
    """
    Adapt an old-style callback to tagged events.

    The wrapped ``fn`` receives ``("open")``, ``("close")``,
    ``("error", exc)`` or ``(payload, remote)`` for inbound datagrams.
    """

    def _dispatch(event: TransportEvent) -> None:
        if isinstance(event, MessageEvent):
            fn(event.payload, event.remote)
        elif isinstance(event, ErrorEvent):
            fn("error", event.error)
        else:
            fn(event.name)

    return _dispatch
