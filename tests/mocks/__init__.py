"""
Mock implementations for testing.

These stand in for the OS socket and the host's notify callback so the
transport can be exercised without binding real ports:
- FakeSocket records every socket option and call made on it
- RecordingNotify collects the events a transport emits
"""

from __future__ import annotations

import asyncio
import errno
import socket
from typing import Any

from oscdgram.core.events import TransportEvent


class FakeSocket:
    """
    Socket stand-in for ``DatagramTransport(socket_factory=...)``.

    Usage:
        sockets = []
        transport = DatagramTransport(opts, socket_factory=FakeSocket.factory(sockets))
        assert (socket.SOL_SOCKET, socket.SO_BROADCAST, 1) in sockets[0].options
    """

    def __init__(self, family: int, type_: int, *, fail_on: set[int] | None = None) -> None:
        self.family = family
        self.type = type_
        self.options: list[tuple[int, int, Any]] = []
        self.sent: list[tuple[bytes, tuple[Any, ...]]] = []
        self.bound: tuple[Any, ...] | None = None
        self.closed = False
        self._fail_on = fail_on or set()

    @classmethod
    def factory(cls, created: list["FakeSocket"], *, fail_on: set[int] | None = None):
        def _create(family: int, type_: int) -> "FakeSocket":
            sock = cls(family, type_, fail_on=fail_on)
            created.append(sock)
            return sock

        return _create

    def _check_open(self) -> None:
        if self.closed:
            raise OSError(errno.EBADF, "Bad file descriptor")

    def setsockopt(self, level: int, option: int, value: Any) -> None:
        self._check_open()
        if option in self._fail_on:
            raise OSError(errno.ENOPROTOOPT, "Protocol not available")
        self.options.append((level, option, value))

    def option_names(self) -> set[int]:
        return {opt for _level, opt, _value in self.options}

    def bind(self, address: tuple[Any, ...]) -> None:
        self._check_open()
        self.bound = address

    def getsockname(self) -> tuple[Any, ...]:
        self._check_open()
        return self.bound or ("0.0.0.0", 0)

    def sendto(self, data: bytes, address: tuple[Any, ...]) -> int:
        self._check_open()
        self.sent.append((bytes(data), address))
        return len(data)

    def close(self) -> None:
        self.closed = True


class RecordingNotify:
    """
    Notify callback that keeps every event it receives.

    Usage:
        events = RecordingNotify()
        transport.register_notify(events)
        transport.open()
        await events.wait_for("open")
        assert events.count("open") == 1
    """

    def __init__(self) -> None:
        self.events: list[TransportEvent] = []

    def __call__(self, event: TransportEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def of(self, name: str) -> list[TransportEvent]:
        return [e for e in self.events if e.name == name]

    async def wait_for(self, name: str, *, count: int = 1, timeout_s: float = 2.0) -> None:
        async def _poll() -> None:
            while self.count(name) < count:
                await asyncio.sleep(0.005)

        await asyncio.wait_for(_poll(), timeout_s)


def udp_receiver(host: str = "127.0.0.1") -> socket.socket:
    """Plain UDP socket bound to an ephemeral port, with a 2s timeout."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((host, 0))
    sock.settimeout(2.0)
    return sock
