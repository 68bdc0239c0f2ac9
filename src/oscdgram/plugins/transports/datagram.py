from __future__ import annotations

import asyncio
import logging
import socket
import struct
from types import MappingProxyType
from typing import Any, Callable, Mapping

from oscdgram.core.config import DEFAULT_OPTIONS, merge_group, merge_options
from oscdgram.core.errors import CapabilityError, ConfigError, MisuseError, SocketError
from oscdgram.core.events import (
    CloseEvent,
    ErrorEvent,
    MessageEvent,
    NotifyBridge,
    OpenEvent,
    RemoteInfo,
)
from oscdgram.core.plugins import SocketStatus, Transport, register_transport
from oscdgram.core.schemas import DatagramOptions, OpenOptions, SendOptions


logger = logging.getLogger(__name__)

_FAMILIES: dict[str, int] = {"udp4": socket.AF_INET, "udp6": socket.AF_INET6}

# Failures the socket API raises for unusable hosts/ports; reported as error events.
_SOCKET_FAILURES = (OSError, OverflowError, TypeError, ValueError)

SocketFactory = Callable[[int, int], socket.socket]


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: "DatagramTransport") -> None:
        self._owner = owner

    def _attached(self) -> bool:
        return self._owner._protocol is self

    def datagram_received(self, data: bytes, addr: tuple[Any, ...]) -> None:
        if self._attached():
            self._owner._on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        if self._attached():
            self._owner._on_error("socket", exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if self._attached():
            self._owner._on_closed(exc)


class DatagramTransport(NotifyBridge, Transport):
    """
    UDP transport for an OSC host.

    The socket is created and its routing flags applied in the constructor.
    ``open()`` and ``close()`` return immediately; completion is reported
    through the notify callback as ``OpenEvent`` / ``CloseEvent``. Runtime
    socket failures are reported as ``ErrorEvent`` and never raised.
    ``open()`` needs an event loop (the ``loop`` argument or the running loop);
    without one it reports an ``ErrorEvent`` for operation ``"open"``.

    Destination hostnames are resolved on first use and cached for the life of
    the transport, so only the first ``send()`` to a new name blocks on lookup.

    Status walks NOT_INITIALIZED -> CONNECTING -> OPEN -> CLOSING -> CLOSED.
    Out-of-sequence calls are not rejected unless ``strict=True``.
    """

    def __init__(
        self,
        options: DatagramOptions | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        strict: bool = False,
        socket_factory: SocketFactory = socket.socket,
    ) -> None:
        super().__init__()
        self._options = merge_options(DEFAULT_OPTIONS, {}, options)
        self._loop = loop
        self._strict = strict
        self._transport: asyncio.DatagramTransport | None = None
        self._bind_task: asyncio.Task[None] | None = None
        self._protocol: _DatagramProtocol | None = None
        self._destinations: dict[Any, tuple[Any, ...]] = {}

        sock_type = self._options["type"]
        family = _FAMILIES.get(sock_type)
        if family is None:
            raise ConfigError(f"Unsupported socket type: {sock_type!r}")
        if self._options["routing"] == "multicast" and not self._options["multicast"].get("address"):
            raise ConfigError("multicast routing requires multicast.address")
        self._family = family
        self._family_name = "IPv6" if family == socket.AF_INET6 else "IPv4"

        try:
            sock = socket_factory(family, socket.SOCK_DGRAM)
        except OSError as e:
            raise CapabilityError(f"UDP sockets are not available ({sock_type}): {e}") from e

        send_routing = self._options["send"]["routing"]
        try:
            if send_routing in ("broadcast", "multicast"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                if send_routing == "multicast":
                    self._apply_multicast_options(sock)
        except OSError as e:
            sock.close()
            raise SocketError.wrap("configure", e) from e

        self._sock = sock
        self._status = SocketStatus.NOT_INITIALIZED
        logger.debug("datagram socket created (type=%s, routing=%s)", sock_type, send_routing)

    @property
    def options(self) -> Mapping[str, Any]:
        return MappingProxyType(self._options)

    def _apply_multicast_options(self, sock: socket.socket) -> None:
        mcast = self._options["multicast"]
        ttl = int(mcast["ttl"])
        loop_flag = 1 if mcast["loopback"] else 0
        if self._family == socket.AF_INET:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, loop_flag)
        else:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, ttl)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_LOOP, loop_flag)

    def _add_membership(self) -> None:
        mcast = self._options["multicast"]
        group = str(mcast["address"])
        iface = mcast.get("interface")
        if self._family == socket.AF_INET:
            mreq = socket.inet_aton(group) + socket.inet_aton(str(iface or "0.0.0.0"))
            self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        else:
            ifindex = socket.if_nametoindex(str(iface)) if iface else 0
            mreq = socket.inet_pton(socket.AF_INET6, group) + struct.pack("@I", ifindex)
            self._sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)
        logger.info("joined multicast group %s", group)

    def status(self) -> SocketStatus:
        return self._status

    def local_address(self) -> tuple[str, int] | None:
        """Bound ``(host, port)``, or None while the socket is unbound or closed."""
        try:
            name = self._sock.getsockname()
        except OSError:
            return None
        if not name or int(name[1]) == 0:
            return None
        return str(name[0]), int(name[1])

    def open(self, options: OpenOptions | None = None) -> None:
        if self._strict and self._status is not SocketStatus.NOT_INITIALIZED:
            raise MisuseError(f"open() called while {self._status.name}")

        opts = merge_group(self._options["open"], options)
        loop = self._loop or _running_loop()
        if loop is None:
            self._on_error("open", SocketError("open", "no running event loop"))
            return

        self._status = SocketStatus.CONNECTING

        if self._options["routing"] == "multicast":
            try:
                self._add_membership()
            except _SOCKET_FAILURES as e:
                self._on_error("add_membership", e)
                return

        self._bind_task = loop.create_task(self._bind(loop, opts))

    def _make_protocol(self) -> _DatagramProtocol:
        self._protocol = _DatagramProtocol(self)
        return self._protocol

    async def _bind(self, loop: asyncio.AbstractEventLoop, opts: Mapping[str, Any]) -> None:
        host = opts.get("host") or ("::" if self._family != socket.AF_INET else "0.0.0.0")
        port = opts.get("port")
        try:
            infos = await loop.getaddrinfo(
                host,
                None,
                family=self._family,
                type=socket.SOCK_DGRAM,
                flags=socket.AI_PASSIVE,
            )
            # Port range checks are left to bind().
            resolved = infos[0][4]
            address = (resolved[0], port, *resolved[2:])
            if not opts.get("exclusive", False):
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind(address)
            transport, _protocol = await loop.create_datagram_endpoint(
                self._make_protocol,
                sock=self._sock,
            )
        except _SOCKET_FAILURES as e:
            self._on_error("bind", e)
            return

        self._transport = transport
        self._status = SocketStatus.OPEN
        logger.info("datagram socket bound to %s:%s", address[0], address[1])
        self.notify(OpenEvent())

    def close(self) -> None:
        if self._status in (SocketStatus.CLOSING, SocketStatus.CLOSED):
            if self._strict:
                raise MisuseError(f"close() called while {self._status.name}")
            self._on_error("close", SocketError("close", "socket is not running"))
            return

        self._status = SocketStatus.CLOSING

        if self._bind_task is not None and not self._bind_task.done():
            # Anything the cancelled bind created is detached and torn down by asyncio.
            self._protocol = None
            self._bind_task.cancel()
            self._bind_task.add_done_callback(self._on_bind_cancelled)
            return

        if self._transport is not None:
            # connection_lost() completes the close.
            self._transport.close()
            return

        self._sock.close()
        loop = self._loop or _running_loop()
        if loop is None:
            self._on_closed(None)
        else:
            loop.call_soon(self._on_closed, None)

    def send(self, binary: bytes, options: SendOptions | None = None) -> None:
        if self._strict and self._status is not SocketStatus.OPEN:
            raise MisuseError(f"send() called while {self._status.name}")

        opts = merge_group(self._options["send"], options)
        data = bytes(binary)
        try:
            self._sock.sendto(data, self._destination(opts.get("host"), opts.get("port")))
        except _SOCKET_FAILURES as e:
            self._on_error("send", e)

    def _destination(self, host: Any, port: Any) -> tuple[Any, ...]:
        resolved = self._destinations.get(host)
        if resolved is None:
            infos = socket.getaddrinfo(host, None, self._family, socket.SOCK_DGRAM)
            resolved = infos[0][4]
            self._destinations[host] = resolved
        # Port range checks are left to sendto().
        return (resolved[0], port, *resolved[2:])

    def _on_datagram(self, data: bytes, addr: tuple[Any, ...]) -> None:
        remote = RemoteInfo(
            address=str(addr[0]),
            family=self._family_name,
            port=int(addr[1]),
            size=len(data),
        )
        self.notify(MessageEvent(payload=bytes(data), remote=remote))

    def _on_error(self, operation: str, err: BaseException) -> None:
        error = err if isinstance(err, SocketError) else SocketError.wrap(operation, err)
        logger.warning("datagram %s failed: %s", operation, error)
        self.notify(ErrorEvent(error))

    def _on_bind_cancelled(self, _task: asyncio.Task[None]) -> None:
        self._sock.close()
        self._on_closed(None)

    def _on_closed(self, exc: Exception | None) -> None:
        if exc is not None:
            self._on_error("connection_lost", exc)
        self._transport = None
        self._status = SocketStatus.CLOSED
        logger.info("datagram socket closed")
        self.notify(CloseEvent())


@register_transport("dgram")
def dgram_transport(config: Mapping[str, Any]) -> Transport:
    return DatagramTransport(config)
