"""
Configuration schemas for the datagram transport.

These TypedDicts describe the shape of the option mappings accepted by
``merge_options`` and ``DatagramTransport``. They are documentation and IDE
support only: nothing is validated against them at runtime.
"""

from __future__ import annotations

from typing import Literal, TypedDict


SocketType = Literal["udp4", "udp6"]
Routing = Literal["unicast", "broadcast", "multicast"]


class OpenOptions(TypedDict, total=False):
    """Bind options used by ``open()``."""
    host: str  # Default: "localhost"
    port: int  # Default: 41234
    exclusive: bool  # Default: False (SO_REUSEADDR is set)


class SendOptions(TypedDict, total=False):
    """Destination options used by ``send()``."""
    host: str  # Default: "localhost"
    port: int  # Default: 41235
    routing: Routing  # Default: top-level routing


class MulticastOptions(TypedDict, total=False):
    """Multicast socket options, applied when routing is multicast."""
    ttl: int  # Default: 1
    loopback: bool  # Default: False
    address: str | None  # Group address, required for multicast
    interface: str | None  # Local interface address, None for any


class DatagramOptions(TypedDict, total=False):
    """Top-level configuration for the datagram transport."""
    type: SocketType  # Default: "udp4"
    routing: Routing  # Default: "unicast"
    open: OpenOptions
    send: SendOptions
    multicast: MulticastOptions
