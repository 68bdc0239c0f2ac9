from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from oscdgram import __version__
from oscdgram.core.artifacts import EventLogger
from oscdgram.core.config import DEFAULT_OPTIONS, load_options_file, merge_options
from oscdgram.core.events import CloseEvent, ErrorEvent, TransportEvent
from oscdgram.core.plugins import SocketStatus, create_transport, list_plugins, load_builtin_plugins


logger = logging.getLogger(__name__)


def _base_options(args: argparse.Namespace) -> dict[str, Any]:
    if args.config is None:
        return {}
    return load_options_file(Path(args.config).resolve())


def _custom_options(args: argparse.Namespace, group: str) -> dict[str, Any]:
    custom: dict[str, Any] = {}
    if args.type is not None:
        custom["type"] = args.type
    if args.routing is not None:
        custom["routing"] = args.routing
    endpoint: dict[str, Any] = {}
    if args.host is not None:
        endpoint["host"] = args.host
    if args.port is not None:
        endpoint["port"] = args.port
    if endpoint:
        custom[group] = endpoint
    if args.multicast_address is not None:
        custom["multicast"] = {"address": args.multicast_address}
    return custom


async def _listen(options: dict[str, Any], duration_s: float | None, recorder: EventLogger) -> None:
    load_builtin_plugins()
    transport = create_transport("dgram", options)
    closed = asyncio.Event()

    def _notify(event: TransportEvent) -> None:
        recorder(event)
        if isinstance(event, CloseEvent):
            closed.set()

    transport.register_notify(_notify)
    transport.open()
    try:
        if duration_s is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration_s)
    finally:
        if transport.status() not in (SocketStatus.CLOSING, SocketStatus.CLOSED):
            transport.close()
        await closed.wait()


def _cmd_listen(args: argparse.Namespace) -> int:
    options = merge_options(DEFAULT_OPTIONS, _base_options(args), _custom_options(args, "open"))
    if args.events is not None:
        recorder = EventLogger(Path(args.events).resolve())
    else:
        recorder = EventLogger(stream=sys.stdout)
    try:
        asyncio.run(_listen(options, args.duration, recorder))
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        recorder.close()
    return 1 if recorder.counts.get("error") else 0


def _cmd_send(args: argparse.Namespace) -> int:
    if args.hex is not None:
        try:
            data = bytes.fromhex(args.hex)
        except ValueError as e:
            args.parser.error(f"invalid --hex payload: {e}")
    else:
        data = Path(args.file).read_bytes()

    options = merge_options(DEFAULT_OPTIONS, _base_options(args), _custom_options(args, "send"))
    load_builtin_plugins()
    transport = create_transport("dgram", options)
    errors: list[BaseException] = []

    def _notify(event: TransportEvent) -> None:
        if isinstance(event, ErrorEvent):
            errors.append(event.error)

    transport.register_notify(_notify)
    transport.send(data)
    transport.close()

    for err in errors:
        print(f"error: {err}", file=sys.stderr)
    if errors:
        return 1
    send = options["send"]
    print(f"sent {len(data)} bytes to {send['host']}:{send['port']}")
    return 0


def _cmd_plugins(_args: argparse.Namespace) -> int:
    load_builtin_plugins()
    print(json.dumps(list_plugins(), ensure_ascii=False, indent=2))
    return 0


def _add_endpoint_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="YAML/JSON options file (base layer)")
    p.add_argument("--type", choices=("udp4", "udp6"), default=None, help="Socket address family")
    p.add_argument("--routing", choices=("unicast", "broadcast", "multicast"), default=None)
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--multicast-address", default=None, help="Multicast group to join")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oscdgram",
        description="oscdgram - UDP transport for OSC hosts",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    listen_p = subparsers.add_parser("listen", help="Bind and record inbound events as JSONL")
    _add_endpoint_args(listen_p)
    listen_p.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Seconds to listen before closing (default: until interrupted)",
    )
    listen_p.add_argument("--events", default=None, help="Write events to this file instead of stdout")
    listen_p.set_defaults(func=_cmd_listen)

    send_p = subparsers.add_parser("send", help="Send one datagram")
    _add_endpoint_args(send_p)
    payload = send_p.add_mutually_exclusive_group(required=True)
    payload.add_argument("--hex", default=None, help="Payload as hex string")
    payload.add_argument("--file", default=None, help="Read payload bytes from file")
    send_p.set_defaults(func=_cmd_send, parser=send_p)

    plugins_p = subparsers.add_parser("plugins", help="List built-in transports")
    plugins_p.set_defaults(func=_cmd_plugins)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))
