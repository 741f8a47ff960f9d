#!/usr/bin/env python3
"""
cli.py – small command-line helper for LED controllers

- ``decode``: run a captured WebSocket read (hex) through the frame
  extractor and message scanner and print the decoded JSON objects
- ``commands``: fetch (or load) the field structure and print the
  generated command list and widget table
- ``watch``: connect to ``/ws`` and print readings as they arrive
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any

from .api import async_fetch_structure
from .errors import LEDControllerError, NetworkError
from .projector import ReadingProjector
from .schema import SchemaRegistry
from .websocket import WebSocketChannel, decode_messages, extract_frame_payload
from .widgets import build_command_list, build_widget_table

# ----------------- helpers -----------------


def parse_hex(text: str) -> bytes:
    """Accept ``81 0f 7b ...``, ``810f7b...`` or ``\\x81\\x0f...``."""

    cleaned = text.replace("\\x", "").replace(":", "").replace(" ", "").strip()
    return bytes.fromhex(cleaned)


def split_host(target: str, default_port: int = 80) -> tuple[str, int]:
    host, _, port = target.partition(":")
    return host, int(port) if port else default_port


def _load_structure(args: argparse.Namespace) -> Any:
    if args.file:
        with open(args.file, encoding="utf-8") as fh:
            return json.load(fh)
    host, port = split_host(args.target)
    return asyncio.run(async_fetch_structure(host, port, args.timeout))


# ----------------- sub-commands -----------------


def do_decode(args: argparse.Namespace) -> int:
    data = parse_hex(args.hex)
    text = extract_frame_payload(data)
    print(f"payload: {text!r}")
    for message in decode_messages(text, on_error=lambda err: print(f"[drop] {err}")):
        print(json.dumps(message))
    return 0


def do_commands(args: argparse.Namespace) -> int:
    registry = SchemaRegistry()
    registry.rebuild(_load_structure(args))

    print("== sections ==")
    for section in registry.sections:
        print(f"  {section.name} ({section.label})")
    print("== commands ==")
    print("  " + " ".join(build_command_list(registry)))
    print("== widgets ==")
    for command, widget in build_widget_table(registry).items():
        print(f"  {command:<24} {widget or '-'}")
    return 0


def do_watch(args: argparse.Namespace) -> int:
    host, port = split_host(args.target)
    registry = SchemaRegistry()
    if args.file:
        registry.rebuild(_load_structure(args))
    projector = ReadingProjector(registry)

    channel = WebSocketChannel(host, port)
    channel.connect(timeout=args.timeout)
    print(f"connected to ws://{host}:{port}/ws; Ctrl-C to stop")
    try:
        while True:
            data = channel.read()
            if data:
                for message in decode_messages(extract_frame_payload(data)):
                    for reading in projector.project(message, timestamp_reading=None):
                        print(f"[reading] {reading.name} = {reading.value}")
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    except NetworkError as err:
        print(f"[event] connection lost: {err}")
        return 1
    finally:
        channel.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    ap = argparse.ArgumentParser(description="LED controller CLI")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_decode = sub.add_parser("decode", help="decode a captured WebSocket read")
    p_decode.add_argument("hex", help="captured bytes as hex")
    p_decode.set_defaults(func=do_decode)

    p_cmds = sub.add_parser("commands", help="print commands generated from the field structure")
    p_cmds.add_argument("target", nargs="?", default="", help="controller IP[:PORT]")
    p_cmds.add_argument("--file", help="read the /all response from a file instead")
    p_cmds.add_argument("--timeout", type=float, default=5)
    p_cmds.set_defaults(func=do_commands)

    p_watch = sub.add_parser("watch", help="print readings pushed over the WebSocket")
    p_watch.add_argument("target", help="controller IP[:PORT]")
    p_watch.add_argument("--file", help="field structure used to format readings")
    p_watch.add_argument("--timeout", type=float, default=5)
    p_watch.add_argument("--interval", type=float, default=1.0)
    p_watch.set_defaults(func=do_watch)

    args = ap.parse_args(argv)
    if args.cmd == "commands" and not (args.target or args.file):
        ap.error("commands needs a target or --file")

    try:
        return args.func(args)
    except LEDControllerError as err:
        print(f"error: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
