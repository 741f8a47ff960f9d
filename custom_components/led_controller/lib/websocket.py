"""Minimal WebSocket reader for the controller's ``/ws`` status stream.

The controller pushes unmasked text frames (opcode ``0x81``) whose payload is
one or more JSON objects, concatenated without delimiters and frequently
padded with stray control bytes. Reads are polled from the host loop, so a
single ``recv`` may hold a whole frame, several frames, or only part of one.

Decoding happens in three steps:

1. :func:`extract_frame_payload` strips the frame envelope (when it is
   complete) and any non-printable noise.
2. :class:`MessageScanner` walks the cleaned text and yields every
   balanced ``{...}`` span.
3. :func:`decode_messages` runs ``json.loads`` on each span and keeps the
   objects.

Nothing is carried over between reads: a message split across two reads is
lost.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import socket
import struct
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from .errors import DecodeError, FrameError, NetworkError

_LOGGER = logging.getLogger(__name__)

OP_TEXT_FRAME = 0x81
LEN_16BIT = 126
LEN_64BIT = 127

READ_CHUNK = 1024
_WHITESPACE = frozenset(b"\t\n\x0b\x0c\r")


def _is_clean_byte(b: int) -> bool:
    return 0x20 <= b <= 0x7E or b in _WHITESPACE


def parse_frame_header(data: bytes) -> tuple[int, int]:
    """Return ``(payload_offset, payload_length)`` for a text frame.

    Raises :class:`FrameError` when ``data`` does not start with a complete
    text-frame header or does not yet hold the declared payload.
    """

    if len(data) < 2 or data[0] != OP_TEXT_FRAME:
        raise FrameError("not a text frame")

    code = data[1] & 0x7F
    if code < LEN_16BIT:
        offset, length = 2, code
    elif code == LEN_16BIT:
        if len(data) < 4:
            raise FrameError("truncated 16-bit length")
        offset, length = 4, struct.unpack(">H", data[2:4])[0]
    else:
        if len(data) < 10:
            raise FrameError("truncated 64-bit length")
        offset, length = 10, struct.unpack(">Q", data[2:10])[0]

    if len(data) < offset + length:
        raise FrameError(f"frame declares {length} bytes, {len(data) - offset} present")
    return offset, length


def unwrap_frame(data: bytes) -> bytes:
    """Return the payload of a complete text frame, else ``data`` unchanged."""

    try:
        offset, length = parse_frame_header(data)
    except FrameError as err:
        if data[:1] == bytes([OP_TEXT_FRAME]):
            _LOGGER.debug("Treating buffer as raw text: %s", err)
        return data
    return data[offset : offset + length]


def clean_payload(data: bytes) -> str:
    """Drop every byte outside printable ASCII and common whitespace."""

    if not all(_is_clean_byte(b) for b in data):
        data = bytes(b for b in data if _is_clean_byte(b))
    return data.decode("ascii")


def extract_frame_payload(data: bytes) -> str:
    """Unwrap one socket read into printable text. Never raises."""

    return clean_payload(unwrap_frame(data))


class _ScanState(Enum):
    SEARCHING = "searching"
    IN_OBJECT = "in_object"


class MessageScanner:
    """Yield balanced ``{...}`` substrings of ``text`` in order.

    Braces inside JSON strings are not special-cased. Scanning stops at the
    first object whose depth never returns to zero. The scanner is a one-shot
    iterator.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._done = False

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self._done:
            raise StopIteration

        text = self._text
        state = _ScanState.SEARCHING
        start = depth = 0
        i = self._pos
        while i < len(text):
            ch = text[i]
            if state is _ScanState.SEARCHING:
                if ch == "{":
                    state = _ScanState.IN_OBJECT
                    start, depth = i, 1
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    self._pos = i + 1
                    return text[start : i + 1]
            i += 1

        # no opening brace left, or an unterminated tail
        self._done = True
        raise StopIteration


def decode_messages(
    text: str,
    on_error: Optional[Callable[[DecodeError], None]] = None,
) -> list[dict[str, Any]]:
    """Decode every JSON object found in ``text``.

    Candidates that fail to decode (or decode to something other than an
    object) are handed to ``on_error`` and skipped.
    """

    messages: list[dict[str, Any]] = []
    for candidate in MessageScanner(text):
        try:
            decoded = json.loads(candidate)
        except ValueError as err:
            failure = DecodeError(candidate, str(err))
        else:
            if isinstance(decoded, dict):
                messages.append(decoded)
                continue
            failure = DecodeError(candidate, "not a JSON object")

        _LOGGER.debug("Dropping WebSocket candidate: %s", failure)
        if on_error is not None:
            on_error(failure)
    return messages


class WebSocketChannel:
    """Raw TCP socket speaking just enough WebSocket to receive updates."""

    def __init__(self, host: str, port: int, path: str = "/ws") -> None:
        self.host = host
        self.port = int(port)
        self.path = path
        self._sock: Optional[socket.socket] = None
        self._pending = b""

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self, timeout: float = 5.0) -> None:
        """Open the socket and perform the upgrade handshake (blocking)."""

        key = base64.b64encode(os.urandom(16)).decode("ascii")
        request = (
            f"GET {self.path} HTTP/1.1\r\n"
            f"Host: {self.host}:{self.port}\r\n"
            "Upgrade: websocket\r\n"
            "Connection: Upgrade\r\n"
            f"Sec-WebSocket-Key: {key}\r\n"
            "Sec-WebSocket-Version: 13\r\n\r\n"
        )

        try:
            sock = socket.create_connection((self.host, self.port), timeout=timeout)
        except OSError as err:
            raise NetworkError(f"Could not connect to {self.host}:{self.port}: {err}") from err

        try:
            sock.sendall(request.encode("ascii"))
            response = b""
            while b"\r\n\r\n" not in response:
                chunk = sock.recv(READ_CHUNK)
                if not chunk:
                    break
                response += chunk
        except OSError as err:
            sock.close()
            raise NetworkError(f"WebSocket handshake failed: {err}") from err

        head, _, rest = response.partition(b"\r\n\r\n")
        status_line = head.split(b"\r\n", 1)[0]
        if not status_line.startswith(b"HTTP/1.1 101"):
            sock.close()
            raise NetworkError(
                f"WebSocket handshake rejected: {status_line.decode('ascii', 'replace')!r}"
            )

        sock.setblocking(False)
        self._sock = sock
        self._pending = rest
        _LOGGER.debug("WebSocket connected to %s:%s%s", self.host, self.port, self.path)

    def read(self) -> bytes:
        """Return whatever is available without blocking (possibly ``b""``).

        Raises :class:`NetworkError` when the peer closed the connection or
        the socket failed; the channel is closed in that case.
        """

        if self._sock is None:
            raise NetworkError("WebSocket is not connected")

        if self._pending:
            data, self._pending = self._pending, b""
            return data

        try:
            chunk = self._sock.recv(READ_CHUNK)
        except (BlockingIOError, InterruptedError):
            return b""
        except OSError as err:
            self.close()
            raise NetworkError(f"WebSocket read failed: {err}") from err

        if not chunk:
            self.close()
            raise NetworkError("WebSocket closed by peer")
        return chunk

    def close(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError:
            pass
        self._sock = None
        self._pending = b""


__all__ = [
    "MessageScanner",
    "WebSocketChannel",
    "clean_payload",
    "decode_messages",
    "extract_frame_payload",
    "parse_frame_header",
    "unwrap_frame",
]
