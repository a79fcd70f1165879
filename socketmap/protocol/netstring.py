"""
Netstring Framing Module

Socketmap requests and replies travel as netstrings:

    <decimal length>:<payload bytes>,

The length is the exact byte count of the payload, so the payload is never
scanned for delimiters and may contain ':' or ',' freely.

Two readers share the same rules:
- decode(): reads one frame from a blocking binary stream (file, socket.makefile)
- read_frame(): reads one frame from an asyncio StreamReader
"""

import asyncio
from typing import BinaryIO, Optional

from ..config.settings import settings

LENGTH_DELIMITER = b":"
TERMINATOR = b","


class FramingError(ValueError):
    """Raised when the byte stream does not hold a well-formed netstring."""


def encode(payload: bytes) -> bytes:
    """
    Encode a payload as a netstring.

    Examples:
        >>> encode(b"hello")
        b'5:hello,'
        >>> encode(b"")
        b'0:,'
    """
    return str(len(payload)).encode("ascii") + LENGTH_DELIMITER + payload + TERMINATOR


def _max_prefix_digits(max_length: int) -> int:
    return len(str(max_length))


def _parse_length(prefix: bytes, max_length: int) -> int:
    """
    Validate a length prefix (without the ':') and return it as an int.

    Raises:
        FramingError: If the prefix is not a non-negative decimal integer
            or exceeds max_length
    """
    if not prefix or not prefix.isdigit():
        raise FramingError(f"invalid length prefix: {prefix[:16]!r}")

    length = int(prefix)
    if length > max_length:
        raise FramingError(f"frame length {length} exceeds limit of {max_length}")
    return length


def _check_terminator(terminator: bytes) -> None:
    if terminator != TERMINATOR:
        raise FramingError(f"expected {TERMINATOR!r} after payload, got {terminator!r}")


def _read_exactly(stream: BinaryIO, count: int) -> bytes:
    """Read exactly count bytes, looping over short reads."""
    buf = bytearray()
    while len(buf) < count:
        chunk = stream.read(count - len(buf))
        if not chunk:
            raise FramingError(
                f"stream ended after {len(buf)} of {count} payload bytes"
            )
        buf.extend(chunk)
    return bytes(buf)


def _extend_prefix(prefix: bytearray, byte: bytes, max_digits: int) -> None:
    """Append one length-prefix byte, rejecting non-digits as soon as they arrive."""
    if not byte.isdigit():
        raise FramingError(f"invalid length prefix: {bytes(prefix[:16]) + byte!r}")
    prefix.extend(byte)
    if len(prefix) > max_digits:
        raise FramingError(f"length prefix too long: {bytes(prefix[:16])!r}")


def decode(stream: BinaryIO, max_length: int = None) -> bytes:
    """
    Read one netstring from a blocking binary stream.

    Args:
        stream: Any object with a read(n) method returning bytes
        max_length: Largest accepted payload (default from settings)

    Returns:
        The payload bytes (possibly empty)

    Raises:
        EOFError: If the stream is closed before the first byte of a frame
        FramingError: If the frame is malformed or truncated

    Examples:
        >>> import io
        >>> decode(io.BytesIO(b"5:hello,"))
        b'hello'
    """
    if max_length is None:
        max_length = settings.MAX_FRAME_LENGTH
    max_digits = _max_prefix_digits(max_length)

    prefix = bytearray()
    while True:
        byte = stream.read(1)
        if not byte:
            if not prefix:
                raise EOFError("stream closed before a frame started")
            raise FramingError("stream ended inside the length prefix")
        if byte == LENGTH_DELIMITER:
            break
        _extend_prefix(prefix, byte, max_digits)

    length = _parse_length(bytes(prefix), max_length)
    payload = _read_exactly(stream, length)

    terminator = stream.read(1)
    if not terminator:
        raise FramingError("stream ended before the terminator")
    _check_terminator(terminator)
    return payload


async def read_frame(reader: asyncio.StreamReader, max_length: int = None) -> Optional[bytes]:
    """
    Read one netstring from an asyncio stream.

    Args:
        reader: The connection's StreamReader
        max_length: Largest accepted payload (default from settings)

    Returns:
        The payload bytes (possibly empty), or None if the peer closed the
        connection cleanly between frames.

    Raises:
        FramingError: If the frame is malformed or truncated
    """
    if max_length is None:
        max_length = settings.MAX_FRAME_LENGTH
    max_digits = _max_prefix_digits(max_length)

    # Bytewise prefix read: non-digits are rejected on arrival
    prefix = bytearray()
    while True:
        try:
            byte = await reader.readexactly(1)
        except asyncio.IncompleteReadError as exc:
            if not prefix:
                return None
            raise FramingError("stream ended inside the length prefix") from exc
        if byte == LENGTH_DELIMITER:
            break
        _extend_prefix(prefix, byte, max_digits)

    length = _parse_length(bytes(prefix), max_length)

    try:
        # readexactly keeps reading until the full count arrives or EOF
        payload = await reader.readexactly(length)
    except asyncio.IncompleteReadError as exc:
        raise FramingError(
            f"stream ended after {len(exc.partial)} of {length} payload bytes"
        ) from exc

    try:
        terminator = await reader.readexactly(1)
    except asyncio.IncompleteReadError as exc:
        raise FramingError("stream ended before the terminator") from exc
    _check_terminator(terminator)
    return payload
