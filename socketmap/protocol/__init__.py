"""Protocol module for the socketmap server."""

from .commands import Request, RequestFormatError, Response, ResponseStatus
from .netstring import FramingError, decode, encode, read_frame
from .parser import ProtocolParser

__all__ = [
    "Request",
    "RequestFormatError",
    "Response",
    "ResponseStatus",
    "ProtocolParser",
    "FramingError",
    "decode",
    "encode",
    "read_frame",
]
