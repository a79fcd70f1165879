"""
Socketmap Request and Response Definitions

This module defines the data structures exchanged between the protocol
layer and the request dispatcher.
"""

from dataclasses import dataclass
from enum import Enum


class RequestFormatError(ValueError):
    """Raised when a request is not exactly '<table> <key>'."""


class ResponseStatus(Enum):
    """Socketmap reply statuses as they appear on the wire."""
    OK = "OK"
    NOTFOUND = "NOTFOUND"
    TEMP = "TEMP"
    PERM = "PERM"


@dataclass(frozen=True)
class Request:
    """
    Represents a parsed socketmap lookup.

    Attributes:
        table: Name of the lookup table (e.g. 'user-exists')
        key: The lookup key (an address or a domain)
        raw: The decoded request text as received
    """
    table: str
    key: str
    raw: str = ""


@dataclass(frozen=True)
class Response:
    """
    Represents a socketmap reply.

    Attributes:
        status: OK, NOTFOUND, TEMP or PERM
        value: The found value for OK, the reason for TEMP and PERM,
            empty otherwise
    """
    status: ResponseStatus
    value: str = ""

    @classmethod
    def found(cls, value: str = "") -> "Response":
        """Create an OK response; an empty value renders as a bare 'OK'."""
        return cls(status=ResponseStatus.OK, value=value)

    @classmethod
    def not_found(cls) -> "Response":
        return cls(status=ResponseStatus.NOTFOUND)

    @classmethod
    def temp(cls, message: str) -> "Response":
        """Create a temporary failure; the MTA will retry later."""
        return cls(status=ResponseStatus.TEMP, value=message)

    @classmethod
    def perm(cls, message: str) -> "Response":
        """Create a permanent failure."""
        return cls(status=ResponseStatus.PERM, value=message)
