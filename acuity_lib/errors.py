"""Custom exceptions for the Acuity gauge acquisition library."""

from typing import Optional


class AcuityError(Exception):
    """Base exception for all Acuity library errors."""

    pass


class InvalidArgument(AcuityError):
    """Raised when a caller passes a bad device name or read mode."""

    pass


class DeviceUnavailable(AcuityError):
    """Raised when no devices are enumerated or a port cannot be opened."""

    pass


class ParseError(AcuityError):
    """Raised when a framed message does not decode into a record.

    Attributes:
        line: The offending message, separator already stripped.
        reason: "arity" for a wrong token count, "format" for a bad number.
    """

    def __init__(self, message: str, line: Optional[str] = None, reason: str = "format") -> None:
        super().__init__(message)
        self.line = line
        self.reason = reason


class ReadTimeout(AcuityError):
    """Raised when an active-mode wait for the next message expires."""

    pass


class TransportError(AcuityError):
    """Raised when the serial session fails (closed port, read error)."""

    pass
