"""Exception types raised by the driver.

Validation errors (``InvalidArgument``, ``UnknownSensorCode``,
``EncodingError``) are raised before anything is written to the transport.
Transport errors mean the link state is unknown. Frame errors end the
stream session that saw them.
"""

from __future__ import annotations


class RoombaError(Exception):
    """Base class for all driver errors."""


class InvalidArgument(RoombaError, ValueError):
    """A command argument is outside its protocol range."""

    def __init__(self, name: str, value, expected: str = "") -> None:
        self.name = name
        self.value = value
        message = f"invalid {name}: {value!r}"
        if expected:
            message += f" (expected {expected})"
        super().__init__(message)


class UnknownSensorCode(RoombaError, ValueError):
    """A sensor packet ID has no registered length."""

    def __init__(self, code) -> None:
        self.code = code
        super().__init__(f"unknown sensor packet id: {code!r}")


class EncodingError(RoombaError, ValueError):
    """A value does not fit its declared integer width."""


class StreamActiveError(RoombaError):
    """A request was made while a stream session owns the transport."""


class TransportWriteError(RoombaError, IOError):
    """A command was not fully written; the device state is unknown."""


class TransportReadError(RoombaError, IOError):
    """A bounded read ended before the expected number of bytes arrived.

    ``partial`` holds whatever was received before the failure.
    """

    def __init__(self, message: str, partial=b"") -> None:
        super().__init__(message)
        self.partial = partial


class FrameError(RoombaError):
    """A stream frame failed an integrity check."""

    def __init__(self, message: str, frame: bytes = b"") -> None:
        super().__init__(message)
        self.frame = frame


class FrameDesyncError(FrameError):
    """The frame does not start at a header byte, or names an unknown packet."""


class FrameLengthError(FrameError):
    """The frame length byte or packet layout does not match the request."""


class ChecksumMismatchError(FrameError):
    """The frame bytes do not sum to zero."""
