"""Byte channel interface shared by the serial port and the simulator."""

from __future__ import annotations

import logging
from typing import Protocol

from ..errors import TransportReadError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """A duplex byte channel.

    ``read`` may return fewer bytes than requested; that is not an error.
    An empty result means the channel reached end of stream. Failures are
    raised as ``OSError`` (``TimeoutError`` when nothing arrived in time,
    ``ConnectionError`` when the channel is closed).
    """

    def write(self, data: bytes) -> int | None: ...

    def read(self, size: int) -> bytes: ...


def read_exact(transport: Transport, size: int) -> bytes:
    """Read exactly ``size`` bytes, retrying short reads.

    Raises:
        TransportReadError: If the channel ends or fails first. The bytes
            received so far are attached as ``partial``.
    """
    buf = bytearray(size)
    offset = 0
    remaining = size
    while remaining > 0:
        try:
            chunk = transport.read(remaining)
        except OSError as e:
            raise TransportReadError(
                f"read failed after {offset} of {size} bytes: {e}",
                bytes(buf[:offset]),
            ) from e
        if not chunk:
            raise TransportReadError(
                f"end of stream after {offset} of {size} bytes",
                bytes(buf[:offset]),
            )
        n = min(len(chunk), remaining)
        buf[offset : offset + n] = chunk[:n]
        offset += n
        remaining -= n
    logger.debug("Read %d bytes: %s", size, bytes(buf).hex(" "))
    return bytes(buf)
