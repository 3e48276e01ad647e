"""Stream frame builder and parser.

Frame layout::

    +--------+--------+----------+---------+-----+----------+---------+----------+
    | Header | Length | Packet ID| Data    | ... | Packet ID| Data    | Checksum |
    | 1 byte | 1 byte | 1 byte   | 1-52 B  |     | 1 byte   | 1-52 B  | 1 byte   |
    +--------+--------+----------+---------+-----+----------+---------+----------+

- Header: always 19
- Length: number of bytes between the length byte and the checksum
- Checksum: chosen so the bytes from Length through Checksum sum to 0 mod 256
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import (
    ChecksumMismatchError,
    FrameDesyncError,
    FrameLengthError,
    UnknownSensorCode,
)
from .sensors import SensorCode, length_of, total_length

HEADER = 19
FRAME_OVERHEAD = 3  # header, length, checksum


@dataclass
class StreamFrame:
    """A decoded stream frame: ``(packet id, data)`` pairs in wire order."""

    entries: list[tuple[int, bytes]] = field(default_factory=list)

    def __repr__(self) -> str:
        parts = ", ".join(f"{code}={data.hex(' ')}" for code, data in self.entries)
        return f"StreamFrame({parts})"

    def get(self, code: int) -> bytes | None:
        for entry_code, data in self.entries:
            if entry_code == code:
                return data
        return None

    def to_dict(self) -> dict:
        return {"packets": [packet_dict(code, data) for code, data in self.entries]}


def packet_dict(code: int, data: bytes) -> dict:
    """JSON-friendly view of one packet's raw data."""
    return {
        "id": int(code),
        "name": _packet_name(code),
        "length": len(data),
        "hex": data.hex(" "),
        "bytes": list(data),
    }


def _packet_name(code: int) -> str:
    try:
        return SensorCode(code).name.lower()
    except ValueError:
        return f"packet_{code}"


def frame_length(codes) -> int:
    """Total on-wire size of one frame carrying ``codes``."""
    return total_length(codes) + len(codes) + FRAME_OVERHEAD


def checksum(data: bytes) -> int:
    """Checksum byte that makes ``data`` plus the checksum sum to zero."""
    return -sum(data) & 0xFF


def build_stream_frame(entries: list[tuple[int, bytes]]) -> bytes:
    """Build a complete stream frame from ``(packet id, data)`` pairs."""
    body = bytearray()
    for code, data in entries:
        if len(data) != length_of(code):
            raise ValueError(
                f"packet {code} needs {length_of(code)} bytes, got {len(data)}"
            )
        body.append(code)
        body += data
    if len(body) > 0xFF:
        raise ValueError(f"frame data too long: {len(body)} bytes")
    counted = bytes([len(body)]) + bytes(body)
    return bytes([HEADER]) + counted + bytes([checksum(counted)])


def parse_stream_frame(data: bytes) -> StreamFrame:
    """Validate a complete stream frame and decode its packets.

    The header and length byte are checked first, then the checksum, then
    the packet walk. A corrupted byte anywhere after the length byte is
    therefore reported as a checksum mismatch rather than as a layout error.

    Raises:
        FrameDesyncError: Missing header, or an unknown packet ID.
        FrameLengthError: Length byte or packet layout does not match.
        ChecksumMismatchError: Bytes from length through checksum do not
            sum to zero.
    """
    if len(data) < FRAME_OVERHEAD:
        raise FrameLengthError(f"frame too short: {len(data)} bytes", data)
    if data[0] != HEADER:
        raise FrameDesyncError(
            f"stream data doesn't start with header {HEADER}: got {data[0]}", data
        )
    expected = len(data) - FRAME_OVERHEAD
    if data[1] != expected:
        raise FrameLengthError(
            f"invalid length byte: {data[1]}, expected {expected}", data
        )
    total = sum(data[1:]) & 0xFF
    if total != 0:
        raise ChecksumMismatchError(
            f"computed checksum didn't match: sum is {total}", data
        )

    frame = StreamFrame()
    offset = 2
    end = len(data) - 1
    while offset < end:
        code = data[offset]
        try:
            size = length_of(code)
        except UnknownSensorCode:
            raise FrameDesyncError(
                f"unknown packet id {code} at offset {offset}", data
            ) from None
        offset += 1
        if offset + size > end:
            raise FrameLengthError(
                f"packet {code} overruns the frame at offset {offset}", data
            )
        frame.entries.append((SensorCode(code), bytes(data[offset : offset + size])))
        offset += size
    return frame
