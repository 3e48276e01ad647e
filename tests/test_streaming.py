"""Tests for the background stream reader."""

from __future__ import annotations

import queue
import time

import pytest

from roomba_mcp.driver import Roomba
from roomba_mcp.errors import (
    ChecksumMismatchError,
    FrameDesyncError,
    FrameLengthError,
    InvalidArgument,
    TransportReadError,
    UnknownSensorCode,
)
from roomba_mcp.protocol.framing import build_stream_frame
from roomba_mcp.protocol.sensors import SensorCode
from roomba_mcp.streaming import QUEUE_SIZE, StreamState
from roomba_mcp.transport.simulator import SimulatedRoomba

CODES = [SensorCode.CLIFF_RIGHT, SensorCode.DISTANCE]
FRAME = bytes([19, 5, 12, 42, 19, 10, 20, 148])
PAUSE = bytes([0x96, 0x00])


class _ScriptedTransport:
    """Records writes and replays scripted reads, then reports end of stream."""

    def __init__(self, reads=()):
        self.writes: list[bytes] = []
        self.reads = list(reads)

    def write(self, data: bytes) -> int:
        self.writes.append(bytes(data))
        return len(data)

    def read(self, size: int) -> bytes:
        if not self.reads:
            return b""
        item = self.reads.pop(0)
        if isinstance(item, Exception):
            raise item
        if len(item) > size:
            self.reads.insert(0, item[size:])
            item = item[:size]
        return item


def _run(reads, codes=CODES, **kwargs):
    """Stream from a scripted transport until the session ends."""
    transport = _ScriptedTransport(reads)
    session = Roomba(transport, **kwargs).stream(codes)
    assert session.join(timeout=2.0)
    return session, list(session), transport


def test_stream_command_bytes():
    """Stream start is op code, count, then the IDs in order."""
    _, _, transport = _run([])
    assert b"".join(transport.writes) == bytes([0x94, 2, 12, 19])


def test_frames_delivered_in_order():
    second = build_stream_frame([(SensorCode.CLIFF_RIGHT, b"\x01"), (SensorCode.DISTANCE, b"\x00\x02")])
    session, frames, _ = _run([FRAME, second])
    assert [f.entries for f in frames] == [
        [(SensorCode.CLIFF_RIGHT, b"\x2a"), (SensorCode.DISTANCE, b"\x0a\x14")],
        [(SensorCode.CLIFF_RIGHT, b"\x01"), (SensorCode.DISTANCE, b"\x00\x02")],
    ]
    assert session.frames_received == 2


def test_end_of_stream_closes_without_error():
    session, frames, _ = _run([FRAME])
    assert len(frames) == 1
    assert session.state is StreamState.CLOSED
    assert session.error is None


def test_fragmented_frame_is_reassembled():
    """A frame split into single bytes decodes the same."""
    session, frames, _ = _run([bytes([b]) for b in FRAME])
    assert len(frames) == 1
    assert frames[0].get(SensorCode.DISTANCE) == b"\x0a\x14"


def test_read_error_retries_without_losing_bytes():
    """A transient error mid-frame keeps the bytes already accumulated."""
    session, frames, _ = _run([FRAME[:3], TimeoutError("slow"), OSError("glitch"), FRAME[3:]])
    assert len(frames) == 1
    assert frames[0].get(SensorCode.CLIFF_RIGHT) == b"\x2a"
    assert session.state is StreamState.CLOSED


def test_too_many_read_errors_fails_session():
    session, frames, _ = _run([TimeoutError()] * 4, max_read_errors=3)
    assert frames == []
    assert session.state is StreamState.FAILED
    assert isinstance(session.error, TransportReadError)


def test_closed_transport_fails_session():
    """ConnectionError is not retried."""
    session, frames, _ = _run([FRAME[:4], ConnectionError("port closed")])
    assert frames == []
    assert session.state is StreamState.FAILED
    assert isinstance(session.error, TransportReadError)
    assert session.error.partial == FRAME[:4]


def test_checksum_mismatch_terminates_session():
    """A flipped payload bit ends the session; later frames are not read."""
    bad = bytearray(FRAME)
    bad[5] ^= 0x10
    session, frames, transport = _run([FRAME, bytes(bad), FRAME])
    assert len(frames) == 1
    assert session.state is StreamState.FAILED
    assert isinstance(session.error, ChecksumMismatchError)
    assert transport.reads == [FRAME]


def test_bad_header_terminates_session():
    bad = bytearray(FRAME)
    bad[0] = 0
    session, frames, _ = _run([bytes(bad)])
    assert frames == []
    assert isinstance(session.error, FrameDesyncError)
    assert session.state is StreamState.FAILED


def test_bad_length_terminates_session():
    bad = bytearray(FRAME)
    bad[1] = 4
    session, _, _ = _run([bytes(bad)])
    assert isinstance(session.error, FrameLengthError)


def test_invalid_stream_requests_write_nothing():
    transport = _ScriptedTransport()
    roomba = Roomba(transport)
    with pytest.raises(UnknownSensorCode):
        roomba.stream([SensorCode.WALL, 50])
    with pytest.raises(InvalidArgument):
        roomba.stream([])
    assert transport.writes == []
    assert roomba.session is None


def test_get_after_close_returns_none():
    session, _, _ = _run([])
    assert session.get() is None
    assert session.get(timeout=0.01) is None


def test_pause_at_frame_boundary():
    """Pause lets the current frame finish, writes the pause command once,
    and closes the channel."""
    sim = SimulatedRoomba(chunk_size=1, frame_interval=0.002)
    roomba = Roomba(sim)
    session = roomba.stream(CODES)

    first = session.get(timeout=2.0)
    second = session.get(timeout=2.0)
    assert first is not None and second is not None

    session.pause(wait=True, timeout=2.0)
    assert session.state is StreamState.PAUSED
    assert session.error is None

    # Every frame the robot produced was read in full and delivered.
    assert sim.frames_sent == session.frames_received
    assert bytes(sim.received).count(PAUSE) == 1
    assert bytes(sim.received).endswith(PAUSE)
    assert not sim.streaming

    remaining = list(session)
    assert 2 + len(remaining) + session.frames_dropped == session.frames_received
    assert session.get() is None
    assert session.frames_received == sim.frames_sent


def test_pause_after_close_writes_nothing():
    session, _, transport = _run([FRAME])
    session.pause()
    assert PAUSE not in b"".join(transport.writes)
    assert session.state is StreamState.CLOSED


def test_driver_pause_stream_and_resume():
    sim = SimulatedRoomba(frame_interval=0.002)
    roomba = Roomba(sim)
    session = roomba.stream([SensorCode.WALL])
    assert session.get(timeout=2.0).get(SensorCode.WALL) == bytes([35])

    assert roomba.pause_stream(timeout=2.0) is session
    assert session.state is StreamState.PAUSED

    resumed = roomba.resume_stream([SensorCode.WALL])
    assert resumed is not session
    assert resumed.get(timeout=2.0).get(SensorCode.WALL) == bytes([35])
    resumed.pause(timeout=2.0)
    assert bytes(sim.received).count(bytes([0x96, 0x01])) == 1
    assert bytes(sim.received).count(PAUSE) == 2


def test_pause_with_undrained_bounded_queue():
    """A full queue does not stop the reader from seeing the pause."""
    sim = SimulatedRoomba(frame_interval=0.002)
    session = Roomba(sim).stream(CODES, maxsize=1)
    assert session.get(timeout=2.0) is not None

    time.sleep(0.2)
    session.pause(wait=True, timeout=2.0)

    assert session.state is StreamState.PAUSED
    assert bytes(sim.received).count(PAUSE) == 1
    assert session.frames_dropped > 0
    assert len(list(session)) <= 1


def test_full_queue_keeps_newest_frames():
    frames = [
        build_stream_frame([(SensorCode.CLIFF_RIGHT, bytes([n])), (SensorCode.DISTANCE, b"\x00\x00")])
        for n in range(3)
    ]
    session = Roomba(_ScriptedTransport(frames)).stream(CODES, maxsize=2)
    assert session.join(timeout=2.0)

    received = list(session)
    assert [f.get(SensorCode.CLIFF_RIGHT) for f in received] == [b"\x02"]
    assert session.frames_received == 3
    assert session.frames_dropped == 2
    assert session.state is StreamState.CLOSED


def test_default_queue_is_bounded():
    frames = [FRAME] * (QUEUE_SIZE + 10)
    session = Roomba(_ScriptedTransport(frames)).stream(CODES)
    assert session.join(timeout=2.0)

    received = list(session)
    assert len(received) < QUEUE_SIZE
    assert len(received) + session.frames_dropped == QUEUE_SIZE + 10


def test_unbounded_queue_keeps_every_frame():
    frames = [FRAME] * (QUEUE_SIZE + 10)
    session = Roomba(_ScriptedTransport(frames)).stream(CODES, maxsize=0)
    assert session.join(timeout=2.0)
    assert len(list(session)) == QUEUE_SIZE + 10
    assert session.frames_dropped == 0


def test_get_timeout_raises_empty():
    sim = SimulatedRoomba(frame_interval=0.5)
    session = Roomba(sim).stream([SensorCode.WALL])
    try:
        with pytest.raises(queue.Empty):
            session.get(timeout=0.01)
    finally:
        session.pause(timeout=2.0)


def test_session_repr():
    session, _, _ = _run([FRAME])
    assert "closed" in repr(session)
