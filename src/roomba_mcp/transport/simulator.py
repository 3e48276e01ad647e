"""In-process Open Interface simulator.

``SimulatedRoomba`` implements the transport interface: bytes written to it
are parsed as commands, and sensor requests are answered with mock values.
Every byte it receives is kept in ``received`` so callers can check exactly
what went over the wire.
"""

from __future__ import annotations

import logging
import threading
import time

from ..protocol.encoding import encode, int16, uint16, uint8
from ..protocol.framing import build_stream_frame
from ..protocol.opcodes import OpCode
from ..protocol.sensors import SENSOR_PACKET_LENGTH, SensorCode

logger = logging.getLogger(__name__)

MOCK_SENSOR_VALUES: dict[SensorCode, bytes] = {
    SensorCode.BUMPS_WHEEL_DROPS: bytes([3]),
    SensorCode.WALL: bytes([35]),
    SensorCode.CLIFF_RIGHT: bytes([42]),
    SensorCode.VIRTUAL_WALL: bytes([5]),
    SensorCode.DISTANCE: bytes([10, 20]),
    SensorCode.TEMPERATURE: bytes([25]),
    SensorCode.CURRENT: encode([int16(-747)]),
    SensorCode.BATTERY_CHARGE: encode([uint16(1000)]),
    SensorCode.BATTERY_CAPACITY: encode([uint16(1500)]),
    SensorCode.CLIFF_FRONT_LEFT_SIGNAL: encode([uint8(2), uint8(25)]),
    SensorCode.OI_MODE: bytes([2]),
    SensorCode.SONG_NUMBER: bytes([1]),
}

# Payload size of fixed-length commands; anything not listed has none.
_PAYLOAD_SIZE: dict[int, int] = {
    OpCode.BAUD: 1,
    OpCode.DRIVE: 4,
    OpCode.MOTORS: 1,
    OpCode.LEDS: 3,
    OpCode.PLAY: 1,
    OpCode.SENSORS: 1,
    OpCode.PWM_MOTORS: 3,
    OpCode.DRIVE_DIRECT: 4,
    OpCode.DIGITAL_OUTPUTS: 1,
    OpCode.PAUSE_RESUME_STREAM: 1,
    OpCode.SEND_IR: 1,
    OpCode.WAIT_TIME: 1,
    OpCode.WAIT_DISTANCE: 2,
    OpCode.WAIT_ANGLE: 2,
    OpCode.WAIT_EVENT: 1,
}

_KNOWN_OPCODES = frozenset(op.value for op in OpCode)

_MODES = {
    OpCode.START: 1,
    OpCode.CONTROL: 2,
    OpCode.SAFE: 2,
    OpCode.FULL: 3,
}


class SimulatedRoomba:
    """A fake robot on the other end of the transport.

    Args:
        chunk_size: If set, ``read`` returns at most this many bytes per
            call, to exercise short reads.
        frame_interval: Seconds to wait before producing each stream
            frame (the real robot sends one every 15 ms).
        max_frames: Stop streaming after this many frames and report end
            of stream.
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        frame_interval: float = 0.0,
        max_frames: int | None = None,
    ) -> None:
        self.chunk_size = chunk_size
        self.frame_interval = frame_interval
        self.max_frames = max_frames

        self.received = bytearray()
        self.sensor_values: dict[int, bytes] = dict(MOCK_SENSOR_VALUES)
        self.sensor_values[SensorCode.REQUESTED_VELOCITY] = bytes(2)
        self.sensor_values[SensorCode.REQUESTED_RADIUS] = bytes(2)
        self.sensor_values[SensorCode.REQUESTED_RIGHT_VELOCITY] = bytes(2)
        self.sensor_values[SensorCode.REQUESTED_LEFT_VELOCITY] = bytes(2)

        self.stream_codes: list[int] = []
        self.streaming = False
        self.frames_sent = 0
        self.closed = False

        self._pending = bytearray()
        self._output = bytearray()
        self._lock = threading.Lock()

    # ─── TRANSPORT INTERFACE ─────────────────────────────────────────

    def write(self, data: bytes) -> int:
        with self._lock:
            if self.closed:
                raise ConnectionError("Simulator is closed")
            logger.debug("Simulator reads: %s", bytes(data).hex(" "))
            self.received += data
            self._pending += data
            while self._pending and self._execute():
                pass
        return len(data)

    def read(self, size: int) -> bytes:
        if self.streaming and self.frame_interval and not self._output:
            time.sleep(self.frame_interval)
        with self._lock:
            if self.closed:
                return b""
            if not self._output and self.streaming:
                if self.max_frames is not None and self.frames_sent >= self.max_frames:
                    return b""
                self._output += self._next_frame()
            if not self._output:
                raise TimeoutError("Simulator has no data to send")
            n = min(size, len(self._output))
            if self.chunk_size:
                n = min(n, self.chunk_size)
            data = bytes(self._output[:n])
            del self._output[:n]
        return data

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self.streaming = False

    # ─── COMMAND HANDLING ────────────────────────────────────────────

    def _command_size(self) -> int | None:
        """Bytes the next command occupies, or None until more arrive."""
        opcode = self._pending[0]
        if opcode in (OpCode.QUERY_LIST, OpCode.STREAM):
            if len(self._pending) < 2:
                return None
            return 2 + self._pending[1]
        if opcode == OpCode.SONG:
            if len(self._pending) < 3:
                return None
            return 3 + 2 * self._pending[2]
        if opcode == OpCode.SCRIPT:
            if len(self._pending) < 2:
                return None
            return 2 + self._pending[1]
        return 1 + _PAYLOAD_SIZE.get(opcode, 0)

    def _execute(self) -> bool:
        size = self._command_size()
        if size is None or len(self._pending) < size:
            return False
        command = bytes(self._pending[:size])
        del self._pending[:size]

        opcode, payload = command[0], command[1:]
        if opcode == OpCode.SENSORS:
            self._respond([payload[0]])
        elif opcode == OpCode.QUERY_LIST:
            self._respond(list(payload[1:]))
        elif opcode == OpCode.STREAM:
            self.stream_codes = list(payload[1:])
            self.streaming = True
            logger.info("Simulator streaming packets %s", self.stream_codes)
        elif opcode == OpCode.PAUSE_RESUME_STREAM:
            self.streaming = payload[0] != 0 and bool(self.stream_codes)
            logger.info("Simulator stream %s", "resumed" if payload[0] else "paused")
        elif opcode == OpCode.DRIVE:
            self.sensor_values[SensorCode.REQUESTED_VELOCITY] = payload[0:2]
            self.sensor_values[SensorCode.REQUESTED_RADIUS] = payload[2:4]
            logger.info(
                "Drive: %d, %d",
                int.from_bytes(payload[0:2], "big", signed=True),
                int.from_bytes(payload[2:4], "big", signed=True),
            )
        elif opcode == OpCode.DRIVE_DIRECT:
            self.sensor_values[SensorCode.REQUESTED_RIGHT_VELOCITY] = payload[0:2]
            self.sensor_values[SensorCode.REQUESTED_LEFT_VELOCITY] = payload[2:4]
        elif opcode in _MODES:
            self.sensor_values[SensorCode.OI_MODE] = bytes([_MODES[opcode]])
            logger.info("Simulator switched to mode %d", _MODES[opcode])
        elif opcode not in _KNOWN_OPCODES:
            logger.warning("Simulator got unknown opcode: %d", opcode)
        return True

    def _value(self, code: int) -> bytes:
        size = SENSOR_PACKET_LENGTH.get(code)
        if size is None:
            logger.warning("Simulator has no packet %d", code)
            return b""
        value = self.sensor_values.get(code)
        if value is None or len(value) != size:
            return bytes(size)
        return bytes(value)

    def _respond(self, codes: list[int]) -> None:
        for code in codes:
            self._output += self._value(code)

    def _next_frame(self) -> bytes:
        self.frames_sent += 1
        return build_stream_frame(
            [(code, self._value(code)) for code in self.stream_codes]
        )
