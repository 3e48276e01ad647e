"""Open Interface driver: commands, sensor queries and streams.

The robot starts in Off mode and only listens for Start. After Start it is
in Passive mode, where sensors can be read but actuators cannot be
commanded. Safe mode gives control except that cliff, wheel-drop and
charger events drop back to Passive; Full mode disables those safety
checks.

Usage::

    conn = SerialConnection("/dev/ttyUSB0")
    conn.open()
    roomba = Roomba(conn)
    roomba.start()
    roomba.safe()
    roomba.drive(200, RADIUS_STRAIGHT)
    distance = roomba.sensors(SensorCode.DISTANCE)
"""

from __future__ import annotations

import logging
import threading

from .errors import StreamActiveError, TransportReadError, TransportWriteError
from .protocol.commands import (
    CommandFrame,
    build_baud,
    build_drive,
    build_drive_direct,
    build_leds,
    build_motors,
    build_pause_resume_stream,
    build_play,
    build_query_list,
    build_sensors,
    build_simple,
    build_song,
    build_stop,
    build_stream,
)
from .protocol.opcodes import OpCode
from .protocol.sensors import length_of
from .streaming import MAX_READ_ERRORS, QUEUE_SIZE, StreamSession
from .transport.base import Transport, read_exact

logger = logging.getLogger(__name__)


class Roomba:
    """Driver bound to one transport.

    Only one request/response exchange may use the transport at a time, and
    none while a stream session is running. Writes are serialized so the
    stream reader's pause command cannot interleave with a caller's command.
    """

    def __init__(self, transport: Transport, max_read_errors: int = MAX_READ_ERRORS) -> None:
        self._transport = transport
        self._max_read_errors = max_read_errors
        self._write_lock = threading.Lock()
        self._session: StreamSession | None = None

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def session(self) -> StreamSession | None:
        """The most recent stream session, if any."""
        return self._session

    # ─── RAW WRITES ──────────────────────────────────────────────────

    def write(self, opcode: OpCode, payload: bytes = b"") -> None:
        """Write an op code byte followed by its payload.

        Raises:
            TransportWriteError: If either write is short or fails. If the
                op code went out but the payload did not, the robot is
                waiting for payload bytes and the link is out of sync.
        """
        with self._write_lock:
            logger.debug("Writing opcode %d, data %s", opcode, payload.hex(" "))
            self._write_part(bytes([opcode]), f"opcode {int(opcode)}")
            if payload:
                self._write_part(payload, f"payload of opcode {int(opcode)}")

    def write_frame(self, frame: CommandFrame) -> None:
        self.write(frame.opcode, frame.payload)

    def _write_part(self, data: bytes, what: str) -> None:
        try:
            n = self._transport.write(data)
        except OSError as e:
            raise TransportWriteError(f"failed writing {what}: {e}") from e
        if n is not None and n != len(data):
            raise TransportWriteError(
                f"failed writing {what}: wrote {n} of {len(data)} bytes"
            )

    # ─── MODE AND CLEANING COMMANDS ──────────────────────────────────

    def send(self, name: str) -> None:
        """Send a single-byte command by name, e.g. ``"safe"``."""
        self.write_frame(build_simple(name))

    def start(self) -> None:
        """Start the OI. Must be sent before any other command."""
        self.send("start")

    def passive(self) -> None:
        self.send("passive")

    def control(self) -> None:
        self.send("control")

    def safe(self) -> None:
        self.send("safe")

    def full(self) -> None:
        self.send("full")

    def clean(self) -> None:
        self.send("clean")

    def spot(self) -> None:
        self.send("spot")

    def max_clean(self) -> None:
        self.send("max")

    def seek_dock(self) -> None:
        self.send("seek_dock")

    # ─── ACTUATOR COMMANDS ───────────────────────────────────────────

    def drive(self, velocity: int, radius: int) -> None:
        """Drive at ``velocity`` mm/s along a circle of ``radius`` mm.

        See :func:`build_drive` for ranges and the special radius values.
        """
        self.write_frame(build_drive(velocity, radius))

    def stop(self) -> None:
        self.write_frame(build_stop())

    def drive_direct(self, right: int, left: int) -> None:
        self.write_frame(build_drive_direct(right, left))

    def leds(self, advance: bool, play: bool, power_color: int, power_intensity: int) -> None:
        self.write_frame(build_leds(advance, play, power_color, power_intensity))

    def motors(self, side_brush: bool, vacuum: bool, main_brush: bool) -> None:
        self.write_frame(build_motors(side_brush, vacuum, main_brush))

    def baud(self, code: int) -> None:
        self.write_frame(build_baud(code))

    def song(self, number: int, notes: list[tuple[int, int]]) -> None:
        self.write_frame(build_song(number, notes))

    def play(self, number: int) -> None:
        self.write_frame(build_play(number))

    # ─── SENSOR QUERIES ──────────────────────────────────────────────

    def _check_idle(self) -> None:
        if self._session is not None and self._session.running:
            raise StreamActiveError(
                "a sensor stream is running; pause it before querying"
            )

    def sensors(self, code: int) -> bytes:
        """Request one sensor packet and read its data bytes.

        Raises:
            UnknownSensorCode: Before anything is written.
            TransportReadError: If the full packet did not arrive; the
                bytes received are in ``partial``.
        """
        frame = build_sensors(code)
        self._check_idle()
        self.write_frame(frame)
        return read_exact(self._transport, length_of(code))

    def query_list(self, codes: list[int]) -> list[bytes]:
        """Request several sensor packets at once.

        Returns one ``bytes`` per requested packet, in request order.

        Raises:
            UnknownSensorCode: If any code is unknown; nothing is written.
            TransportReadError: On the first incomplete packet. ``partial``
                holds the packets read so far followed by the incomplete one.
        """
        frame = build_query_list(codes)
        self._check_idle()
        self.write_frame(frame)

        result: list[bytes] = []
        for code in codes:
            try:
                result.append(read_exact(self._transport, length_of(code)))
            except TransportReadError as e:
                raise TransportReadError(
                    f"failed reading sensor data for packet id {int(code)}: {e}",
                    result + [e.partial],
                ) from e
        return result

    # ─── STREAMS ─────────────────────────────────────────────────────

    def stream(self, codes: list[int], maxsize: int = QUEUE_SIZE) -> StreamSession:
        """Start a sensor stream and return its session.

        The session keeps the newest ``maxsize`` frames (0 keeps all).

        Raises:
            UnknownSensorCode, InvalidArgument: Before anything is written.
            StreamActiveError: If a stream is already running.
            TransportWriteError: If the Stream command was not written.
        """
        frame = build_stream(codes)
        self._check_idle()
        self.write_frame(frame)
        return self._launch(codes, maxsize)

    def resume_stream(self, codes: list[int], maxsize: int = QUEUE_SIZE) -> StreamSession:
        """Resume a paused stream of ``codes`` with a new session."""
        build_stream(codes)
        self._check_idle()
        self.write_frame(build_pause_resume_stream(True))
        return self._launch(codes, maxsize)

    def pause_stream(self, timeout: float | None = None) -> StreamSession | None:
        """Pause the running stream, if any, and wait for its reader."""
        session = self._session
        if session is None or not session.running:
            return session
        session.pause(wait=True, timeout=timeout)
        # Drop bytes the robot sent before it saw the pause.
        if hasattr(self._transport, "reset_input_buffer"):
            self._transport.reset_input_buffer()
        return session

    def _launch(self, codes: list[int], maxsize: int) -> StreamSession:
        session = StreamSession(
            self,
            self._transport,
            list(codes),
            max_read_errors=self._max_read_errors,
            maxsize=maxsize,
        )
        self._session = session
        session.start()
        return session
