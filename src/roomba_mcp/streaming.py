"""Background reader for sensor streams.

After a Stream command the robot sends one frame every 15 ms until it is
paused. A :class:`StreamSession` owns the reader thread for one such
stream: it reassembles frames from the transport, validates them, and
puts the decoded :class:`StreamFrame` objects on a queue for the caller.
The queue is bounded; if the caller falls behind, the oldest frames are
dropped so the reader never blocks.

The session ends in one of three ways:

- ``pause()``: the reader finishes the frame it is on, writes the
  pause command, and closes the queue (``PAUSED``).
- End of stream on the transport: the queue is closed (``CLOSED``).
- A bad frame or a transport failure: the queue is closed and the
  exception is kept in ``session.error`` (``FAILED``).
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import Iterator

from .errors import RoombaError, TransportReadError
from .protocol.commands import build_pause_resume_stream
from .protocol.framing import StreamFrame, frame_length, parse_stream_frame

logger = logging.getLogger(__name__)

MAX_READ_ERRORS = 10
# About one second of frames at the 15 ms stream rate
QUEUE_SIZE = 64

_CLOSED = object()


class StreamState(Enum):
    REQUESTED = "requested"
    RUNNING = "running"
    PAUSED = "paused"
    CLOSED = "closed"
    FAILED = "failed"


class StreamSession:
    """One active sensor stream.

    Usage::

        session = roomba.stream([SensorCode.DISTANCE, SensorCode.ANGLE])
        for frame in session:
            print(frame.get(SensorCode.DISTANCE))
            if done:
                session.pause()
        if session.error:
            ...

    Args:
        roomba: Driver used to write the pause command.
        transport: Byte channel the frames arrive on.
        codes: Packet IDs requested, in order.
        max_read_errors: Consecutive failed reads tolerated before the
            session fails.
        maxsize: Frames kept for the caller, 0 for unbounded. When the
            queue is full the oldest frame is dropped.
    """

    def __init__(
        self,
        roomba,
        transport,
        codes: list[int],
        max_read_errors: int = MAX_READ_ERRORS,
        maxsize: int = QUEUE_SIZE,
    ) -> None:
        self.codes = tuple(codes)
        self.frame_size = frame_length(self.codes)
        self.max_read_errors = max_read_errors
        self.state = StreamState.REQUESTED
        self.error: BaseException | None = None
        self.frames_received = 0
        self.frames_dropped = 0

        self._roomba = roomba
        self._transport = transport
        self._frames: queue.Queue = queue.Queue(maxsize)
        self._pause_requested = threading.Event()
        self._drained = False
        self._thread = threading.Thread(
            target=self._run, name="roomba-stream", daemon=True
        )

    def __repr__(self) -> str:
        return (
            f"StreamSession(codes={list(self.codes)}, state={self.state.value}, "
            f"frames={self.frames_received})"
        )

    def __iter__(self) -> Iterator[StreamFrame]:
        while True:
            frame = self.get()
            if frame is None:
                return
            yield frame

    @property
    def running(self) -> bool:
        return self.state in (StreamState.REQUESTED, StreamState.RUNNING)

    def start(self) -> None:
        """Start the reader thread. Called once the Stream command is sent."""
        self.state = StreamState.RUNNING
        logger.info("Stream started for packets %s", list(self.codes))
        self._thread.start()

    def get(self, timeout: float | None = None) -> StreamFrame | None:
        """Next frame, or None once the session has ended.

        Raises:
            queue.Empty: If ``timeout`` expires with no frame available.
        """
        if self._drained:
            return None
        item = self._frames.get(timeout=timeout)
        if item is _CLOSED:
            self._drained = True
            return None
        return item

    def pause(self, wait: bool = True, timeout: float | None = None) -> None:
        """Ask the reader to stop after the current frame.

        Args:
            wait: Block until the reader has exited.
            timeout: Maximum seconds to wait.
        """
        self._pause_requested.set()
        if wait:
            self.join(timeout)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the reader thread; True if it has exited."""
        if self._thread.is_alive():
            self._thread.join(timeout)
        return not self._thread.is_alive()

    # ─── READER THREAD ───────────────────────────────────────────────

    def _run(self) -> None:
        try:
            while not self._pause_requested.is_set():
                data = self._read_frame()
                if data is None:
                    logger.info("Stream ended by transport")
                    self._finish(StreamState.CLOSED)
                    return
                frame = parse_stream_frame(data)
                self.frames_received += 1
                self._deliver(frame)
            self._roomba.write_frame(build_pause_resume_stream(False))
            logger.info("Stream paused after %d frames", self.frames_received)
            self._finish(StreamState.PAUSED)
        except RoombaError as e:
            logger.error("Stream failed: %s", e)
            self._finish(StreamState.FAILED, e)
        except Exception as e:
            logger.exception("Unexpected error in stream reader")
            self._finish(StreamState.FAILED, e)

    def _read_frame(self) -> bytes | None:
        """Accumulate one frame, or None on end of stream."""
        size = self.frame_size
        buf = bytearray(size)
        offset = 0
        errors = 0
        while offset < size:
            try:
                chunk = self._transport.read(size - offset)
            except ConnectionError as e:
                raise TransportReadError(
                    f"transport closed after {offset} of {size} frame bytes: {e}",
                    bytes(buf[:offset]),
                ) from e
            except OSError as e:
                errors += 1
                if errors > self.max_read_errors:
                    raise TransportReadError(
                        f"{errors} consecutive read errors: {e}",
                        bytes(buf[:offset]),
                    ) from e
                logger.warning(
                    "Stream read error (%d/%d): %s", errors, self.max_read_errors, e
                )
                continue
            if not chunk:
                return None
            errors = 0
            n = min(len(chunk), size - offset)
            buf[offset : offset + n] = chunk[:n]
            offset += n
        logger.debug("Stream frame: %s", bytes(buf).hex(" "))
        return bytes(buf)

    def _deliver(self, item) -> None:
        """Queue ``item`` without blocking, dropping the oldest frame if full."""
        while True:
            try:
                self._frames.put_nowait(item)
                return
            except queue.Full:
                pass
            try:
                self._frames.get_nowait()
            except queue.Empty:
                continue
            self.frames_dropped += 1

    def _finish(self, state: StreamState, error: BaseException | None = None) -> None:
        self.error = error
        self.state = state
        self._deliver(_CLOSED)
        if self.frames_dropped:
            logger.warning("Stream dropped %d unread frames", self.frames_dropped)
