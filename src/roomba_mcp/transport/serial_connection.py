"""Serial connection to the robot's Open Interface port.

The OI port runs 8N1 with no flow control. The robot powers up at
115200 baud (57600 on some models, 19200 after the baud rate change
button sequence).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 115200
SUPPORTED_BAUDRATES = (19200, 57600, 115200)
READ_TIMEOUT_S = 1.0
WRITE_TIMEOUT_S = 1.0


@dataclass
class PortInfo:
    """Settings of the opened port."""

    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = READ_TIMEOUT_S


class SerialConnection:
    """Manages the serial link to the robot.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(b"\\x80")
        data = conn.read(2)
        conn.close()
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        if baudrate not in SUPPORTED_BAUDRATES:
            raise ValueError(
                f"invalid baud rate: {baudrate}. Must be one of "
                f"{', '.join(str(b) for b in SUPPORTED_BAUDRATES)}"
            )
        self._info = PortInfo(port=port, baudrate=baudrate, timeout=timeout)
        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._info

    def open(self) -> PortInfo:
        """Open and configure the port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(
                port=self._info.port,
                baudrate=self._info.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._info.timeout,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except (serial.SerialException, ValueError) as e:
            logger.error("Failed to open serial port %s: %s", self._info.port, e)
            raise ConnectionError(
                f"Could not open serial port {self._info.port} "
                f"at {self._info.baudrate} baud: {e}"
            ) from e

        logger.info("Opened serial port %s @ %d", self._info.port, self._info.baudrate)
        return self._info

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing serial port: %s", e)
        finally:
            self._serial = None
            logger.info("Closed serial port %s", self._info.port)

    def write(self, data: bytes) -> int:
        """Write raw bytes to the port.

        Returns:
            Number of bytes written.

        Raises:
            ConnectionError: If the port is not open.
            OSError: If the write fails or times out.
        """
        if not self.connected:
            raise ConnectionError("Serial port is not open")
        try:
            written = self._serial.write(data)
        except serial.SerialTimeoutException as e:
            raise TimeoutError(f"write timed out: {e}") from e
        return len(data) if written is None else written

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes.

        Returns whatever arrived before the timeout, possibly fewer bytes
        than requested.

        Raises:
            ConnectionError: If the port is not open.
            TimeoutError: If no byte arrived within the timeout.
        """
        if not self.connected:
            raise ConnectionError("Serial port is not open")
        data = self._serial.read(size)
        if not data:
            raise TimeoutError(
                f"no data from {self._info.port} within {self._info.timeout}s"
            )
        return data

    def reset_input_buffer(self) -> None:
        """Discard unread input, e.g. the tail of a paused stream."""
        if self.connected:
            self._serial.reset_input_buffer()
