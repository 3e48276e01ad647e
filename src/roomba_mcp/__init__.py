"""Host-side driver and MCP server for the iRobot Open Interface."""

from .driver import Roomba
from .errors import (
    ChecksumMismatchError,
    EncodingError,
    FrameDesyncError,
    FrameError,
    FrameLengthError,
    InvalidArgument,
    RoombaError,
    StreamActiveError,
    TransportReadError,
    TransportWriteError,
    UnknownSensorCode,
)
from .protocol.opcodes import OpCode
from .protocol.sensors import SensorCode
from .streaming import StreamSession, StreamState

__version__ = "0.1.0"
