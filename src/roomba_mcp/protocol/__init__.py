"""Protocol layer: op codes, sensor packets, payload encoding and stream framing."""

from .opcodes import OpCode, SIMPLE_COMMANDS
from .sensors import SensorCode, SENSOR_PACKET_LENGTH, length_of
from .commands import CommandFrame
from .framing import StreamFrame, build_stream_frame, parse_stream_frame
