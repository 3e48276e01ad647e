"""Open Interface op codes.

Every command starts with one of these bytes. Values are fixed by the
protocol; 133 and 146 are unused.
"""

from __future__ import annotations

from enum import IntEnum


class OpCode(IntEnum):
    """Command op codes."""

    START = 128
    BAUD = 129
    CONTROL = 130
    SAFE = 131
    FULL = 132
    SPOT = 134
    CLEAN = 135
    MAX = 136
    DRIVE = 137
    MOTORS = 138
    LEDS = 139
    SONG = 140
    PLAY = 141
    SENSORS = 142
    SEEK_DOCK = 143
    PWM_MOTORS = 144
    DRIVE_DIRECT = 145
    DIGITAL_OUTPUTS = 147
    STREAM = 148
    QUERY_LIST = 149
    PAUSE_RESUME_STREAM = 150
    SEND_IR = 151
    SCRIPT = 152
    PLAY_SCRIPT = 153
    SHOW_SCRIPT = 154
    WAIT_TIME = 155
    WAIT_DISTANCE = 156
    WAIT_ANGLE = 157
    WAIT_EVENT = 158


# Commands that are a single op code byte with no payload.
# "passive" is entered by sending Start.
SIMPLE_COMMANDS: dict[str, OpCode] = {
    "start": OpCode.START,
    "passive": OpCode.START,
    "control": OpCode.CONTROL,
    "safe": OpCode.SAFE,
    "full": OpCode.FULL,
    "clean": OpCode.CLEAN,
    "spot": OpCode.SPOT,
    "max": OpCode.MAX,
    "seek_dock": OpCode.SEEK_DOCK,
}
