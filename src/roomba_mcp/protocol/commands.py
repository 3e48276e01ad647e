"""Command frames and builders for parameterized commands.

Each builder validates its arguments and returns a :class:`CommandFrame`.
Nothing is written here; a frame is sent with ``Roomba.write_frame``, which
writes the op code byte and then the payload.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidArgument
from .encoding import encode, int16, uint8
from .opcodes import OpCode, SIMPLE_COMMANDS
from .sensors import length_of, total_length

MAX_VELOCITY = 500  # mm/s
MAX_RADIUS = 2000  # mm

# Drive radius special cases
RADIUS_STRAIGHT = 0x8000
RADIUS_STRAIGHT_ALT = 0x7FFF
RADIUS_TURN_CLOCKWISE = -1
RADIUS_TURN_COUNTER_CLOCKWISE = 1

MAX_BAUD_CODE = 11
MAX_SONG_NUMBER = 15
MAX_SONG_LENGTH = 16
MIN_NOTE = 31
MAX_NOTE = 127
MAX_LIST_LENGTH = 255

LED_ADVANCE = 0x08
LED_PLAY = 0x02

MOTOR_SIDE_BRUSH = 0x01
MOTOR_VACUUM = 0x02
MOTOR_MAIN_BRUSH = 0x04


@dataclass(frozen=True)
class CommandFrame:
    """An op code plus its payload bytes."""

    opcode: OpCode
    payload: bytes = b""

    def to_bytes(self) -> bytes:
        return bytes([self.opcode]) + self.payload

    def __repr__(self) -> str:
        return (
            f"CommandFrame(opcode={self.opcode.name}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(name, value, "an integer")
    if not low <= value <= high:
        raise InvalidArgument(name, value, f"{low} to {high}")


def build_simple(name: str) -> CommandFrame:
    """Build a single-byte command by name (``"safe"``, ``"seek_dock"``...)."""
    try:
        return CommandFrame(SIMPLE_COMMANDS[name])
    except KeyError:
        raise InvalidArgument(
            "command", name, f"one of {sorted(SIMPLE_COMMANDS)}"
        ) from None


def build_drive(velocity: int, radius: int) -> CommandFrame:
    """Build a Drive command.

    Args:
        velocity: Average wheel velocity, -500 to 500 mm/s. Negative drives
            backward.
        radius: Turn radius, -2000 to 2000 mm. Positive turns left. The
            special values 0x8000/0x7FFF drive straight and -1/1 turn in
            place clockwise/counter-clockwise.
    """
    _check_range("velocity", velocity, -MAX_VELOCITY, MAX_VELOCITY)
    if radius in (RADIUS_STRAIGHT, RADIUS_STRAIGHT_ALT, -RADIUS_STRAIGHT):
        # Straight sentinels are sent as raw 16-bit patterns.
        radius = radius - 0x10000 if radius == RADIUS_STRAIGHT else radius
    else:
        _check_range("radius", radius, -MAX_RADIUS, MAX_RADIUS)
    return CommandFrame(OpCode.DRIVE, encode([int16(velocity), int16(radius)]))


def build_stop() -> CommandFrame:
    """Drive(0, 0)."""
    return build_drive(0, 0)


def build_drive_direct(right: int, left: int) -> CommandFrame:
    """Build a Drive Direct command with per-wheel velocities in mm/s."""
    _check_range("right velocity", right, -MAX_VELOCITY, MAX_VELOCITY)
    _check_range("left velocity", left, -MAX_VELOCITY, MAX_VELOCITY)
    return CommandFrame(OpCode.DRIVE_DIRECT, encode([int16(right), int16(left)]))


def build_leds(
    advance: bool, play: bool, power_color: int, power_intensity: int
) -> CommandFrame:
    """Build a LEDs command.

    Args:
        advance: Advance LED on.
        play: Play LED on.
        power_color: 0 = green, 255 = red.
        power_intensity: 0 = off, 255 = full.
    """
    _check_range("power color", power_color, 0, 255)
    _check_range("power intensity", power_intensity, 0, 255)
    bits = (LED_ADVANCE if advance else 0) | (LED_PLAY if play else 0)
    return CommandFrame(
        OpCode.LEDS,
        encode([uint8(bits), uint8(power_color), uint8(power_intensity)]),
    )


def build_motors(side_brush: bool, vacuum: bool, main_brush: bool) -> CommandFrame:
    bits = (
        (MOTOR_SIDE_BRUSH if side_brush else 0)
        | (MOTOR_VACUUM if vacuum else 0)
        | (MOTOR_MAIN_BRUSH if main_brush else 0)
    )
    return CommandFrame(OpCode.MOTORS, bytes([bits]))


def build_baud(code: int) -> CommandFrame:
    """Build a Baud command. ``code`` 0-11 selects 300 to 115200 baud."""
    _check_range("baud code", code, 0, MAX_BAUD_CODE)
    return CommandFrame(OpCode.BAUD, bytes([code]))


def build_song(number: int, notes: list[tuple[int, int]]) -> CommandFrame:
    """Build a Song command.

    Args:
        number: Song slot 0-15.
        notes: 1-16 ``(note, duration)`` pairs. Notes are MIDI numbers
            31-127, durations are in 1/64ths of a second.
    """
    _check_range("song number", number, 0, MAX_SONG_NUMBER)
    if not 1 <= len(notes) <= MAX_SONG_LENGTH:
        raise InvalidArgument("song length", len(notes), f"1 to {MAX_SONG_LENGTH}")
    values = [uint8(number), uint8(len(notes))]
    for note, duration in notes:
        _check_range("note", note, MIN_NOTE, MAX_NOTE)
        _check_range("duration", duration, 0, 255)
        values += [uint8(note), uint8(duration)]
    return CommandFrame(OpCode.SONG, encode(values))


def build_play(number: int) -> CommandFrame:
    _check_range("song number", number, 0, MAX_SONG_NUMBER)
    return CommandFrame(OpCode.PLAY, bytes([number]))


def build_sensors(code: int) -> CommandFrame:
    """Build a Sensors request for one packet.

    Raises:
        UnknownSensorCode: If the packet has no registered length.
    """
    length_of(code)
    return CommandFrame(OpCode.SENSORS, bytes([code]))


def _code_list(codes: list[int]) -> bytes:
    if len(codes) > MAX_LIST_LENGTH:
        raise InvalidArgument("packet count", len(codes), f"at most {MAX_LIST_LENGTH}")
    for code in codes:
        length_of(code)
    return bytes([len(codes)]) + bytes(codes)


def build_query_list(codes: list[int]) -> CommandFrame:
    """Build a Query List request; every code is validated first."""
    return CommandFrame(OpCode.QUERY_LIST, _code_list(codes))


def build_stream(codes: list[int]) -> CommandFrame:
    """Build a Stream request for the packets in ``codes``, in order."""
    if not codes:
        raise InvalidArgument("packet count", 0, "at least one packet")
    payload = _code_list(codes)
    # The frame's length byte covers one ID byte plus the data of each packet.
    data_length = total_length(codes) + len(codes)
    if data_length > MAX_LIST_LENGTH:
        raise InvalidArgument("stream data length", data_length, f"at most {MAX_LIST_LENGTH}")
    return CommandFrame(OpCode.STREAM, payload)


def build_pause_resume_stream(resume: bool) -> CommandFrame:
    return CommandFrame(OpCode.PAUSE_RESUME_STREAM, bytes([1 if resume else 0]))
