"""Tests for command builders."""

import pytest

from roomba_mcp.errors import InvalidArgument, UnknownSensorCode
from roomba_mcp.protocol.commands import (
    RADIUS_STRAIGHT,
    RADIUS_STRAIGHT_ALT,
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
from roomba_mcp.protocol.opcodes import OpCode
from roomba_mcp.protocol.sensors import SensorCode


def test_opcode_values():
    """Verify key op codes match the Open Interface."""
    assert OpCode.START == 128
    assert OpCode.SAFE == 131
    assert OpCode.FULL == 132
    assert OpCode.DRIVE == 137
    assert OpCode.SENSORS == 0x8E
    assert OpCode.STREAM == 0x94
    assert OpCode.QUERY_LIST == 0x95
    assert OpCode.PAUSE_RESUME_STREAM == 0x96


def test_simple_commands():
    """Single-byte commands have no payload."""
    assert build_simple("start") == CommandFrame(OpCode.START)
    assert build_simple("passive").opcode == OpCode.START
    assert build_simple("seek_dock").to_bytes() == bytes([143])
    assert build_simple("spot").payload == b""


def test_unknown_simple_command():
    """Unknown command names raise."""
    with pytest.raises(InvalidArgument):
        build_simple("self_destruct")


def test_build_drive():
    """Drive packs velocity and radius as signed 16-bit big-endian."""
    frame = build_drive(200, -100)
    assert frame.opcode == OpCode.DRIVE
    assert frame.to_bytes() == bytes([0x89, 0x00, 0xC8, 0xFF, 0x9C])


def test_drive_limits():
    """The ends of both ranges are accepted."""
    assert build_drive(-500, 2000).payload == bytes([0xFE, 0x0C, 0x07, 0xD0])
    assert build_drive(500, -2000).payload == bytes([0x01, 0xF4, 0xF8, 0x30])


def test_drive_velocity_out_of_range():
    """Velocity beyond ±500 raises and names the parameter."""
    with pytest.raises(InvalidArgument) as exc:
        build_drive(501, 0)
    assert exc.value.name == "velocity"
    assert exc.value.value == 501
    with pytest.raises(InvalidArgument):
        build_drive(-501, 0)


def test_drive_radius_out_of_range():
    """Radius beyond ±2000 raises unless it is a straight sentinel."""
    with pytest.raises(InvalidArgument) as exc:
        build_drive(100, 2001)
    assert exc.value.name == "radius"
    with pytest.raises(InvalidArgument):
        build_drive(100, -30000)


def test_drive_straight_sentinels():
    """0x8000 and 0x7FFF pass through as raw 16-bit patterns."""
    assert build_drive(100, RADIUS_STRAIGHT).payload[2:] == bytes([0x80, 0x00])
    assert build_drive(100, -0x8000).payload[2:] == bytes([0x80, 0x00])
    assert build_drive(100, RADIUS_STRAIGHT_ALT).payload[2:] == bytes([0x7F, 0xFF])


def test_drive_turn_in_place():
    """-1 and 1 turn in place."""
    assert build_drive(100, -1).payload[2:] == bytes([0xFF, 0xFF])
    assert build_drive(100, 1).payload[2:] == bytes([0x00, 0x01])


def test_drive_rejects_non_integers():
    """Floats are not silently truncated."""
    with pytest.raises(InvalidArgument):
        build_drive(100.5, 0)


def test_stop_is_drive_zero():
    assert build_stop() == build_drive(0, 0)
    assert build_stop().payload == bytes(4)


def test_build_drive_direct():
    """Right wheel first, then left."""
    frame = build_drive_direct(-200, 300)
    assert frame.to_bytes() == bytes([145, 0xFF, 0x38, 0x01, 0x2C])


def test_drive_direct_bounds():
    with pytest.raises(InvalidArgument):
        build_drive_direct(0, 501)
    with pytest.raises(InvalidArgument):
        build_drive_direct(-501, 0)


def test_build_leds():
    """Advance is bit 3, Play is bit 1."""
    assert build_leds(True, True, 128, 255).payload == bytes([0x0A, 128, 255])
    assert build_leds(True, False, 0, 0).payload == bytes([0x08, 0, 0])
    assert build_leds(False, True, 0, 0).payload == bytes([0x02, 0, 0])


def test_leds_bounds():
    with pytest.raises(InvalidArgument):
        build_leds(False, False, 256, 0)
    with pytest.raises(InvalidArgument):
        build_leds(False, False, 0, -1)


def test_build_motors():
    assert build_motors(True, True, True).payload == bytes([0x07])
    assert build_motors(False, True, False).payload == bytes([0x02])


def test_build_baud():
    assert build_baud(11).to_bytes() == bytes([129, 11])
    with pytest.raises(InvalidArgument):
        build_baud(12)


def test_build_song():
    """Song number, note count, then note/duration pairs."""
    frame = build_song(3, [(60, 32), (64, 16)])
    assert frame.to_bytes() == bytes([140, 3, 2, 60, 32, 64, 16])


def test_song_bounds():
    with pytest.raises(InvalidArgument):
        build_song(16, [(60, 32)])
    with pytest.raises(InvalidArgument):
        build_song(0, [])
    with pytest.raises(InvalidArgument):
        build_song(0, [(60, 32)] * 17)
    with pytest.raises(InvalidArgument):
        build_song(0, [(30, 32)])


def test_build_play():
    assert build_play(15).to_bytes() == bytes([141, 15])
    with pytest.raises(InvalidArgument):
        build_play(16)


def test_build_sensors():
    assert build_sensors(SensorCode.DISTANCE).to_bytes() == bytes([0x8E, 19])
    with pytest.raises(UnknownSensorCode):
        build_sensors(99)


def test_build_query_list():
    """Count byte, then the IDs in caller order."""
    frame = build_query_list([SensorCode.ANGLE, SensorCode.WALL])
    assert frame.to_bytes() == bytes([0x95, 2, 20, 8])


def test_query_list_validates_every_code():
    with pytest.raises(UnknownSensorCode):
        build_query_list([SensorCode.WALL, 77])


def test_build_stream():
    frame = build_stream([SensorCode.CLIFF_RIGHT, SensorCode.DISTANCE])
    assert frame.to_bytes() == bytes([0x94, 2, 12, 19])


def test_stream_needs_packets():
    with pytest.raises(InvalidArgument):
        build_stream([])


def test_stream_frame_must_fit_length_byte():
    """Six copies of group 6 would carry 318 data bytes."""
    with pytest.raises(InvalidArgument):
        build_stream([SensorCode.GROUP_6] * 6)


def test_build_pause_resume():
    assert build_pause_resume_stream(False).to_bytes() == bytes([0x96, 0x00])
    assert build_pause_resume_stream(True).to_bytes() == bytes([0x96, 0x01])


def test_frame_repr():
    """CommandFrame repr should be readable."""
    r = repr(build_drive(200, -100))
    assert "DRIVE" in r
    assert "00 c8 ff 9c" in r
