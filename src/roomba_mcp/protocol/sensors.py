"""Sensor packet IDs and the packet length table.

Packets 0-6 are groups of the single packets that follow them; 7-42 are
individual sensor values of one or two bytes, high byte first.

Group contents::

    +-------+---------+-------+
    | Group | Packets | Bytes |
    +-------+---------+-------+
    |   0   |  7-26   |  26   |
    |   1   |  7-16   |  10   |
    |   2   |  17-20  |   6   |
    |   3   |  21-26  |  10   |
    |   4   |  27-34  |  14   |
    |   5   |  35-42  |  12   |
    |   6   |  7-42   |  52   |
    +-------+---------+-------+
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import Mapping

from ..errors import UnknownSensorCode


class SensorCode(IntEnum):
    """Sensor packet identifiers."""

    GROUP_0 = 0
    GROUP_1 = 1
    GROUP_2 = 2
    GROUP_3 = 3
    GROUP_4 = 4
    GROUP_5 = 5
    GROUP_6 = 6
    BUMPS_WHEEL_DROPS = 7
    WALL = 8
    CLIFF_LEFT = 9
    CLIFF_FRONT_LEFT = 10
    CLIFF_FRONT_RIGHT = 11
    CLIFF_RIGHT = 12
    VIRTUAL_WALL = 13
    WHEEL_OVERCURRENTS = 14
    DIRT_DETECT = 15
    UNUSED_16 = 16
    IR_OMNI = 17
    BUTTONS = 18
    DISTANCE = 19
    ANGLE = 20
    CHARGING_STATE = 21
    VOLTAGE = 22
    CURRENT = 23
    TEMPERATURE = 24
    BATTERY_CHARGE = 25
    BATTERY_CAPACITY = 26
    WALL_SIGNAL = 27
    CLIFF_LEFT_SIGNAL = 28
    CLIFF_FRONT_LEFT_SIGNAL = 29
    CLIFF_FRONT_RIGHT_SIGNAL = 30
    CLIFF_RIGHT_SIGNAL = 31
    DIGITAL_INPUTS = 32
    ANALOG_INPUT = 33
    CHARGING_SOURCES = 34
    OI_MODE = 35
    SONG_NUMBER = 36
    SONG_PLAYING = 37
    NUM_STREAM_PACKETS = 38
    REQUESTED_VELOCITY = 39
    REQUESTED_RADIUS = 40
    REQUESTED_RIGHT_VELOCITY = 41
    REQUESTED_LEFT_VELOCITY = 42


_TWO_BYTE = {
    SensorCode.DISTANCE,
    SensorCode.ANGLE,
    SensorCode.VOLTAGE,
    SensorCode.CURRENT,
    SensorCode.BATTERY_CHARGE,
    SensorCode.BATTERY_CAPACITY,
    SensorCode.WALL_SIGNAL,
    SensorCode.CLIFF_LEFT_SIGNAL,
    SensorCode.CLIFF_FRONT_LEFT_SIGNAL,
    SensorCode.CLIFF_FRONT_RIGHT_SIGNAL,
    SensorCode.CLIFF_RIGHT_SIGNAL,
    SensorCode.ANALOG_INPUT,
    SensorCode.REQUESTED_VELOCITY,
    SensorCode.REQUESTED_RADIUS,
    SensorCode.REQUESTED_RIGHT_VELOCITY,
    SensorCode.REQUESTED_LEFT_VELOCITY,
}

_GROUP_LENGTHS = {
    SensorCode.GROUP_0: 26,
    SensorCode.GROUP_1: 10,
    SensorCode.GROUP_2: 6,
    SensorCode.GROUP_3: 10,
    SensorCode.GROUP_4: 14,
    SensorCode.GROUP_5: 12,
    SensorCode.GROUP_6: 52,
}


def _build_table() -> dict[SensorCode, int]:
    table: dict[SensorCode, int] = dict(_GROUP_LENGTHS)
    for code in SensorCode:
        if code in table:
            continue
        table[code] = 2 if code in _TWO_BYTE else 1
    return table


SENSOR_PACKET_LENGTH: Mapping[SensorCode, int] = MappingProxyType(_build_table())


def length_of(code: int) -> int:
    """Return the payload length in bytes of a sensor packet.

    Raises:
        UnknownSensorCode: If ``code`` has no registered length.
    """
    if isinstance(code, bool) or not isinstance(code, int):
        raise UnknownSensorCode(code)
    try:
        return SENSOR_PACKET_LENGTH[code]
    except KeyError:
        raise UnknownSensorCode(code) from None


def sensor_code(value: int | str) -> SensorCode:
    """Resolve a packet ID or a packet name (``"distance"``) to a SensorCode."""
    if isinstance(value, str):
        name = value.strip().upper().replace("-", "_").replace(" ", "_")
        if name.isdigit():
            return sensor_code(int(name))
        try:
            return SensorCode[name]
        except KeyError:
            raise UnknownSensorCode(value) from None
    length_of(value)
    return SensorCode(value)


def total_length(codes) -> int:
    """Sum of the payload lengths of ``codes``, validating each one."""
    return sum(length_of(code) for code in codes)
