"""Byte channels to the robot: a serial port or the in-process simulator."""

from .base import Transport, read_exact
from .serial_connection import SerialConnection
from .simulator import SimulatedRoomba
