"""MCP server entry point for an Open Interface robot.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import queue
from typing import Any

from mcp.server.fastmcp import FastMCP

from .driver import Roomba
from .errors import RoombaError, TransportReadError
from .protocol.commands import RADIUS_STRAIGHT
from .protocol.framing import packet_dict
from .protocol.opcodes import OpCode, SIMPLE_COMMANDS
from .protocol.sensors import SENSOR_PACKET_LENGTH, sensor_code
from .streaming import QUEUE_SIZE, StreamSession
from .transport.serial_connection import (
    DEFAULT_BAUDRATE,
    DEFAULT_PORT,
    SerialConnection,
)
from .transport.simulator import SimulatedRoomba

logger = logging.getLogger(__name__)

SIM_FRAME_INTERVAL = 0.015
MAX_FRAMES_PER_READ = 100
STREAM_QUEUE_SIZE = QUEUE_SIZE

mcp = FastMCP(
    "roomba",
    instructions="Control and read sensors of a robot speaking the iRobot Open Interface.",
)

# Global connection state
_connection: SerialConnection | SimulatedRoomba | None = None
_roomba: Roomba | None = None


def _get_roomba() -> Roomba:
    """Get the active driver, raising if not connected."""
    if _roomba is None:
        raise RuntimeError("Not connected to robot. Use the 'connect' tool first.")
    return _roomba


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUDRATE,
    simulate: bool = False,
) -> dict[str, Any]:
    """Open the serial link to the robot and send Start.

    Args:
        port: Serial device path (default /dev/ttyUSB0).
        baudrate: 19200, 57600 or 115200.
        simulate: Talk to the built-in simulator instead of a serial port.
    """
    global _connection, _roomba
    if _roomba is not None:
        return {"connected": True, "message": "Already connected"}

    if simulate:
        _connection = SimulatedRoomba(frame_interval=SIM_FRAME_INTERVAL)
        result: dict[str, Any] = {"connected": True, "simulated": True}
    else:
        try:
            _connection = SerialConnection(port, baudrate)
            info = _connection.open()
        except (ValueError, ConnectionError) as e:
            _connection = None
            return {"error": str(e)}
        result = {"connected": True, "port": info.port, "baudrate": info.baudrate}

    roomba = Roomba(_connection)
    try:
        roomba.start()
    except RoombaError as e:
        _connection.close()
        _connection = None
        return {"error": f"Start command failed: {e}"}
    _roomba = roomba
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Pause any running stream and close the link."""
    global _connection, _roomba
    if _roomba is not None:
        try:
            _roomba.pause_stream(timeout=1.0)
        except RoombaError as e:
            logger.warning("Failed to pause stream on disconnect: %s", e)
    if _connection is not None:
        _connection.close()
    _connection = None
    _roomba = None
    return {"disconnected": True}


# ─── COMMAND TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def send_command(command: str) -> dict[str, Any]:
    """Send a single-byte command.

    Args:
        command: One of start, passive, control, safe, full, clean, spot,
                 max, seek_dock.
    """
    roomba = _get_roomba()
    try:
        roomba.send(command)
    except RoombaError as e:
        return {"error": str(e)}
    return {"sent": command, "opcode": int(SIMPLE_COMMANDS[command])}


@mcp.tool()
def drive(velocity: int, radius: int = RADIUS_STRAIGHT) -> dict[str, Any]:
    """Drive the robot.

    Args:
        velocity: Average wheel velocity, -500 to 500 mm/s.
        radius: Turn radius, -2000 to 2000 mm. 32768 drives straight
                (default), -1 / 1 turn in place clockwise / counter-clockwise.
    """
    roomba = _get_roomba()
    try:
        roomba.drive(velocity, radius)
    except RoombaError as e:
        return {"error": str(e)}
    return {"velocity": velocity, "radius": radius}


@mcp.tool()
def drive_direct(right: int, left: int) -> dict[str, Any]:
    """Set each wheel's velocity independently.

    Args:
        right: Right wheel velocity, -500 to 500 mm/s.
        left: Left wheel velocity, -500 to 500 mm/s.
    """
    roomba = _get_roomba()
    try:
        roomba.drive_direct(right, left)
    except RoombaError as e:
        return {"error": str(e)}
    return {"right": right, "left": left}


@mcp.tool()
def stop() -> dict[str, Any]:
    """Stop the drive wheels."""
    roomba = _get_roomba()
    try:
        roomba.stop()
    except RoombaError as e:
        return {"error": str(e)}
    return {"stopped": True}


@mcp.tool()
def set_leds(
    advance: bool = False,
    play: bool = False,
    power_color: int = 0,
    power_intensity: int = 0,
) -> dict[str, Any]:
    """Set the Advance/Play LEDs and the Power LED color and intensity.

    Args:
        advance: Advance LED on.
        play: Play LED on.
        power_color: 0 = green, 255 = red.
        power_intensity: 0 = off, 255 = full.
    """
    roomba = _get_roomba()
    try:
        roomba.leds(advance, play, power_color, power_intensity)
    except RoombaError as e:
        return {"error": str(e)}
    return {
        "advance": advance,
        "play": play,
        "power_color": power_color,
        "power_intensity": power_intensity,
    }


# ─── SENSOR TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def read_sensor(packet: str) -> dict[str, Any]:
    """Read one sensor packet and return its raw bytes.

    Args:
        packet: Packet name (e.g. 'distance') or ID (e.g. '19').
    """
    roomba = _get_roomba()
    try:
        code = sensor_code(packet)
        data = roomba.sensors(code)
    except TransportReadError as e:
        return {"error": str(e), "partial": bytes(e.partial).hex(" ")}
    except RoombaError as e:
        return {"error": str(e)}
    return packet_dict(code, data)


@mcp.tool()
def query_sensors(packets: list[str]) -> dict[str, Any]:
    """Read several sensor packets in one request.

    Args:
        packets: Packet names or IDs, returned in the same order.
    """
    roomba = _get_roomba()
    try:
        codes = [sensor_code(p) for p in packets]
        values = roomba.query_list(codes)
    except TransportReadError as e:
        return {
            "error": str(e),
            "partial": [bytes(p).hex(" ") for p in e.partial],
        }
    except RoombaError as e:
        return {"error": str(e)}
    return {"packets": [packet_dict(c, v) for c, v in zip(codes, values)]}


# ─── STREAM TOOLS ─────────────────────────────────────────────────────

def _session_status(session: StreamSession | None) -> dict[str, Any]:
    if session is None:
        return {"state": "none"}
    status: dict[str, Any] = {
        "state": session.state.value,
        "packets": [int(c) for c in session.codes],
        "frames_received": session.frames_received,
        "frames_dropped": session.frames_dropped,
    }
    if session.error is not None:
        status["error"] = str(session.error)
    return status


@mcp.tool()
def start_stream(packets: list[str]) -> dict[str, Any]:
    """Start a sensor stream; the robot sends a frame every 15 ms.

    Args:
        packets: Packet names or IDs to include in each frame.
    """
    roomba = _get_roomba()
    try:
        codes = [sensor_code(p) for p in packets]
        session = roomba.stream(codes, maxsize=STREAM_QUEUE_SIZE)
    except RoombaError as e:
        return {"error": str(e)}
    return _session_status(session)


@mcp.tool()
def read_stream(max_frames: int = 10, timeout: float = 1.0) -> dict[str, Any]:
    """Collect frames from the running stream.

    Frames the client has not read are kept up to a fixed number; older
    ones are dropped and counted in ``frames_dropped``.

    Args:
        max_frames: Maximum frames to return (1-100).
        timeout: Seconds to wait for each frame.
    """
    session = _get_roomba().session
    if session is None:
        return {"error": "No stream has been started"}

    frames = []
    for _ in range(max(1, min(max_frames, MAX_FRAMES_PER_READ))):
        try:
            frame = session.get(timeout=timeout)
        except queue.Empty:
            break
        if frame is None:
            break
        frames.append(frame.to_dict())

    result = _session_status(session)
    result["frames"] = frames
    return result


@mcp.tool()
def pause_stream() -> dict[str, Any]:
    """Pause the running stream after its current frame."""
    roomba = _get_roomba()
    try:
        session = roomba.pause_stream(timeout=2.0)
    except RoombaError as e:
        return {"error": str(e)}
    return _session_status(session)


@mcp.tool()
def stream_status() -> dict[str, Any]:
    """State of the current stream session."""
    return _session_status(_get_roomba().session)


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("roomba://device/status")
def resource_device_status() -> str:
    """Connection state and stream session."""
    if _roomba is None:
        return json.dumps({"connected": False})
    status: dict[str, Any] = {
        "connected": True,
        "simulated": isinstance(_connection, SimulatedRoomba),
        "stream": _session_status(_roomba.session),
    }
    if isinstance(_connection, SerialConnection):
        status["port"] = _connection.port_info.port
        status["baudrate"] = _connection.port_info.baudrate
    return json.dumps(status)


@mcp.resource("roomba://catalog/sensors")
def resource_sensor_catalog() -> str:
    """All sensor packets with their IDs and data lengths."""
    sensors = [
        {"id": int(code), "name": code.name.lower(), "length": length}
        for code, length in sorted(SENSOR_PACKET_LENGTH.items())
    ]
    return json.dumps({"sensors": sensors, "count": len(sensors)})


@mcp.resource("roomba://catalog/opcodes")
def resource_opcode_catalog() -> str:
    """All command op codes."""
    opcodes = [{"opcode": int(op), "name": op.name.lower()} for op in OpCode]
    return json.dumps({"opcodes": opcodes, "count": len(opcodes)})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def monitor_sensors(packets: str) -> str:
    """Guide the AI through streaming and reporting sensor packets.

    Args:
        packets: Comma-separated packet names, e.g. "distance, angle".
    """
    return f"""Monitor these sensor packets: {packets}.
Steps:
- connect to the robot (use simulate=true if no hardware is attached)
- start_stream with the packets listed above
- read_stream a few times and report the raw bytes of each packet
- pause_stream when done, then check stream_status for errors

Values are raw big-endian bytes; see the roomba://catalog/sensors resource
for each packet's length."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
