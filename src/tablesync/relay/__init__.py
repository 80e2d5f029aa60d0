"""
Relay server hosting authoritative rooms over websockets.
"""

from .server import create_app, RoomHub, RelayRoom

__all__ = ["create_app", "RoomHub", "RelayRoom"]
