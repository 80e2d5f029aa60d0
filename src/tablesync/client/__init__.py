"""
Room clients: the state container and its local and remote variants.
"""

from .base import RoomClient
from .factory import ClientFactory
from .local import LocalRoomClient
from .remote import RemoteRoomClient

__all__ = ["RoomClient", "LocalRoomClient", "RemoteRoomClient", "ClientFactory"]
