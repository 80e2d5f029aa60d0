"""
Wire events and the websocket transport used by the remote client.
"""

from .events import *
from .websocket import WebSocketTransport, websocket_transport_factory

__all__ = ["WebSocketTransport", "websocket_transport_factory"]
