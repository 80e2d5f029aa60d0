"""
WebSocket transport speaking the relay event protocol.
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from ..errors import SyncError, NOT_CONNECTED, REMOTE_ERROR, TRANSPORT_UNAVAILABLE
from ..serialization import dumps, loads
from .events import (
    OutboundEventType, create_action_event, create_join_event, parse_outbound_event
)

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """
    Transport adapter for RemoteRoomClient backed by the ``websockets`` client.

    ``connect`` opens ``<url>/ws/<room_id>``, joins the room and starts a
    reader task that routes relay events to the registered listeners.
    """

    def __init__(self, url: str, room_id: Optional[str] = None, connector: Optional[Callable] = None):
        self.url = url.rstrip('/')
        self.room_id = room_id
        self._connector = connector or websockets.connect
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._closing = False
        self._listeners: Dict[str, List[Callable]] = {
            'snapshot': [],
            'event': [],
            'disconnected': [],
            'error': [],
        }

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # ----- listener registration --------------------------------------

    def _register(self, kind: str, callback: Callable) -> Callable[[], None]:
        self._listeners[kind].append(callback)

        def unregister():
            if callback in self._listeners[kind]:
                self._listeners[kind].remove(callback)
        return unregister

    def on_snapshot(self, callback):
        return self._register('snapshot', callback)

    def on_event(self, callback):
        return self._register('event', callback)

    def on_disconnected(self, callback):
        return self._register('disconnected', callback)

    def on_error(self, callback):
        return self._register('error', callback)

    def _emit(self, kind: str, *args):
        for callback in list(self._listeners[kind]):
            callback(*args)

    # ----- connection --------------------------------------------------

    async def connect(self, options: Optional[Dict[str, Any]] = None):
        options = options or {}
        room_id = options.get('room_id') or self.room_id
        user_id = options.get('user_id')
        if not room_id or not user_id:
            raise SyncError(TRANSPORT_UNAVAILABLE, "WebSocket transport needs room_id and user_id to join")

        uri = f"{self.url}/ws/{room_id}"
        self.room_id = room_id
        self._closing = False
        self._ws = await self._connector(uri)
        await self._send(create_join_event(user_id, options.get('user_name')))
        self._reader = asyncio.create_task(self._read_loop(self._ws))
        logger.info(f"Connected to {uri} as {user_id}")

    async def disconnect(self):
        self._closing = True
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if ws is not None:
            await ws.close()
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

    async def send_action(self, action: Dict[str, Any]):
        if self._ws is None:
            raise SyncError(NOT_CONNECTED, "WebSocket transport is not connected")
        await self._send(create_action_event(action))

    async def _send(self, event):
        await self._ws.send(dumps(event.model_dump(mode='json')).decode())

    # ----- inbound -----------------------------------------------------

    async def _read_loop(self, ws):
        error = None
        try:
            async for raw in ws:
                self.handle_message(raw)
        except ConnectionClosed as e:
            error = e
        if not self._closing:
            logger.warning(f"Relay connection lost: {error}")
            self._ws = None
            self._emit('disconnected', error)

    def handle_message(self, raw):
        """Route one relay message to the matching listeners."""
        try:
            event = parse_outbound_event(loads(raw))
        except ValueError as e:
            logger.error(f"Dropping undecodable relay message: {e}")
            self._emit('error', SyncError(REMOTE_ERROR, f"Undecodable relay message: {e}"))
            return

        if event.type == OutboundEventType.STATE_FULL:
            self._emit('snapshot', event.state)
        elif event.type == OutboundEventType.EVENT:
            self._emit('event', event.action.model_dump())
        elif event.type == OutboundEventType.ERROR:
            self._emit('error', SyncError(REMOTE_ERROR, f"{event.code.value}: {event.message}"))
        elif event.type == OutboundEventType.JOIN_SUCCESS:
            logger.info(f"Joined room {event.room_id} as {event.user_id}")


def websocket_transport_factory(url: str):
    """Adapt WebSocketTransport to the ``factory(engine=..., options=...)`` contract."""
    def factory(engine=None, options=None):
        return WebSocketTransport(url, room_id=(options or {}).get('room_id'))
    return factory
