"""
FastAPI relay hosting authoritative rooms for remote clients.

Each room is run by a LocalRoomClient owned by the relay, so bot automation
happens here. Clients send intents; every committed change is pushed back as
a full snapshot personalised with the receiving connection's identity.
"""

import asyncio
import dataclasses
import logging
from typing import Callable, Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..client.local import LocalRoomClient
from ..config import RelayConfig, load_engine
from ..constants import CREATE_ROOM, DEFAULT_PLAYER_NAME, RESET_SESSION
from ..lobby import normalize_room_id
from ..models import GameEngine, make_action
from ..scheduling import AsyncioScheduler
from ..serialization import clone_state, loads
from ..transport.events import (
    ActionEvent, ErrorCode, JoinEvent, RequestStateEvent, create_error_event,
    create_join_success_event, create_state_full_event, parse_inbound_event,
)

logger = logging.getLogger(__name__)


def with_sender_identity(engine: GameEngine) -> GameEngine:
    """Wrap the reducer so an action carrying ``sender`` is reduced as that user."""
    reducer = engine.reducer

    def reduce_as_sender(state, action=None):
        sender = (action or {}).get('sender')
        if not sender:
            return reducer(state, action)
        acting = {**state, 'user_id': sender['user_id'], 'user_name': sender['user_name']}
        next_state = reducer(acting, action)
        if next_state is acting:
            return state
        return next_state

    return dataclasses.replace(engine, reducer=reduce_as_sender)


@dataclasses.dataclass
class Connection:
    user_id: str
    user_name: str

    @property
    def identity(self) -> Dict[str, str]:
        return {'user_id': self.user_id, 'user_name': self.user_name}


class RelayRoom:
    """One hosted room and the websockets attached to it."""

    def __init__(self, room_id: str, engine: GameEngine, on_empty: Optional[Callable[[str], None]] = None):
        self.room_id = room_id
        self.on_empty = on_empty
        self.client = LocalRoomClient(with_sender_identity(engine), scheduler=AsyncioScheduler())
        self.connections: Dict[WebSocket, Connection] = {}
        self._unsubscribe = None
        self._send_lock = asyncio.Lock()
        self._broadcast_scheduled = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def opened(self) -> bool:
        return self._unsubscribe is not None

    async def join(self, websocket: WebSocket, event: JoinEvent):
        conn = Connection(user_id=event.user_id, user_name=event.user_name or DEFAULT_PLAYER_NAME)
        await websocket.send_text(create_join_success_event(self.room_id, conn.user_id).model_dump_json())
        self.connections[websocket] = conn

        if not self.opened:
            await self.client.connect(**conn.identity)
            self._unsubscribe = self.client.subscribe(self._on_change)
            self.client.create_room(room_id=self.room_id)
        else:
            self.client.load_room(self.client.export_room_snapshot(), conn.identity)
        logger.info(f"User {conn.user_id} joined room {self.room_id}")

    async def apply(self, websocket: WebSocket, event: ActionEvent):
        conn = self.connections[websocket]
        action_type = event.action.type

        if action_type == RESET_SESSION:
            # Leaving is a client-side concern; the room itself is kept.
            logger.info(f"Ignoring session reset from {conn.user_id} in room {self.room_id}")
            return

        payload = event.action.payload
        if action_type == CREATE_ROOM:
            if self.client.get_state().get('host_id') != conn.user_id:
                await websocket.send_text(create_error_event(
                    ErrorCode.ACTION_NOT_ALLOWED, "Only the host can reconfigure the room"
                ).model_dump_json())
                return
            payload = {**(payload or {}), 'room_id': self.room_id}

        self.client.dispatch({**make_action(action_type, payload), 'sender': conn.identity})

        if action_type == CREATE_ROOM:
            # Re-seat everyone else who is still attached.
            for other in list(self.connections.values()):
                if other.user_id != conn.user_id:
                    self.client.load_room(self.client.export_room_snapshot(), other.identity)

    async def send_state(self, websocket: WebSocket):
        async with self._send_lock:
            await self._send_state(websocket, self.client.get_state())

    def leave(self, websocket: WebSocket) -> Optional[Connection]:
        conn = self.connections.pop(websocket, None)
        if conn:
            logger.info(f"User {conn.user_id} left room {self.room_id}")
        return conn

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        self.client.disconnect()

    def personalize(self, conn: Connection, snapshot) -> str:
        state = clone_state(snapshot)
        state['user_id'] = conn.user_id
        state['user_name'] = conn.user_name
        return create_state_full_event(state).model_dump_json()

    def _on_change(self, snapshot):
        # Bursts of synchronous changes collapse into one broadcast of the latest state.
        if self._broadcast_scheduled:
            return
        self._broadcast_scheduled = True
        task = asyncio.get_running_loop().create_task(self._broadcast())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _broadcast(self):
        async with self._send_lock:
            self._broadcast_scheduled = False
            snapshot = self.client.get_state()
            for websocket in list(self.connections):
                await self._send_state(websocket, snapshot)

    async def _send_state(self, websocket: WebSocket, snapshot):
        conn = self.connections.get(websocket)
        if conn is None:
            return
        try:
            await websocket.send_text(self.personalize(conn, snapshot))
        except Exception as e:
            logger.error(f"Error broadcasting to {conn.user_id}: {e}")
            self.leave(websocket)
            if not self.connections and self.on_empty:
                self.on_empty(self.room_id)


class RoomHub:
    """Tracks hosted rooms; a room is torn down when its last connection leaves."""

    def __init__(self, engine: GameEngine):
        self.engine = engine
        self.rooms: Dict[str, RelayRoom] = {}

    def get_or_create(self, room_id: str) -> RelayRoom:
        room = self.rooms.get(room_id)
        if room is None:
            room = RelayRoom(room_id, self.engine, on_empty=self.close_room)
            self.rooms[room_id] = room
            logger.info(f"Opened room {room_id} with engine {self.engine.id}")
        return room

    def leave(self, room_id: str, websocket: WebSocket):
        room = self.rooms.get(room_id)
        if room is None:
            return
        room.leave(websocket)
        if not room.connections:
            self.close_room(room_id)

    def close_room(self, room_id: str):
        room = self.rooms.pop(room_id, None)
        if room is None:
            return
        room.close()
        logger.info(f"Closed empty room {room_id}")

    @property
    def connection_count(self) -> int:
        return sum(len(room.connections) for room in self.rooms.values())


async def handle_event(hub: RoomHub, websocket: WebSocket, room_id: str, event, joined: bool) -> bool:
    """Handle one inbound event; returns whether the socket has joined its room."""
    if isinstance(event, JoinEvent):
        if joined:
            await websocket.send_text(create_error_event(
                ErrorCode.ACTION_NOT_ALLOWED, "Already joined"
            ).model_dump_json())
            return True
        await hub.get_or_create(room_id).join(websocket, event)
        return True

    room = hub.rooms.get(room_id)
    if not joined or room is None or websocket not in room.connections:
        await websocket.send_text(create_error_event(
            ErrorCode.NOT_JOINED, "Send a join event first"
        ).model_dump_json())
        return False

    if isinstance(event, ActionEvent):
        await room.apply(websocket, event)
    elif isinstance(event, RequestStateEvent):
        await room.send_state(websocket)
    else:
        raise ValueError(f"Unhandled event type: {type(event)}")
    return True


def create_app(engine: Optional[GameEngine] = None, config: Optional[RelayConfig] = None) -> FastAPI:
    """Build the relay application for one rules engine."""
    config = config or RelayConfig()
    engine = engine or load_engine(config.engine_path)
    hub = RoomHub(engine)

    app = FastAPI(title="Tablesync Relay", version=__version__)
    app.state.hub = hub
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "engine": engine.id,
            "rooms": len(hub.rooms),
            "connections": hub.connection_count,
        }

    @app.websocket("/ws/{room_id}")
    async def websocket_endpoint(websocket: WebSocket, room_id: str):
        await websocket.accept()
        room_id = normalize_room_id(room_id)
        if not room_id:
            await websocket.send_text(create_error_event(
                ErrorCode.INVALID_EVENT, "Room id must not be blank"
            ).model_dump_json())
            await websocket.close()
            return
        joined = False
        try:
            while True:
                raw_data = await websocket.receive_text()
                try:
                    event = parse_inbound_event(loads(raw_data))
                    joined = await handle_event(hub, websocket, room_id, event, joined)
                except ValueError as e:
                    error_event = create_error_event(ErrorCode.INVALID_EVENT, str(e))
                    await websocket.send_text(error_event.model_dump_json())
                except Exception as e:
                    logger.error(f"Error handling event in room {room_id}: {e}")
                    error_event = create_error_event(ErrorCode.INTERNAL, "Internal server error")
                    await websocket.send_text(error_event.model_dump_json())
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected from room {room_id}")
        except Exception as e:
            logger.error(f"WebSocket error in room {room_id}: {e}")
        finally:
            hub.leave(room_id, websocket)

    return app
