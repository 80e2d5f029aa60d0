"""
Room state synchronization for turn-based multiplayer card games.

A rules engine (pure reducer plus bot policy) is hosted by a room client,
either locally or bridged to a relay over a transport.
"""

__version__ = "0.1.0"

from .client import ClientFactory, LocalRoomClient, RemoteRoomClient, RoomClient
from .config import ClientConfig, RelayConfig, load_engine
from .errors import SyncError
from .models import GameEngine, StatusState, create_game_engine, make_action
from .reducer import create_initial_state_factory, create_reducer
from .scheduling import AsyncioScheduler, ManualScheduler
from .snapshot import hydrate_room_snapshot

__all__ = [
    "AsyncioScheduler",
    "ClientConfig",
    "ClientFactory",
    "GameEngine",
    "LocalRoomClient",
    "ManualScheduler",
    "RelayConfig",
    "RemoteRoomClient",
    "RoomClient",
    "StatusState",
    "SyncError",
    "create_game_engine",
    "create_initial_state_factory",
    "create_reducer",
    "hydrate_room_snapshot",
    "load_engine",
    "make_action",
]
