"""Client models and the rules-engine contract"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .constants import STATUS_IDLE
from .errors import SyncError, INVALID_ENGINE

RoomState = Dict[str, Any]
Action = Dict[str, Any]


@dataclass(frozen=True)
class StatusState:
    status: str = STATUS_IDLE  # idle|connecting|connected|disconnected|error
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class GameEngine:
    """
    Rules engine consumed by the clients.

    The reducer must be pure and must return the very same state object when
    an action causes no change; clients use identity to detect no-ops.
    """
    id: str
    create_initial_state: Callable[..., RoomState]
    reducer: Callable[[RoomState, Action], RoomState]
    name: str = ''
    get_bot_action: Optional[Callable[[RoomState, Dict[str, Any]], Optional[Action]]] = None
    bot_think_delay: float = 0  # milliseconds
    metadata: Dict[str, Any] = field(default_factory=dict)


REQUIRED_ENGINE_FIELDS = ('id', 'create_initial_state', 'reducer')


def create_game_engine(**definition) -> GameEngine:
    """Validate an engine definition and build a GameEngine from it."""
    for key in REQUIRED_ENGINE_FIELDS:
        if definition.get(key) is None:
            raise SyncError(INVALID_ENGINE, f'Game engine definition missing required field "{key}"')

    if not isinstance(definition['id'], str) or not definition['id']:
        raise SyncError(INVALID_ENGINE, 'Game engine id must be a non-empty string')

    for key in ('create_initial_state', 'reducer'):
        if not callable(definition[key]):
            raise SyncError(INVALID_ENGINE, f'Game engine field "{key}" must be callable')

    bot_action = definition.get('get_bot_action')
    if bot_action is not None and not callable(bot_action):
        raise SyncError(INVALID_ENGINE, 'Game engine field "get_bot_action" must be callable')

    definition.setdefault('name', definition['id'])
    if definition.get('bot_think_delay') is None:
        definition['bot_think_delay'] = 0
    if definition.get('metadata') is None:
        definition['metadata'] = {}
    return GameEngine(**definition)


def make_action(action_type: str, payload: Any = None) -> Action:
    """Build an action dict; the payload key is omitted when there is none."""
    action: Action = {'type': action_type}
    if payload is not None:
        action['payload'] = payload
    return action
