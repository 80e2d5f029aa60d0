"""
Reducer composition helpers for rules engines.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

from .models import Action, RoomState

Handler = Callable[[RoomState, Action], RoomState]


def create_reducer(action_map: Mapping) -> Callable[[RoomState, Optional[Action]], RoomState]:
    """
    Build a reducer that dispatches on ``action["type"]``.

    Unknown or missing action types return the input state itself, which
    clients read as "no change".
    """
    if not isinstance(action_map, Mapping):
        raise TypeError('create_reducer requires an action map')

    def reducer(state: RoomState, action: Optional[Action] = None) -> RoomState:
        action = action or {}
        action_type = action.get('type')
        handler = action_map.get(action_type) if isinstance(action_type, str) else None
        if not callable(handler):
            return state
        return handler(state, action)

    return reducer


def create_initial_state_factory(builder: Callable[[], Dict[str, Any]]):
    """Wrap a base-state builder so it can be bound to a user identity."""
    if not callable(builder):
        raise TypeError('create_initial_state_factory requires a base state builder')

    def create_initial_state(user_id: Optional[str] = None, user_name: Optional[str] = None) -> RoomState:
        state = builder()
        if user_id:
            state['user_id'] = user_id
        if isinstance(user_name, str):
            state['user_name'] = user_name
        return state

    return create_initial_state
