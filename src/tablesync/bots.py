"""Lobby bot handlers shared by rules engines"""

import math
from typing import Any, Callable, Dict, Optional, Union

from .constants import PHASE_LOBBY, PLAYER_NOT_READY, PLAYER_READY
from .lobby import create_history_pusher, make_id
from .models import Action, RoomState

DEFAULT_MESSAGES = {
    'lobby_only': None,
    'host_only': None,
    'lobby_full': None,
    'auto_ready': None,
}


def _history_writer(limit: Optional[int]):
    if not isinstance(limit, int):
        def write(history, message):
            log = list(history) if isinstance(history, (list, tuple)) else []
            return [message, *log] if message else log
        return write

    push = create_history_pusher(limit)
    return lambda history, message: push(history, message) if message else (history or [])


def create_bot_handlers(
    seat_limit: Union[int, Callable[[RoomState], Any], None] = None,
    banner_when_full: Union[str, Callable[[int, RoomState], str], None] = None,
    messages: Optional[Dict[str, str]] = None,
    history_limit: Optional[int] = None,
    name_prefix: str = 'Bot',
) -> Dict[str, Callable[[RoomState, Action], RoomState]]:
    """
    Build add_bot, remove_bot and auto_ready_bots reducer handlers.

    Args:
        seat_limit: Seat count, or a callable reading it from state; falls back to
            ``room_settings.max_players`` and then to no limit
        banner_when_full: Banner text (or builder) shown when no seat is free
        messages: History messages for lobby_only, host_only, lobby_full, auto_ready
        history_limit: Maximum history length, unbounded when omitted
        name_prefix: Bot display name prefix
    """
    merged = {**DEFAULT_MESSAGES, **(messages or {})}
    write_history = _history_writer(history_limit)

    def resolve_seat_limit(state: RoomState) -> float:
        candidate = seat_limit(state) if callable(seat_limit) else seat_limit
        if candidate is None:
            candidate = (state.get('room_settings') or {}).get('max_players')
        if isinstance(candidate, bool) or not isinstance(candidate, (int, float)) or candidate <= 0:
            return math.inf
        return math.floor(candidate)

    def append_history(state: RoomState, message: Optional[str]) -> RoomState:
        if not message:
            return state
        return {**state, 'history': write_history(state.get('history'), message)}

    def ensure_lobby_and_host(state: RoomState) -> Optional[RoomState]:
        if state.get('phase') != PHASE_LOBBY:
            return append_history(state, merged['lobby_only'])
        if state.get('host_id') != state.get('user_id'):
            return append_history(state, merged['host_only'])
        return None

    def add_bot(state: RoomState, action: Optional[Action] = None) -> RoomState:
        violation = ensure_lobby_and_host(state)
        if violation is not None:
            return violation

        limit = resolve_seat_limit(state)
        players = state.get('players') or []
        if len(players) >= limit:
            if callable(banner_when_full):
                return {**state, 'banner': banner_when_full(limit, state)}
            if isinstance(banner_when_full, str):
                return {**state, 'banner': banner_when_full}
            return append_history(state, merged['lobby_full'])

        counter = state.get('bot_counter') or 1
        bot_player = {
            'id': make_id('bot'),
            'name': f"{name_prefix} {counter}",
            'is_bot': True,
            'is_host': False,
            'is_ready': False,
            'status': PLAYER_NOT_READY,
        }
        return {**state, 'players': [*players, bot_player], 'bot_counter': counter + 1}

    def remove_bot(state: RoomState, action: Optional[Action] = None) -> RoomState:
        violation = ensure_lobby_and_host(state)
        if violation is not None:
            return violation

        players = state.get('players') or []
        for index in range(len(players) - 1, -1, -1):
            if players[index].get('is_bot'):
                return {**state, 'players': players[:index] + players[index + 1:]}

        spectators = state.get('spectators') or []
        for index in range(len(spectators) - 1, -1, -1):
            if spectators[index].get('is_bot'):
                return {**state, 'spectators': spectators[:index] + spectators[index + 1:]}

        return state

    def auto_ready_bots(state: RoomState, action: Optional[Action] = None) -> RoomState:
        if state.get('phase') != PHASE_LOBBY:
            return append_history(state, merged['lobby_only'])

        players = [
            {**player, 'is_ready': True, 'status': PLAYER_READY} if player.get('is_bot') else player
            for player in state.get('players') or []
        ]
        return append_history({**state, 'players': players}, merged['auto_ready'])

    return {
        'add_bot': add_bot,
        'remove_bot': remove_bot,
        'auto_ready_bots': auto_ready_bots,
    }
