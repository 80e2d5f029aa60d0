"""
Lobby mechanics shared by every card game: readiness, room creation,
seat layout and session reset.
"""

import math
import uuid
from typing import Any, Callable, Dict, List, Optional

from .constants import (
    PHASE_IDLE, PHASE_LOBBY, PLAYER_NEEDS_TIME, PLAYER_NOT_READY, PLAYER_READY, PLAYER_STATUSES,
)
from .models import Action, RoomState

STATUS_SEQUENCE = (PLAYER_NOT_READY, PLAYER_READY, PLAYER_NEEDS_TIME)

HISTORY_LIMIT = 8
LOBBY_BANNER = 'Waiting for players to ready up...'

DEFAULT_SETTINGS = {
    'max_players': 4,
    'initial_bots': 0,
    'room_name': '',
    'rules': {},
}


def get_next_status(current: Optional[str]) -> str:
    index = STATUS_SEQUENCE.index(current) if current in STATUS_SEQUENCE else 0
    return STATUS_SEQUENCE[(index + 1) % len(STATUS_SEQUENCE)]


def normalise_status(player: Optional[Dict[str, Any]]) -> str:
    if player and player.get('status') in STATUS_SEQUENCE:
        return player['status']
    return PLAYER_READY if player and player.get('is_ready') else PLAYER_NOT_READY


def prepare_seated_player(player: Dict[str, Any]) -> Dict[str, Any]:
    return {**player, 'is_spectator': False, 'is_ready': False, 'status': PLAYER_NOT_READY}


def prepare_spectator(player: Dict[str, Any]) -> Dict[str, Any]:
    return {**player, 'is_spectator': True, 'is_ready': False, 'status': PLAYER_NOT_READY}


def make_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


def make_room_code() -> str:
    return uuid.uuid4().hex[:4].upper()


def find_player(players, player_id) -> Optional[Dict[str, Any]]:
    for player in players or []:
        if player.get('id') == player_id:
            return player
    return None


def create_history_pusher(limit: int) -> Callable[[List[str], str], List[str]]:
    """Newest message first, history truncated to ``limit`` entries."""
    def push(history, message):
        log = list(history) if isinstance(history, (list, tuple)) else []
        return [message, *log][:limit]
    return push


push_history = create_history_pusher(HISTORY_LIMIT)


def create_base_state() -> RoomState:
    return {
        'user_id': make_id('player'),
        'user_name': '',
        'phase': PHASE_IDLE,  # idle|roomLobby|playing|finished
        'room_id': None,
        'room_name': None,
        'host_id': None,
        'players': [],
        'spectators': [],
        'hands': {},
        'draw_pile': [],
        'discard_pile': [],
        'current_turn': None,
        'active_suit': None,
        'history': [],
        'banner': '',
        'bot_counter': 1,
        'room_settings': {**DEFAULT_SETTINGS, 'rules': {}},
    }


def _new_bot(counter: int) -> Dict[str, Any]:
    return {
        'id': make_id('bot'),
        'name': f"Bot {counter}",
        'is_bot': True,
        'is_host': False,
        'is_ready': False,
        'status': PLAYER_NOT_READY,
    }


def handle_set_name(state: RoomState, action: Action) -> RoomState:
    payload = action.get('payload')
    name = payload.strip() if isinstance(payload, str) else ''
    return {**state, 'user_name': name}


def normalize_room_id(room_id: str) -> str:
    return room_id.strip().upper()


def handle_create_room(state: RoomState, action: Action) -> RoomState:
    user_name = (state.get('user_name') or '').strip()
    if not user_name:
        return state

    payload = action.get('payload') or {}
    payload_settings = payload.get('settings') or {}
    config = {
        **DEFAULT_SETTINGS,
        **payload_settings,
        'rules': {**DEFAULT_SETTINGS['rules'], **(payload_settings.get('rules') or {})},
    }

    provided_room_id = payload.get('room_id')
    if isinstance(provided_room_id, str) and provided_room_id.strip():
        room_id = normalize_room_id(provided_room_id)
    else:
        room_id = make_room_code()

    host_player = {
        'id': state['user_id'],
        'name': user_name,
        'is_host': True,
        'is_bot': False,
        'is_ready': False,
        'status': PLAYER_NOT_READY,
    }
    players = [host_player]

    # Initial bots never take more seats than the room has.
    free_seats = config['max_players'] - 1 if isinstance(config.get('max_players'), int) else math.inf
    bot_counter = 1
    for _ in range(int(min(config.get('initial_bots') or 0, free_seats))):
        players.append(_new_bot(bot_counter))
        bot_counter += 1

    return {
        **state,
        'phase': PHASE_LOBBY,
        'room_id': room_id,
        'room_name': config.get('room_name') or f"Room {room_id}",
        'host_id': state['user_id'],
        'players': players,
        'spectators': [],
        'hands': {},
        'draw_pile': [],
        'discard_pile': [],
        'current_turn': None,
        'active_suit': None,
        'history': [],
        'banner': LOBBY_BANNER,
        'bot_counter': bot_counter,
        'room_settings': config,
    }


def handle_toggle_ready(state: RoomState, action: Action) -> RoomState:
    player_id = (action.get('payload') or {}).get('player_id')
    if not player_id or not find_player(state.get('players'), player_id):
        return state

    players = []
    for player in state['players']:
        if player.get('id') == player_id:
            next_status = get_next_status(normalise_status(player))
            player = {**player, 'status': next_status, 'is_ready': next_status == PLAYER_READY}
        players.append(player)
    return {**state, 'players': players}


def handle_set_player_status(state: RoomState, action: Action) -> RoomState:
    payload = action.get('payload') or {}
    player_id = payload.get('player_id')
    status = payload.get('status')
    if not player_id or status not in PLAYER_STATUSES:
        return state
    if not find_player(state.get('players'), player_id):
        return state

    players = [
        {**player, 'status': status, 'is_ready': status == PLAYER_READY}
        if player.get('id') == player_id else player
        for player in state['players']
    ]
    return {**state, 'players': players}


def _resolve_seat_limit(state: RoomState, requested: Any, record_count: int) -> int:
    if isinstance(requested, int) and not isinstance(requested, bool) and requested > 0:
        return requested
    configured = (state.get('room_settings') or {}).get('max_players')
    if isinstance(configured, int) and not isinstance(configured, bool) and configured > 0:
        return configured
    return max(record_count, 1)


def handle_set_seat_layout(state: RoomState, action: Action) -> RoomState:
    """Rearrange seats and bench from a host-supplied order, dropping kicked ids."""
    if state.get('phase') != PHASE_LOBBY:
        return state

    payload = action.get('payload') or {}
    host_id = state.get('host_id')
    kicked = {pid for pid in payload.get('kicked_ids') or [] if isinstance(pid, str)}
    kicked.discard(host_id)

    players = state.get('players') or []
    spectators = state.get('spectators') or []

    records: Dict[str, Dict[str, Any]] = {}
    for record in [*players, *spectators]:
        if record.get('id') not in kicked:
            records.setdefault(record.get('id'), record)

    user_id = state.get('user_id')
    user_name = (state.get('user_name') or '').strip()
    if user_id not in records and user_name and user_id not in kicked:
        records[user_id] = {
            'id': user_id,
            'name': user_name,
            'is_bot': False,
            'is_host': host_id == user_id,
            'is_ready': False,
            'status': PLAYER_NOT_READY,
            'is_spectator': False,
        }

    limit = _resolve_seat_limit(state, payload.get('max_seats'), len(records))

    seated: List[str] = []

    def seat(pid):
        if pid in records and pid not in seated:
            seated.append(pid)

    for pid in payload.get('seat_order') or []:
        if pid not in kicked:
            seat(pid)

    if host_id in records and host_id not in seated:
        seated.insert(0, host_id)

    for player in players:
        if len(seated) >= limit:
            break
        seat(player.get('id'))

    del seated[limit:]

    if not seated and records:
        if host_id in records:
            seated.append(host_id)
        else:
            seated.append(next(iter(records)))

    benched: List[str] = []
    for pid in [*(payload.get('bench_order') or []), *records]:
        if pid in records and pid not in seated and pid not in benched:
            benched.append(pid)

    hands = {pid: hand for pid, hand in (state.get('hands') or {}).items() if pid not in kicked}

    return {
        **state,
        'players': [prepare_seated_player(records[pid]) for pid in seated],
        'spectators': [prepare_spectator(records[pid]) for pid in benched],
        'room_settings': {**(state.get('room_settings') or {}), 'max_players': limit},
        'current_turn': None,
        'banner': LOBBY_BANNER,
        'hands': hands,
    }


def handle_return_to_lobby(state: RoomState, action: Action) -> RoomState:
    if state.get('phase') == PHASE_IDLE:
        return state
    return {
        **state,
        'phase': PHASE_LOBBY,
        'hands': {},
        'draw_pile': [],
        'discard_pile': [],
        'current_turn': None,
        'active_suit': None,
        'history': [],
        'banner': LOBBY_BANNER,
        'players': [prepare_seated_player(player) for player in state.get('players') or []],
        'spectators': [prepare_spectator(spectator) for spectator in state.get('spectators') or []],
    }


def create_reset_handler(create_initial_state):
    """Reset to a fresh session bound to the same identity."""
    def handle_reset_session(state: RoomState, action: Action) -> RoomState:
        fresh = create_initial_state(user_id=state.get('user_id'), user_name=state.get('user_name'))
        return {**fresh, 'players': [], 'spectators': []}
    return handle_reset_session
