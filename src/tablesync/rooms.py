"""
Reference rules engine: the shared lobby plus a bare turn rotation.

It carries no card rules; it exists so rooms, seats and bot automation can be
exercised end to end (relay default engine, simulations, tests).
"""

from typing import Any, Dict, Optional

from .bots import create_bot_handlers
from .constants import (
    ADD_BOT, AUTO_READY_BOTS, CREATE_ROOM, PHASE_FINISHED, PHASE_LOBBY, PHASE_PLAYING,
    PLAYER_NOT_READY, REMOVE_BOT, RESET_SESSION, RETURN_TO_LOBBY, SET_NAME, SET_PLAYER_STATUS,
    SET_SEAT_LAYOUT, START_GAME, TOGGLE_READY,
)
from .lobby import (
    create_base_state, create_reset_handler, find_player, handle_create_room,
    handle_return_to_lobby, handle_set_name, handle_set_player_status, handle_set_seat_layout,
    handle_toggle_ready, push_history,
)
from .models import Action, RoomState, create_game_engine, make_action
from .reducer import create_initial_state_factory, create_reducer

END_TURN = 'END_TURN'
MIN_PLAYERS = 2

create_initial_state = create_initial_state_factory(create_base_state)

bot_handlers = create_bot_handlers(
    banner_when_full=lambda limit, state: f"Max players ({limit}) reached.",
)


def _next_player_id(players, current_id) -> Optional[str]:
    if not players:
        return None
    for index, player in enumerate(players):
        if player.get('id') == current_id:
            return players[(index + 1) % len(players)].get('id')
    return players[0].get('id')


def handle_start_game(state: RoomState, action: Action) -> RoomState:
    if state.get('phase') != PHASE_LOBBY:
        return state

    players = state.get('players') or []
    max_players = (state.get('room_settings') or {}).get('max_players') or len(players)
    ready_to_start = (
        MIN_PLAYERS <= len(players) <= max_players
        and all(player.get('is_ready') for player in players)
    )
    if not ready_to_start:
        return {**state, 'banner': 'Need at least two ready players to begin.'}

    first_player = players[0]
    return {
        **state,
        'phase': PHASE_PLAYING,
        'current_turn': first_player['id'],
        'turn_count': 0,
        'history': push_history([], f"Game started. {first_player.get('name')} goes first."),
        'banner': f"{first_player.get('name')}'s turn",
        'players': [{**player, 'is_ready': False, 'status': PLAYER_NOT_READY} for player in players],
    }


def handle_end_turn(state: RoomState, action: Action) -> RoomState:
    if state.get('phase') != PHASE_PLAYING:
        return state
    player_id = (action.get('payload') or {}).get('player_id')
    if not player_id or state.get('current_turn') != player_id:
        return state

    players = state.get('players') or []
    player = find_player(players, player_id) or {}
    turn_count = (state.get('turn_count') or 0) + 1
    history = push_history(state.get('history'), f"{player.get('name', 'Player')} ended their turn.")

    turn_limit = (state.get('room_settings') or {}).get('turn_limit')
    if isinstance(turn_limit, int) and turn_limit > 0 and turn_count >= turn_limit:
        return {
            **state,
            'phase': PHASE_FINISHED,
            'current_turn': None,
            'turn_count': turn_count,
            'history': push_history(history, 'Turn limit reached.'),
            'banner': 'Game over.',
        }

    next_turn = _next_player_id(players, player_id)
    next_player = find_player(players, next_turn) or {}
    return {
        **state,
        'current_turn': next_turn,
        'turn_count': turn_count,
        'history': history,
        'banner': f"{next_player.get('name', 'Next player')}'s turn",
    }


def choose_bot_action(state: RoomState, player: Dict[str, Any]) -> Optional[Action]:
    if state.get('phase') != PHASE_PLAYING or state.get('current_turn') != player.get('id'):
        return None
    return make_action(END_TURN, {'player_id': player['id']})


lobby_reducer = create_reducer({
    SET_NAME: handle_set_name,
    CREATE_ROOM: handle_create_room,
    TOGGLE_READY: handle_toggle_ready,
    SET_PLAYER_STATUS: handle_set_player_status,
    SET_SEAT_LAYOUT: handle_set_seat_layout,
    ADD_BOT: bot_handlers['add_bot'],
    REMOVE_BOT: bot_handlers['remove_bot'],
    AUTO_READY_BOTS: bot_handlers['auto_ready_bots'],
    START_GAME: handle_start_game,
    END_TURN: handle_end_turn,
    RETURN_TO_LOBBY: handle_return_to_lobby,
    RESET_SESSION: create_reset_handler(create_initial_state),
})

lobby_engine = create_game_engine(
    id='lobby',
    name='Lobby',
    create_initial_state=create_initial_state,
    reducer=lobby_reducer,
    get_bot_action=choose_bot_action,
    bot_think_delay=700,
    metadata={
        'player_config': {'min_players': MIN_PLAYERS, 'max_players': 8, 'min_bots': 0, 'max_bots': 7},
    },
)
