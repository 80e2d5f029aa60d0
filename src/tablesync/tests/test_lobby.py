"""
Tests for the shared lobby handlers, bot handlers and engine factories.
"""

import pytest

from tablesync.bots import create_bot_handlers
from tablesync.errors import SyncError, INVALID_ENGINE
from tablesync.lobby import (
    create_base_state, get_next_status, handle_set_seat_layout, handle_toggle_ready, push_history,
)
from tablesync.models import create_game_engine, make_action
from tablesync.reducer import create_initial_state_factory, create_reducer


def lobby_state(players, spectators=None, user_id='h', **overrides):
    return {
        **create_base_state(),
        'user_id': user_id,
        'user_name': 'Host',
        'phase': 'roomLobby',
        'host_id': 'h',
        'players': players,
        'spectators': spectators or [],
        'room_settings': {'max_players': 4},
        **overrides,
    }


def player(pid, **fields):
    return {'id': pid, 'name': pid.upper(), 'is_bot': False, 'is_ready': False, 'status': 'notReady', **fields}


def test_status_cycle():
    assert get_next_status('notReady') == 'ready'
    assert get_next_status('ready') == 'needsTime'
    assert get_next_status('needsTime') == 'notReady'
    assert get_next_status('bogus') == 'ready'


def test_toggle_ready_unknown_player_is_noop():
    state = lobby_state([player('h')])
    assert handle_toggle_ready(state, make_action('TOGGLE_READY', {'player_id': 'ghost'})) is state


def test_history_is_capped_newest_first():
    history = []
    for index in range(10):
        history = push_history(history, f"event {index}")

    assert len(history) == 8
    assert history[0] == 'event 9'


def test_seat_layout_honours_order_limit_and_kicks():
    state = lobby_state(
        [player('h', is_host=True, is_ready=True, status='ready'), player('p2'), player('p3')],
        spectators=[player('s1')],
    )
    action = make_action('SET_SEAT_LAYOUT', {
        'seat_order': ['s1', 'p2'],
        'max_seats': 2,
        'kicked_ids': ['p3', 'h'],
    })
    next_state = handle_set_seat_layout(state, action)

    assert [p['id'] for p in next_state['players']] == ['h', 's1']
    assert [p['id'] for p in next_state['spectators']] == ['p2']
    assert next_state['room_settings']['max_players'] == 2
    assert all(p['status'] == 'notReady' and not p['is_ready'] for p in next_state['players'])
    assert next_state['spectators'][0]['is_spectator'] is True


def test_seat_layout_outside_lobby_is_noop():
    state = lobby_state([player('h')], phase='playing')
    assert handle_set_seat_layout(state, make_action('SET_SEAT_LAYOUT', {})) is state


def test_bot_handlers_respect_seat_limit_and_host():
    handlers = create_bot_handlers(seat_limit=2, banner_when_full='Table is full')
    state = lobby_state([player('h')])

    with_bot = handlers['add_bot'](state)
    assert [p['name'] for p in with_bot['players']] == ['H', 'Bot 1']
    assert with_bot['bot_counter'] == 2

    full = handlers['add_bot'](with_bot)
    assert full['banner'] == 'Table is full'
    assert len(full['players']) == 2

    guest_view = {**with_bot, 'user_id': 'someone-else'}
    assert handlers['add_bot'](guest_view) is guest_view

    without_bot = handlers['remove_bot'](with_bot)
    assert [p['id'] for p in without_bot['players']] == ['h']
    assert handlers['remove_bot'](without_bot) is without_bot


def test_bot_handlers_write_history_messages():
    handlers = create_bot_handlers(
        messages={'lobby_only': 'Bots only join in the lobby.', 'auto_ready': 'Bots are ready.'},
        history_limit=3,
    )
    playing = lobby_state([player('h')], phase='playing', history=[])

    assert handlers['add_bot'](playing)['history'] == ['Bots only join in the lobby.']

    state = lobby_state([player('h', is_ready=True), {**player('b1'), 'is_bot': True}], history=[])
    readied = handlers['auto_ready_bots'](state)
    assert readied['players'][1]['is_ready'] is True
    assert readied['players'][1]['status'] == 'ready'
    assert readied['history'] == ['Bots are ready.']


def test_create_reducer_returns_state_for_unknown_actions():
    reducer = create_reducer({'PING': lambda state, action: {**state, 'pinged': True}})
    state = {'pinged': False}

    assert reducer(state, {'type': 'PING'}) == {'pinged': True}
    assert reducer(state, {'type': 'UNKNOWN'}) is state
    assert reducer(state) is state


def test_create_reducer_requires_mapping():
    with pytest.raises(TypeError):
        create_reducer(['PING'])


def test_initial_state_factory_binds_identity():
    create_initial_state = create_initial_state_factory(lambda: {'user_id': 'generated', 'user_name': ''})

    assert create_initial_state()['user_id'] == 'generated'
    bound = create_initial_state(user_id='u1', user_name='Ann')
    assert bound == {'user_id': 'u1', 'user_name': 'Ann'}


def test_create_game_engine_validates_definition():
    with pytest.raises(SyncError) as exc_info:
        create_game_engine(id='x', reducer=lambda state, action: state)
    assert exc_info.value.code == INVALID_ENGINE

    with pytest.raises(SyncError):
        create_game_engine(id='x', create_initial_state=dict, reducer='not callable')

    engine = create_game_engine(id='x', create_initial_state=dict, reducer=lambda state, action: state)
    assert engine.name == 'x'
    assert engine.bot_think_delay == 0
    assert engine.metadata == {}


def test_make_action_omits_missing_payload():
    assert make_action('ADD_BOT') == {'type': 'ADD_BOT'}
    assert make_action('SET_NAME', 'Ann') == {'type': 'SET_NAME', 'payload': 'Ann'}
