"""
Tests for the remote client against an in-memory transport.
"""

import logging

import pytest

from tablesync.client import RemoteRoomClient
from tablesync.errors import (
    SyncError, ENGINE_MISMATCH, NOT_CONNECTED, TRANSPORT_FACTORY_MISSING, TRANSPORT_UNAVAILABLE,
)
from tablesync.rooms import lobby_engine
from tablesync.scheduling import ManualScheduler


class FakeTransport:
    def __init__(self, fail_connect=None, broken_cleanup=False):
        self.fail_connect = fail_connect
        self.broken_cleanup = broken_cleanup
        self.listeners = {}
        self.sent = []
        self.connect_options = None
        self.closed = False

    def _register(self, kind, callback):
        self.listeners[kind] = callback

        def unregister():
            if self.broken_cleanup:
                raise RuntimeError(f"cannot unregister {kind}")
            self.listeners.pop(kind, None)
        return unregister

    def on_snapshot(self, callback):
        return self._register('snapshot', callback)

    def on_event(self, callback):
        return self._register('event', callback)

    def on_disconnected(self, callback):
        return self._register('disconnected', callback)

    def on_error(self, callback):
        return self._register('error', callback)

    async def connect(self, options):
        if self.fail_connect:
            raise self.fail_connect
        self.connect_options = options

    async def disconnect(self):
        self.closed = True

    def send_action(self, action):
        self.sent.append(action)
        return 'queued'


def make_client(transport=None):
    calls = []

    def factory(engine=None, options=None):
        calls.append((engine, options))
        return transport

    client = RemoteRoomClient(lobby_engine, transport_factory=factory, scheduler=ManualScheduler())
    return client, calls


@pytest.mark.asyncio
async def test_connect_requires_transport_factory():
    client = RemoteRoomClient(lobby_engine, scheduler=ManualScheduler())

    with pytest.raises(SyncError) as exc_info:
        await client.connect(user_id='u1')

    assert exc_info.value.code == TRANSPORT_FACTORY_MISSING
    assert client.get_status().status == 'error'


@pytest.mark.asyncio
async def test_connect_requires_transport_instance():
    client, _ = make_client(transport=None)

    with pytest.raises(SyncError) as exc_info:
        await client.connect(user_id='u1')

    assert exc_info.value.code == TRANSPORT_UNAVAILABLE
    assert client.get_status().error is exc_info.value


@pytest.mark.asyncio
async def test_connect_rejects_engine_mismatch():
    client, calls = make_client(FakeTransport())

    with pytest.raises(SyncError) as exc_info:
        await client.connect(user_id='u1', engine_id='hearts')

    assert exc_info.value.code == ENGINE_MISMATCH
    assert calls == []


@pytest.mark.asyncio
async def test_connect_wires_transport():
    transport = FakeTransport()
    client, calls = make_client(transport)

    state = await client.connect(user_id='u1', user_name='Ann', room_id='ROOM')

    assert calls[0][0] is lobby_engine
    assert calls[0][1]['room_id'] == 'ROOM'
    assert transport.connect_options['user_id'] == 'u1'
    assert set(transport.listeners) == {'snapshot', 'event', 'disconnected', 'error'}
    assert state['user_id'] == 'u1'
    assert client.get_status().status == 'connected'


@pytest.mark.asyncio
async def test_handshake_failure_sets_error_status():
    failure = ConnectionRefusedError('relay down')
    client, _ = make_client(FakeTransport(fail_connect=failure))

    with pytest.raises(ConnectionRefusedError):
        await client.connect(user_id='u1')

    assert client.get_status().status == 'error'
    assert client.get_status().error is failure


@pytest.mark.asyncio
async def test_snapshots_replace_state():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1', user_name='Ann')
    received = []
    client.subscribe(received.append)

    remote_state = {'phase': 'roomLobby', 'user_id': 'u1', 'players': [{'id': 'u1'}]}
    transport.listeners['snapshot'](remote_state)
    remote_state['players'].append({'id': 'intruder'})

    assert [p['id'] for p in client.get_state()['players']] == ['u1']
    assert len(received) == 2


@pytest.mark.asyncio
async def test_events_run_through_local_reducer():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1', user_name='Ann')

    transport.listeners['event']({'type': 'SET_NAME', 'payload': 'Neo'})

    assert client.get_state()['user_name'] == 'Neo'


@pytest.mark.asyncio
async def test_transport_faults_become_status_changes():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1')

    lost = ConnectionError('socket closed')
    transport.listeners['disconnected'](lost)
    assert client.get_status().status == 'disconnected'
    assert client.get_status().error is lost

    fault = SyncError('REMOTE_ERROR', 'boom')
    transport.listeners['error'](fault)
    assert client.get_status().status == 'error'
    assert client.get_status().error is fault


@pytest.mark.asyncio
async def test_intents_are_sent_to_transport():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1', user_name='Ann')

    assert client.toggle_ready('u1') == 'queued'
    client.add_bot()
    client.play_card('u1', {'rank': 7, 'suit': 'clubs'})

    assert transport.sent == [
        {'type': 'TOGGLE_READY', 'payload': {'player_id': 'u1'}},
        {'type': 'ADD_BOT', 'payload': {}},
        {'type': 'PLAY_CARD', 'payload': {'player_id': 'u1', 'card': {'rank': 7, 'suit': 'clubs'}, 'chosen_suit': None}},
    ]
    assert client.get_state()['phase'] == 'idle'


def test_send_before_connect_fails():
    client, _ = make_client(FakeTransport())

    with pytest.raises(SyncError) as exc_info:
        client.send_remote_action('ADD_BOT')
    assert exc_info.value.code == NOT_CONNECTED


@pytest.mark.asyncio
async def test_reconnect_logs_cleanup_failures(caplog):
    client, _ = make_client(FakeTransport(broken_cleanup=True))
    await client.connect(user_id='u1')

    with caplog.at_level(logging.WARNING, logger='tablesync.client.remote'):
        await client.connect(user_id='u1')

    assert client.get_status().status == 'connected'
    assert sum('listener cleanup failed' in record.getMessage() for record in caplog.records) == 4


@pytest.mark.asyncio
async def test_disconnect_closes_transport():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1')

    await client.disconnect()

    assert transport.closed
    assert transport.listeners == {}
    assert client.transport is None
    assert client.get_status().status == 'disconnected'


@pytest.mark.asyncio
async def test_reset_session_notifies_relay_and_goes_idle():
    transport = FakeTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1', user_name='Ann')
    transport.listeners['snapshot']({'phase': 'roomLobby', 'user_id': 'u1', 'user_name': 'Ann', 'players': []})

    client.reset_session()

    assert transport.sent == [{'type': 'RESET_SESSION', 'payload': {}}]
    assert client.get_state()['phase'] == 'idle'
    assert client.get_state()['user_id'] == 'u1'
    assert client.get_status().status == 'idle'


@pytest.mark.asyncio
async def test_disconnect_tears_down_even_if_transport_fails(caplog):
    class FailingTransport(FakeTransport):
        async def disconnect(self):
            raise ConnectionResetError('already gone')

    transport = FailingTransport()
    client, _ = make_client(transport)
    await client.connect(user_id='u1')

    with caplog.at_level(logging.WARNING, logger='tablesync.client.remote'):
        await client.disconnect()

    assert transport.listeners == {}
    assert client.get_status().status == 'disconnected'
    assert any('disconnect failed' in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_reconnect_closes_previous_transport():
    made = []

    def factory(engine=None, options=None):
        made.append(FakeTransport())
        return made[-1]

    client = RemoteRoomClient(lobby_engine, transport_factory=factory, scheduler=ManualScheduler())
    await client.connect(user_id='u1')
    await client.connect(user_id='u1')

    assert made[0].closed
    assert made[0].listeners == {}
    assert not made[1].closed
    assert client.transport is made[1]


@pytest.mark.asyncio
async def test_failed_handshake_releases_transport():
    transport = FakeTransport(fail_connect=ConnectionRefusedError('relay down'))
    client, _ = make_client(transport)

    with pytest.raises(ConnectionRefusedError):
        await client.connect(user_id='u1')

    assert transport.closed
    assert transport.listeners == {}
    assert client.transport is None
    assert client.get_status().status == 'error'
