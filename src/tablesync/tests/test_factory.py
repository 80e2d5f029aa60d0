"""
Tests for client adapter selection.
"""

import logging

import pytest

from tablesync.client import ClientFactory, LocalRoomClient, RemoteRoomClient
from tablesync.config import ClientConfig
from tablesync.errors import SyncError, DUPLICATE_ADAPTER, UNKNOWN_ADAPTER
from tablesync.rooms import lobby_engine
from tablesync.scheduling import ManualScheduler
from tablesync.transport.websocket import WebSocketTransport


def dummy_transport_factory(engine=None, options=None):
    return object()


def test_defaults_to_local_adapter():
    factory = ClientFactory()
    client = factory.create_client(lobby_engine)

    assert isinstance(client, LocalRoomClient)
    assert client.adapter == 'local'
    assert factory.active_adapter == 'local'


def test_remote_without_transport_falls_back_to_local(caplog):
    with caplog.at_level(logging.WARNING, logger='tablesync.client.factory'):
        factory = ClientFactory(config=ClientConfig(adapter='remote'))
        client = factory.create_client(lobby_engine)

    assert isinstance(client, LocalRoomClient)
    assert client.requested_adapter == 'remote'
    assert client.adapter == 'local'
    assert any('not configured' in record.getMessage() for record in caplog.records)


def test_remote_with_transport_factory():
    factory = ClientFactory(config=ClientConfig(adapter='remote'), transport_factory=dummy_transport_factory)
    client = factory.create_client(lobby_engine, scheduler=ManualScheduler())

    assert isinstance(client, RemoteRoomClient)
    assert client.adapter == 'remote'
    assert client.transport_factory is dummy_transport_factory


def test_mock_adapter_runs_locally():
    factory = ClientFactory(config=ClientConfig(adapter='mock'))
    client = factory.create_client(lobby_engine)

    assert isinstance(client, LocalRoomClient)
    assert client.adapter == 'mock'


def test_unknown_configured_adapter_uses_default():
    factory = ClientFactory(config=ClientConfig(adapter='carrier-pigeon'))
    assert factory.requested_adapter == 'local'


def test_available_adapters_depend_on_transport():
    assert ClientFactory().available() == ['local', 'mock']
    assert ClientFactory(transport_factory=dummy_transport_factory).available() == ['local', 'mock', 'remote']


def test_register_and_unregister_adapters():
    factory = ClientFactory()

    with pytest.raises(SyncError) as exc_info:
        factory.register('local', lambda engine, **options: None)
    assert exc_info.value.code == DUPLICATE_ADAPTER

    factory.register('replay', lambda engine, transport_factory=None, **options: LocalRoomClient(engine))
    factory.set_adapter('replay')
    assert factory.create_client(lobby_engine).adapter == 'replay'

    assert factory.unregister('replay')
    assert not factory.unregister('replay')
    assert 'replay' not in factory.keys()


def test_set_adapter_rejects_unknown_keys():
    factory = ClientFactory()
    with pytest.raises(SyncError) as exc_info:
        factory.set_adapter('nope')
    assert exc_info.value.code == UNKNOWN_ADAPTER


def test_from_config_wires_websocket_transport():
    factory = ClientFactory.from_config(ClientConfig(adapter='remote', relay_url='ws://relay.test'))
    client = factory.create_client(lobby_engine)

    assert isinstance(client, RemoteRoomClient)
    transport = client.transport_factory(engine=lobby_engine, options={'room_id': 'ROOM'})
    assert isinstance(transport, WebSocketTransport)
    assert transport.url == 'ws://relay.test'
    assert transport.room_id == 'ROOM'
