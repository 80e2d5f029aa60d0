"""
Tests for the relay wire events.
"""

import orjson
import pytest

from tablesync.transport.events import (
    ActionEvent, ErrorCode, JoinEvent, OutboundEventType, RequestStateEvent, StateFullEvent,
    create_action_event, create_error_event, create_join_event, create_state_full_event,
    parse_inbound_event, parse_outbound_event,
)


def test_parse_join_event():
    event = parse_inbound_event({"type": "join", "user_id": "u1", "user_name": "Ann"})

    assert isinstance(event, JoinEvent)
    assert event.user_id == "u1"
    assert event.user_name == "Ann"


def test_parse_action_and_request_state():
    action = parse_inbound_event({"type": "action", "action": {"type": "ADD_BOT"}})
    request = parse_inbound_event({"type": "request_state"})

    assert isinstance(action, ActionEvent)
    assert action.action.type == "ADD_BOT"
    assert action.action.payload is None
    assert isinstance(request, RequestStateEvent)


@pytest.mark.parametrize("data, message", [
    ({}, "Missing event type"),
    ({"type": "teleport"}, "Invalid event type"),
    ({"type": "action"}, "Invalid event data"),
    ({"type": "join", "user_id": ""}, "Invalid event data"),
    (["join"], "JSON object"),
])
def test_parse_rejects_bad_events(data, message):
    with pytest.raises(ValueError, match=message):
        parse_inbound_event(data)


def test_outbound_events_parse_from_json():
    state_event = create_state_full_event({"phase": "roomLobby", "players": []})
    parsed = parse_outbound_event(orjson.loads(state_event.model_dump_json()))

    assert isinstance(parsed, StateFullEvent)
    assert parsed.type == OutboundEventType.STATE_FULL
    assert parsed.state == {"phase": "roomLobby", "players": []}


def test_error_event_carries_code():
    error = parse_outbound_event(orjson.loads(create_error_event(ErrorCode.NOT_JOINED, "join first").model_dump_json()))

    assert error.code == ErrorCode.NOT_JOINED
    assert error.message == "join first"
    assert error.timestamp > 0


def test_outbound_parser_rejects_inbound_types():
    with pytest.raises(ValueError):
        parse_outbound_event({"type": "join", "user_id": "u1"})


def test_create_helpers():
    assert create_join_event("u1").user_name == "Player"
    assert create_action_event({"type": "PLAY_CARD", "payload": {"card": 3}}).action.payload == {"card": 3}
