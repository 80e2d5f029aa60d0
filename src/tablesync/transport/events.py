"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError


class EventType(str, Enum):
    """Inbound (client to relay) event types."""
    JOIN = "join"
    ACTION = "action"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound (relay to client) event types."""
    JOIN_SUCCESS = "join_success"
    STATE_FULL = "state_full"
    EVENT = "event"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes carried by error events."""
    INVALID_EVENT = "INVALID_EVENT"
    NOT_JOINED = "NOT_JOINED"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    INTERNAL = "INTERNAL"


class ActionModel(BaseModel):
    """A reducer action on the wire."""
    type: str = Field(..., min_length=1, max_length=64)
    payload: Optional[Any] = None


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class JoinEvent(BaseEvent):
    """Join room event."""
    type: EventType = EventType.JOIN
    user_id: str = Field(..., min_length=1, max_length=64)
    user_name: str = Field("Player", max_length=30)


class ActionEvent(BaseEvent):
    """Action to run through the room reducer."""
    type: EventType = EventType.ACTION
    action: ActionModel


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


InboundEvent = Union[JoinEvent, ActionEvent, RequestStateEvent]


# Outbound event models
class JoinSuccessEvent(BaseModel):
    """Join success confirmation event."""
    type: OutboundEventType = OutboundEventType.JOIN_SUCCESS
    room_id: str
    user_id: str
    timestamp: float


class StateFullEvent(BaseModel):
    """Full state event."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class ActionBroadcastEvent(BaseModel):
    """Action pushed to clients for their own reducers."""
    type: OutboundEventType = OutboundEventType.EVENT
    action: ActionModel
    sender_id: Optional[str] = None
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


OutboundEvent = Union[JoinSuccessEvent, StateFullEvent, ActionBroadcastEvent, ErrorEvent]


def _parse(data: Any, enum_type, event_map) -> BaseModel:
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = enum_type(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = event_map.get(event_type)
    if not event_class:
        raise ValueError(f"No handler for event type: {event_type}")

    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {str(e)}")


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data sent by a client.

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    return _parse(data, EventType, {
        EventType.JOIN: JoinEvent,
        EventType.ACTION: ActionEvent,
        EventType.REQUEST_STATE: RequestStateEvent,
    })


def parse_outbound_event(data: Dict[str, Any]) -> OutboundEvent:
    """
    Parse raw event data sent by the relay.

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    return _parse(data, OutboundEventType, {
        OutboundEventType.JOIN_SUCCESS: JoinSuccessEvent,
        OutboundEventType.STATE_FULL: StateFullEvent,
        OutboundEventType.EVENT: ActionBroadcastEvent,
        OutboundEventType.ERROR: ErrorEvent,
    })


def create_join_event(user_id: str, user_name: Optional[str] = None) -> JoinEvent:
    return JoinEvent(user_id=user_id, user_name=user_name or "Player")


def create_action_event(action: Dict[str, Any]) -> ActionEvent:
    return ActionEvent(action=ActionModel(**action))


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_join_success_event(room_id: str, user_id: str) -> JoinSuccessEvent:
    """Create a join success event."""
    return JoinSuccessEvent(room_id=room_id, user_id=user_id, timestamp=time.time())


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    """Create a full state event."""
    return StateFullEvent(state=state, timestamp=time.time())

