"""Wire models for the realtime WebSocket protocol.

Inbound frames are decoded once, at the connection boundary, into a tagged
union keyed on ``type``. Outbound events are immutable and serialize with
camelCase field names:

  client -> server: auth, message, typing, ping
  server -> client: auth_success, auth_error, new_message, typing,
                    user_status, pong, error
"""

from __future__ import annotations

import json
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from realtime.errors import MalformedPayload

MessageType = Literal["text", "image", "file"]
PresenceStatus = Literal["online", "offline"]


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Records carried inside events
# ---------------------------------------------------------------------------


class UserRecord(WireModel):
    """Public view of a user (no credentials)."""

    id: str
    username: str
    display_name: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    status: str = "offline"
    created_at: str


class MessageRecord(WireModel):
    """A persisted chat message as delivered to clients."""

    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    sender_avatar: Optional[str] = None
    content: Optional[str] = None
    type: MessageType = "text"
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    created_at: str


# ---------------------------------------------------------------------------
# Inbound (client -> server)
# ---------------------------------------------------------------------------


class AuthEvent(WireModel):
    type: Literal["auth"]
    token: str


class SendMessageEvent(WireModel):
    type: Literal["message"]
    conversation_id: str
    content: str
    message_type: MessageType = "text"
    file_url: Optional[str] = None
    file_name: Optional[str] = None


class TypingEvent(WireModel):
    type: Literal["typing"]
    conversation_id: str
    is_typing: bool


class PingEvent(WireModel):
    type: Literal["ping"]


InboundEvent = Annotated[
    Union[AuthEvent, SendMessageEvent, TypingEvent, PingEvent],
    Field(discriminator="type"),
]

INBOUND_TYPES = frozenset({"auth", "message", "typing", "ping"})

_inbound_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def decode_client_event(raw: str | bytes) -> Optional[InboundEvent]:
    """Decode one inbound frame.

    Returns None for a well-formed object whose ``type`` is not part of the
    protocol; such frames are ignored. Raises MalformedPayload for anything
    that is not a JSON object with a string ``type``, or whose fields do not
    fit the declared type.
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise MalformedPayload(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedPayload("Frame must be a JSON object")

    event_type = data.get("type")
    if not isinstance(event_type, str):
        raise MalformedPayload("Frame has no string 'type' field")
    if event_type not in INBOUND_TYPES:
        return None

    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedPayload(
            f"Invalid '{event_type}' event ({e.error_count()} error(s))"
        ) from e


# ---------------------------------------------------------------------------
# Outbound (server -> client)
# ---------------------------------------------------------------------------


class OutboundEvent(WireModel):
    type: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class AuthSuccess(OutboundEvent):
    type: Literal["auth_success"] = "auth_success"
    user: UserRecord


class AuthError(OutboundEvent):
    type: Literal["auth_error"] = "auth_error"
    error: str


class NewMessage(OutboundEvent):
    type: Literal["new_message"] = "new_message"
    message: MessageRecord


class UserTyping(OutboundEvent):
    type: Literal["typing"] = "typing"
    conversation_id: str
    user_id: str
    user_name: Optional[str] = None
    is_typing: bool


class UserStatus(OutboundEvent):
    type: Literal["user_status"] = "user_status"
    user_id: str
    status: PresenceStatus


class Pong(OutboundEvent):
    type: Literal["pong"] = "pong"


class ErrorEvent(OutboundEvent):
    type: Literal["error"] = "error"
    error: str
    code: str
