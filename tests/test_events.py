import json

import pytest
from pydantic import ValidationError

from realtime.errors import MalformedPayload
from realtime.events import (
    AuthEvent,
    ErrorEvent,
    MessageRecord,
    NewMessage,
    PingEvent,
    Pong,
    SendMessageEvent,
    TypingEvent,
    UserStatus,
    UserTyping,
    decode_client_event,
)


def test_decode_auth():
    event = decode_client_event('{"type": "auth", "token": "abc"}')
    assert event == AuthEvent(type="auth", token="abc")


def test_decode_message_uses_camel_case_and_defaults():
    event = decode_client_event(
        json.dumps({"type": "message", "conversationId": "c1", "content": "hi"})
    )
    assert isinstance(event, SendMessageEvent)
    assert event.conversation_id == "c1"
    assert event.message_type == "text"
    assert event.file_url is None


def test_decode_file_message():
    event = decode_client_event(
        json.dumps(
            {
                "type": "message",
                "conversationId": "c1",
                "content": "",
                "messageType": "file",
                "fileUrl": "/uploads/x.pdf",
                "fileName": "x.pdf",
            }
        )
    )
    assert event.message_type == "file"
    assert event.file_name == "x.pdf"


def test_decode_typing_and_ping():
    typing = decode_client_event('{"type": "typing", "conversationId": "c1", "isTyping": true}')
    assert isinstance(typing, TypingEvent)
    assert typing.is_typing is True

    assert isinstance(decode_client_event(b'{"type": "ping"}'), PingEvent)


def test_unknown_type_is_ignored():
    assert decode_client_event('{"type": "read_receipt", "messageId": "m1"}') is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '"auth"',
        "{}",
        '{"token": "abc"}',
        '{"type": 7}',
        '{"type": "auth"}',
        '{"type": "message", "content": "no conversation"}',
        '{"type": "typing", "conversationId": "c1"}',
        '{"type": "message", "conversationId": "c1", "content": "x", "messageType": "video"}',
        "[" * 200000,
    ],
)
def test_malformed_frames_raise(raw):
    with pytest.raises(MalformedPayload):
        decode_client_event(raw)


def test_outbound_events_serialize_with_wire_names():
    assert json.loads(Pong().to_json()) == {"type": "pong"}
    assert json.loads(UserStatus(user_id="u1", status="offline").to_json()) == {
        "type": "user_status",
        "userId": "u1",
        "status": "offline",
    }
    assert json.loads(
        UserTyping(conversation_id="c1", user_id="u1", user_name="Alice", is_typing=True).to_json()
    ) == {
        "type": "typing",
        "conversationId": "c1",
        "userId": "u1",
        "userName": "Alice",
        "isTyping": True,
    }
    assert json.loads(ErrorEvent(error="Not authenticated", code="NOT_AUTHENTICATED").to_json()) == {
        "type": "error",
        "error": "Not authenticated",
        "code": "NOT_AUTHENTICATED",
    }


def test_new_message_carries_full_record():
    record = MessageRecord(
        id="m1",
        conversation_id="c1",
        sender_id="u1",
        sender_name="Alice",
        content="hi",
        created_at="2024-01-01T00:00:00.000Z",
    )
    payload = json.loads(NewMessage(message=record).to_json())
    assert payload["type"] == "new_message"
    assert payload["message"] == {
        "id": "m1",
        "conversationId": "c1",
        "senderId": "u1",
        "senderName": "Alice",
        "senderAvatar": None,
        "content": "hi",
        "type": "text",
        "fileUrl": None,
        "fileName": None,
        "createdAt": "2024-01-01T00:00:00.000Z",
    }


def test_outbound_events_are_immutable():
    event = UserStatus(user_id="u1", status="online")
    with pytest.raises(ValidationError):
        event.status = "offline"
