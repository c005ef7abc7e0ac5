"""Inbound event router.

Decodes each client frame once and dispatches on the event kind. Handler
failures are contained here: a bad frame or a failing handler is logged
and the connection stays open.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from realtime.errors import CollaboratorFailure, MalformedPayload, PreconditionViolation
from realtime.events import (
    AuthEvent,
    ErrorEvent,
    InboundEvent,
    NewMessage,
    PingEvent,
    Pong,
    SendMessageEvent,
    TypingEvent,
    UserTyping,
    decode_client_event,
)
from realtime.fanout import Broadcaster
from realtime.store import MemoryStore

if TYPE_CHECKING:
    from realtime.session import ClientSession

logger = logging.getLogger(__name__)


class EventRouter:
    def __init__(
        self,
        store: MemoryStore,
        broadcaster: Broadcaster,
        notify_send_failures: bool = True,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._notify_send_failures = notify_send_failures

    async def dispatch(self, session: ClientSession, raw: str | bytes) -> None:
        try:
            event = decode_client_event(raw)
        except MalformedPayload as e:
            logger.warning("Dropping frame on session %s: %s", session.session_id, e)
            return

        if event is None:
            logger.debug("Ignoring unknown event type on session %s", session.session_id)
            return

        try:
            await self._handle(session, event)
        except PreconditionViolation as e:
            session.send(ErrorEvent(error=str(e), code=e.code))
        except CollaboratorFailure as e:
            logger.info("Session %s: %s", session.session_id, e)
            if self._notify_send_failures:
                session.send(ErrorEvent(error=str(e), code=e.code))
        except Exception:
            logger.exception(
                "Error handling %s event on session %s",
                event.type,
                session.session_id,
            )

    async def _handle(self, session: ClientSession, event: InboundEvent) -> None:
        match event:
            case AuthEvent(token=token):
                await session.authenticate(token)
            case PingEvent():
                session.send(Pong())
            case SendMessageEvent():
                await self._handle_message(session.require_user(), event)
            case TypingEvent():
                await self._handle_typing(session.require_user(), event)

    # ------------------------------------------------------------------
    # Chat handlers
    # ------------------------------------------------------------------

    async def _handle_message(self, sender_id: str, send: SendMessageEvent) -> None:
        message = await self._store.send_message(
            conversation_id=send.conversation_id,
            sender_id=sender_id,
            content=send.content,
            type=send.message_type,
            file_url=send.file_url,
            file_name=send.file_name,
        )
        if message is None:
            raise CollaboratorFailure("Message could not be sent")

        # Broadcast to all members, sender's own sessions included
        member_ids = await self._store.get_conversation_members(send.conversation_id)
        self._broadcaster.broadcast(member_ids, NewMessage(message=message))

    async def _handle_typing(self, user_id: str, typing: TypingEvent) -> None:
        """Relay a typing indicator; senders outside the conversation are ignored."""
        member_ids = await self._store.get_conversation_members(typing.conversation_id)
        if user_id not in member_ids:
            logger.debug(
                "Ignoring typing from non-member %s in %s",
                user_id,
                typing.conversation_id,
            )
            return

        user = await self._store.get_user(user_id)
        self._broadcaster.broadcast_except(
            member_ids,
            UserTyping(
                conversation_id=typing.conversation_id,
                user_id=user_id,
                user_name=user.display_name if user else None,
                is_typing=typing.is_typing,
            ),
            exclude_user_id=user_id,
        )
