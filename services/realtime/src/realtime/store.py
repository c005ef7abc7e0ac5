"""In-memory store for users, conversations and messages.

All data lives in dicts, lost on restart. Interface is async so a database
backed implementation can be swapped in later without touching the
realtime core.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from realtime.events import MessageRecord, MessageType, UserRecord

logger = logging.getLogger(__name__)


@dataclass
class StoredUser:
    user_id: str
    username: str
    display_name: str
    created_at: datetime
    avatar: Optional[str] = None
    bio: Optional[str] = None
    # display cache only; live presence comes from the session registry
    status: str = "offline"


@dataclass
class StoredConversation:
    conversation_id: str
    name: Optional[str]
    is_group: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class StoredMessage:
    message_id: str
    conversation_id: str
    sender_id: str
    content: Optional[str]
    type: MessageType
    file_url: Optional[str]
    file_name: Optional[str]
    created_at: datetime


@dataclass
class ConversationView:
    """A conversation with its member records, as returned to callers."""

    id: str
    name: Optional[str]
    is_group: bool
    members: list[UserRecord]
    last_message: Optional[MessageRecord]
    created_at: str
    updated_at: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MemoryStore:
    def __init__(self) -> None:
        self._users: dict[str, StoredUser] = {}
        self._conversations: dict[str, StoredConversation] = {}
        # conversation_id → member user_ids (join order)
        self._members: dict[str, list[str]] = {}
        # user_id → set of conversation_ids
        self._user_conversations: dict[str, set[str]] = {}
        # conversation_id → messages (append-only, sorted by time)
        self._messages: dict[str, list[StoredMessage]] = {}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(
        self,
        username: str,
        display_name: str,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> UserRecord:
        user_id = user_id or str(uuid.uuid4())
        self._users[user_id] = StoredUser(
            user_id=user_id,
            username=username,
            display_name=display_name,
            created_at=_now(),
            avatar=avatar,
            bio=bio,
        )
        return self.user_to_record(self._users[user_id])

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return self.user_to_record(user) if user else None

    async def update_user_status(self, user_id: str, status: str) -> None:
        user = self._users.get(user_id)
        if user is None:
            logger.debug("Status update for unknown user %s", user_id)
            return
        user.status = status

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(
        self,
        member_ids: list[str],
        name: Optional[str] = None,
        is_group: bool = False,
    ) -> ConversationView:
        member_ids = list(dict.fromkeys(member_ids))

        # Direct conversations are unique per pair of users
        if not is_group and len(member_ids) == 2:
            existing = self._find_direct(member_ids[0], member_ids[1])
            if existing is not None:
                return self._view(existing)

        conversation_id = str(uuid.uuid4())
        now = _now()
        self._conversations[conversation_id] = StoredConversation(
            conversation_id=conversation_id,
            name=name,
            is_group=is_group,
            created_at=now,
            updated_at=now,
        )
        self._members[conversation_id] = []
        self._messages[conversation_id] = []
        for user_id in member_ids:
            self._add_member(conversation_id, user_id)
        return self._view(self._conversations[conversation_id])

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationView]:
        conversation = self._conversations.get(conversation_id)
        return self._view(conversation) if conversation else None

    async def get_user_conversations(self, user_id: str) -> list[ConversationView]:
        views = [
            self._view(self._conversations[cid])
            for cid in self._user_conversations.get(user_id, set())
            if cid in self._conversations
        ]
        # Most recent activity first
        views.sort(
            key=lambda v: v.last_message.created_at if v.last_message else v.updated_at,
            reverse=True,
        )
        return views

    async def get_conversation_members(self, conversation_id: str) -> list[str]:
        return list(self._members.get(conversation_id, []))

    async def add_member(self, conversation_id: str, user_id: str) -> bool:
        if conversation_id not in self._conversations:
            return False
        self._add_member(conversation_id, user_id)
        return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: Optional[str],
        type: MessageType = "text",
        file_url: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> Optional[MessageRecord]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.warning("Message for unknown conversation %s", conversation_id)
            return None
        if sender_id not in self._members.get(conversation_id, []):
            logger.warning(
                "User %s is not a member of conversation %s",
                sender_id,
                conversation_id,
            )
            return None

        now = _now()
        stored = StoredMessage(
            message_id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            type=type,
            file_url=file_url,
            file_name=file_name,
            created_at=now,
        )
        self._messages[conversation_id].append(stored)
        conversation.updated_at = now
        return self.message_to_record(stored)

    async def get_messages(
        self,
        conversation_id: str,
        limit: int = 50,
        before: Optional[str] = None,
    ) -> list[MessageRecord]:
        """Return up to ``limit`` messages, oldest first.

        ``before`` is a message id; only messages older than it are returned.
        """
        messages = self._messages.get(conversation_id, [])
        if before is not None:
            for idx, msg in enumerate(messages):
                if msg.message_id == before:
                    messages = messages[:idx]
                    break
        return [self.message_to_record(m) for m in messages[-limit:]]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _add_member(self, conversation_id: str, user_id: str) -> None:
        members = self._members[conversation_id]
        if user_id not in members:
            members.append(user_id)
        self._user_conversations.setdefault(user_id, set()).add(conversation_id)

    def _find_direct(self, user_a: str, user_b: str) -> Optional[StoredConversation]:
        shared = self._user_conversations.get(user_a, set()) & self._user_conversations.get(
            user_b, set()
        )
        for cid in shared:
            conversation = self._conversations[cid]
            if not conversation.is_group and len(self._members[cid]) == 2:
                return conversation
        return None

    def _view(self, conversation: StoredConversation) -> ConversationView:
        cid = conversation.conversation_id
        members = [
            self.user_to_record(self._users[uid])
            for uid in self._members.get(cid, [])
            if uid in self._users
        ]
        messages = self._messages.get(cid, [])
        return ConversationView(
            id=cid,
            name=conversation.name,
            is_group=conversation.is_group,
            members=members,
            last_message=self.message_to_record(messages[-1]) if messages else None,
            created_at=_iso(conversation.created_at),
            updated_at=_iso(conversation.updated_at),
        )

    @staticmethod
    def user_to_record(user: StoredUser) -> UserRecord:
        return UserRecord(
            id=user.user_id,
            username=user.username,
            display_name=user.display_name,
            avatar=user.avatar,
            bio=user.bio,
            status=user.status,
            created_at=_iso(user.created_at),
        )

    def message_to_record(self, msg: StoredMessage) -> MessageRecord:
        sender = self._users.get(msg.sender_id)
        return MessageRecord(
            id=msg.message_id,
            conversation_id=msg.conversation_id,
            sender_id=msg.sender_id,
            sender_name=sender.display_name if sender else "Unknown",
            sender_avatar=sender.avatar if sender else None,
            content=msg.content,
            type=msg.type,
            file_url=msg.file_url,
            file_name=msg.file_name,
            created_at=_iso(msg.created_at),
        )
