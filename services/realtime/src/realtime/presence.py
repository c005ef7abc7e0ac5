"""Presence: online/offline announcements derived from registry occupancy.

Online is announced on every successful session authentication, so a user
with several devices announces once per device. Offline is edge-triggered:
it is announced only when the user's last session closes.
"""

from __future__ import annotations

import logging

from realtime.events import UserStatus
from realtime.fanout import Broadcaster
from realtime.registry import SessionRegistry
from realtime.store import MemoryStore

logger = logging.getLogger(__name__)


class PresenceCoordinator:
    def __init__(
        self,
        registry: SessionRegistry,
        broadcaster: Broadcaster,
        store: MemoryStore,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._store = store

    async def audience(self, user_id: str) -> set[str]:
        """Everyone who shares at least one conversation with ``user_id``."""
        conversations = await self._store.get_user_conversations(user_id)
        return {
            member.id
            for conversation in conversations
            for member in conversation.members
            if member.id != user_id
        }

    async def announce_online(self, user_id: str) -> None:
        await self._reconcile_status(user_id)
        audience = await self.audience(user_id)
        delivered = self._broadcaster.broadcast(
            audience, UserStatus(user_id=user_id, status="online")
        )
        logger.info(
            "User %s online (audience: %d, sessions: %d)",
            user_id,
            len(audience),
            delivered,
        )

    async def announce_offline(self, user_id: str) -> None:
        audience = await self.audience(user_id)
        # A new session may have authenticated while the audience loaded
        if self._registry.is_online(user_id):
            logger.info("User %s reconnected before offline broadcast", user_id)
            return
        delivered = self._broadcaster.broadcast(
            audience, UserStatus(user_id=user_id, status="offline")
        )
        logger.info(
            "User %s offline (audience: %d, sessions: %d)",
            user_id,
            len(audience),
            delivered,
        )
        await self._reconcile_status(user_id)

    async def _reconcile_status(self, user_id: str) -> None:
        # The stored status is a display cache; the registry is authoritative.
        status = "online" if self._registry.is_online(user_id) else "offline"
        await self._store.update_user_status(user_id, status)
