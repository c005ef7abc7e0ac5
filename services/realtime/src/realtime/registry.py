"""Session registry: maps user_id → live client sessions.

Single-process registry owned by the service instance and handed to every
connection. Occupancy is the presence signal: a user is online exactly
while they have an entry, and an entry is never left empty.

All methods are synchronous, so on the event loop each call is atomic with
respect to other connection events.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from realtime.session import ClientSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, list[ClientSession]] = {}

    def add(self, user_id: str, session: ClientSession) -> None:
        sessions = self._sessions.setdefault(user_id, [])
        if any(s is session for s in sessions):
            return
        sessions.append(session)
        logger.info(
            "Registered session for user %s (total: %d)",
            user_id,
            len(sessions),
        )

    def remove(self, user_id: str, session: ClientSession) -> bool:
        """Drop one session. Returns True if this emptied the user's entry."""
        sessions = self._sessions.get(user_id)
        if not sessions:
            return False

        remaining = [s for s in sessions if s is not session]
        if len(remaining) == len(sessions):
            return False

        if remaining:
            self._sessions[user_id] = remaining
            logger.info(
                "Unregistered session for user %s (remaining: %d)",
                user_id,
                len(remaining),
            )
            return False

        del self._sessions[user_id]
        logger.info("Unregistered last session for user %s", user_id)
        return True

    def sessions_for(self, user_id: str) -> tuple[ClientSession, ...]:
        return tuple(self._sessions.get(user_id, ()))

    def is_online(self, user_id: str) -> bool:
        return user_id in self._sessions

    def online_user_ids(self) -> set[str]:
        return set(self._sessions)

    def session_count(self) -> int:
        return sum(len(s) for s in self._sessions.values())
