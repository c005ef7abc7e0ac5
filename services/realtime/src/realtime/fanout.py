"""Fanout: deliver one event to every live session of a set of users."""

from __future__ import annotations

import logging
from typing import Iterable

from realtime.events import OutboundEvent
from realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    def broadcast(self, recipient_ids: Iterable[str], event: OutboundEvent) -> int:
        """Enqueue ``event`` on every open session of every recipient.

        The event is serialized once and the same string goes to every
        session. Sessions whose transport is no longer open are skipped;
        their own close handling removes them. Returns the number of
        sessions the payload was handed to.
        """
        recipients = set(recipient_ids)
        if not recipients:
            return 0

        payload = event.to_json()
        delivered = 0
        for user_id in recipients:
            for session in self._registry.sessions_for(user_id):
                if not session.is_open:
                    continue
                session.enqueue(payload)
                delivered += 1

        logger.debug(
            "Broadcast %s to %d user(s), %d session(s)",
            event.type,
            len(recipients),
            delivered,
        )
        return delivered

    def broadcast_except(
        self,
        recipient_ids: Iterable[str],
        event: OutboundEvent,
        exclude_user_id: str,
    ) -> int:
        """Send an event to all recipients except the specified user."""
        return self.broadcast(
            (uid for uid in recipient_ids if uid != exclude_user_id),
            event,
        )
