"""Realtime service: wires the registry, fanout, presence and router."""

from __future__ import annotations

import logging

from fastapi import WebSocket

from realtime.auth import TokenVerifier
from realtime.config import AppConfig
from realtime.fanout import Broadcaster
from realtime.presence import PresenceCoordinator
from realtime.registry import SessionRegistry
from realtime.router import EventRouter
from realtime.session import ClientSession
from realtime.store import MemoryStore

logger = logging.getLogger(__name__)


class RealtimeService:
    def __init__(
        self,
        store: MemoryStore,
        verifier: TokenVerifier,
        config: AppConfig,
    ) -> None:
        self._store = store
        self._verifier = verifier
        self._config = config
        self.registry = SessionRegistry()
        self.broadcaster = Broadcaster(self.registry)
        self.presence = PresenceCoordinator(self.registry, self.broadcaster, store)
        self.router = EventRouter(
            store,
            self.broadcaster,
            notify_send_failures=config.realtime.notify_send_failures,
        )

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def verifier(self) -> TokenVerifier:
        return self._verifier

    def new_session(self, websocket: WebSocket) -> ClientSession:
        return ClientSession(
            websocket=websocket,
            registry=self.registry,
            presence=self.presence,
            verifier=self._verifier,
            store=self._store,
            router=self.router,
        )

    async def handle_connection(self, websocket: WebSocket) -> None:
        """Accept a WebSocket and run its session until the client leaves.

        The client must authenticate first:
          {"type": "auth", "token": "..."}

        Then send events:
          {"type": "message", "conversationId": "...", "content": "hi"}
          {"type": "typing", "conversationId": "...", "isTyping": true}
          {"type": "ping"}

        Server pushes events as JSON with a "type" field.
        """
        await websocket.accept()
        session = self.new_session(websocket)
        logger.info("Accepted session %s", session.session_id)
        await session.run()
