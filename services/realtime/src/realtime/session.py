"""Client session: one per accepted WebSocket connection.

Owns the connection's lifecycle (unauthenticated → authenticated → closed),
its registry binding, and the async read/write loops on the socket. Frames
read from the client are handed to the event router; everything sent to
the client goes through a per-session outbound queue so fanout never waits
on a slow socket.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import uuid
from typing import TYPE_CHECKING, Optional

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from realtime.errors import AuthenticationFailure, PreconditionViolation
from realtime.events import AuthError, AuthSuccess, OutboundEvent, UserRecord

if TYPE_CHECKING:
    from realtime.auth import TokenVerifier
    from realtime.presence import PresenceCoordinator
    from realtime.registry import SessionRegistry
    from realtime.router import EventRouter
    from realtime.store import MemoryStore

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, ConnectionResetError, BrokenPipeError)


class SessionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class ClientSession:
    def __init__(
        self,
        websocket: WebSocket,
        registry: SessionRegistry,
        presence: PresenceCoordinator,
        verifier: TokenVerifier,
        store: MemoryStore,
        router: EventRouter,
    ) -> None:
        self._websocket = websocket
        self._registry = registry
        self._presence = presence
        self._verifier = verifier
        self._store = store
        self._router = router
        self._outbound: asyncio.Queue[str] = asyncio.Queue()
        self._state = SessionState.UNAUTHENTICATED
        self._user_id: Optional[str] = None
        self._transport_failed = False
        self.session_id = uuid.uuid4().hex[:12]

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_open(self) -> bool:
        if self._state is SessionState.CLOSED or self._transport_failed:
            return False
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    def require_user(self) -> str:
        if self._state is not SessionState.AUTHENTICATED or self._user_id is None:
            raise PreconditionViolation("Not authenticated")
        return self._user_id

    def enqueue(self, payload: str) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._outbound.put_nowait(payload)

    def send(self, event: OutboundEvent) -> None:
        self.enqueue(event.to_json())

    async def run(self) -> None:
        """Main loop: read from client + flush outbound queue concurrently."""

        async def _write_loop() -> None:
            while True:
                payload = await self._outbound.get()
                try:
                    await self._websocket.send_text(payload)
                except _TRANSPORT_ERRORS as e:
                    logger.info("Send failed on session %s: %s", self.session_id, e)
                    self._transport_failed = True
                    return

        write_task = asyncio.create_task(_write_loop())

        try:
            while True:
                try:
                    message = await self._websocket.receive()
                except _TRANSPORT_ERRORS as e:
                    logger.warning("Transport error on session %s: %s", self.session_id, e)
                    break
                if message["type"] == "websocket.disconnect":
                    logger.info(
                        "Session %s disconnected (code %s)",
                        self.session_id,
                        message.get("code"),
                    )
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self._router.dispatch(self, raw)
        finally:
            write_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await write_task
            await self.close()

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def authenticate(self, token: str) -> None:
        if self._state is SessionState.CLOSED:
            return
        try:
            user = await self._resolve_user(token)
        except AuthenticationFailure as e:
            logger.info("Auth failed on session %s: %s", self.session_id, e)
            self.send(AuthError(error=str(e)))
            return

        if self._state is SessionState.CLOSED:
            return

        if self._state is SessionState.AUTHENTICATED:
            # A session stays bound to the identity it first authenticated as
            if user.id != self._user_id:
                self.send(AuthError(error="Session already authenticated"))
            else:
                self.send(AuthSuccess(user=user.model_copy(update={"status": "online"})))
            return

        self._user_id = user.id
        self._state = SessionState.AUTHENTICATED
        self._registry.add(user.id, self)
        self.send(AuthSuccess(user=user.model_copy(update={"status": "online"})))
        logger.info("Session %s authenticated as %s", self.session_id, user.id)

        await self._presence.announce_online(user.id)

    async def close(self) -> None:
        """Tear down the session. Safe to call any number of times."""
        if self._state is SessionState.CLOSED:
            return
        was_authenticated = self._state is SessionState.AUTHENTICATED
        self._state = SessionState.CLOSED

        if not was_authenticated or self._user_id is None:
            logger.info("Closed unauthenticated session %s", self.session_id)
            return

        emptied = self._registry.remove(self._user_id, self)
        logger.info("Closed session %s for user %s", self.session_id, self._user_id)
        if not emptied:
            return
        try:
            await self._presence.announce_offline(self._user_id)
        except Exception:
            logger.exception("Offline announcement failed for user %s", self._user_id)

    async def _resolve_user(self, token: str) -> UserRecord:
        check = self._verifier.verify(token)
        if not check.valid or check.user_id is None:
            raise AuthenticationFailure("Invalid token")
        user = await self._store.get_user(check.user_id)
        if user is None:
            raise AuthenticationFailure("User not found")
        return user
