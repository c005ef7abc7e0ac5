"""Shared fakes and builders for the realtime tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

from fastapi.websockets import WebSocketState

from realtime.config import AppConfig
from realtime.service import RealtimeService
from realtime.auth import TokenVerifier
from realtime.session import ClientSession
from realtime.store import MemoryStore


class FakeSession:
    """Registry/fanout stand-in that records every payload it is handed."""

    def __init__(self, name: str = "s", is_open: bool = True) -> None:
        self.name = name
        self.is_open = is_open
        self.received: list[str] = []

    def enqueue(self, payload: str) -> None:
        self.received.append(payload)

    def __repr__(self) -> str:
        return f"FakeSession({self.name!r})"


class FakeWebSocket:
    """Minimal WebSocket double for driving ClientSession directly."""

    def __init__(
        self,
        incoming: list[Any] | None = None,
        receive_error: BaseException | None = None,
        send_error: BaseException | None = None,
        hold_open: bool = False,
    ) -> None:
        """Replays ``incoming`` frames, then ends the connection.

        Once the frames run out the socket raises ``receive_error`` if given,
        blocks forever if ``hold_open`` is set, and disconnects otherwise.
        ``send_error`` makes every outbound send fail.
        """
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self._incoming = list(incoming or [])
        self._receive_error = receive_error
        self._send_error = send_error
        self._hold_open = hold_open

    async def send_text(self, data: str) -> None:
        if self._send_error is not None:
            raise self._send_error
        self.sent.append(data)

    async def receive(self) -> dict:
        # Let the session's writer task flush between frames
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        if not self._incoming:
            if self._receive_error is not None:
                raise self._receive_error
            if self._hold_open:
                await asyncio.Event().wait()
            self.drop()
            return {"type": "websocket.disconnect", "code": 1000}
        frame = self._incoming.pop(0)
        if not isinstance(frame, str):
            frame = json.dumps(frame)
        return {"type": "websocket.receive", "text": frame}

    def drop(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED


def drain(session: ClientSession) -> list[dict]:
    """Pop every queued outbound payload of a session, decoded."""
    events = []
    while not session._outbound.empty():
        events.append(json.loads(session._outbound.get_nowait()))
    return events


@dataclass
class World:
    service: RealtimeService
    store: MemoryStore
    users: dict[str, str] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)
    conversations: dict[str, str] = field(default_factory=dict)

    def session(self) -> ClientSession:
        return self.service.new_session(FakeWebSocket())

    async def login(self, name: str) -> ClientSession:
        session = self.session()
        await session.authenticate(self.tokens[name])
        return session


async def make_world(config: AppConfig | None = None) -> World:
    """alice+bob share a direct chat; alice, bob and carol share a group."""
    config = config or AppConfig()
    store = MemoryStore()
    verifier = TokenVerifier(config.auth)
    world = World(service=RealtimeService(store, verifier, config), store=store)

    for name in ("alice", "bob", "carol", "dave"):
        user = await store.create_user(username=name, display_name=name.title())
        world.users[name] = user.id
        world.tokens[name] = verifier.issue(user.id)

    direct = await store.create_conversation([world.users["alice"], world.users["bob"]])
    group = await store.create_conversation(
        [world.users["alice"], world.users["bob"], world.users["carol"]],
        name="Team",
        is_group=True,
    )
    world.conversations["direct"] = direct.id
    world.conversations["group"] = group.id
    return world


async def wait_for(condition, attempts: int = 200) -> None:
    """Yield to the event loop until ``condition()`` holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
