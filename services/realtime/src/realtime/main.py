"""FastAPI application entry point."""
from __future__ import annotations

import logging
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from common.logging import setup_logging

from realtime.auth import TokenVerifier
from realtime.config import AppConfig, load_config
from realtime.service import RealtimeService
from realtime.store import MemoryStore

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str


class RootResponse(BaseModel):
    """Root endpoint response."""
    service: str
    status: str
    online_users: int
    sessions: int
    endpoints: Dict[str, str]


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[MemoryStore] = None,
) -> FastAPI:
    config = config or load_config()
    store = store if store is not None else MemoryStore()
    service = RealtimeService(store=store, verifier=TokenVerifier(config.auth), config=config)

    app = FastAPI(title="ChatterBox Realtime", description="Realtime chat and presence service")
    app.state.realtime = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.origins,
        allow_credentials=config.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.websocket(config.realtime.ws_path)
    async def websocket_session(websocket: WebSocket) -> None:
        await service.handle_connection(websocket)

    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        """Root endpoint with service info and live session counts."""
        return RootResponse(
            service="chatterbox-realtime",
            status="running",
            online_users=len(service.registry.online_user_ids()),
            sessions=service.registry.session_count(),
            endpoints={
                "health": "/health",
                "ws": config.realtime.ws_path,
            },
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok")

    return app


def main() -> None:
    setup_logging("realtime")
    config = load_config()
    logger.info("Realtime service listening on %s:%d", config.server.host, config.server.port)
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
