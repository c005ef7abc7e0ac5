"""Realtime service configuration with Pydantic models.

Follows the same pattern as the other services:
- Load from YAML file
- Override with environment variables
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """HTTP/WebSocket server configuration."""
    host: str = Field("0.0.0.0", description="Server bind address")
    port: int = Field(3001, description="Server port")


class CorsConfig(BaseModel):
    """CORS configuration."""
    origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Allowed origins for CORS",
    )
    allow_credentials: bool = Field(True, description="Allow credentials")


class AuthConfig(BaseModel):
    """Token verification settings."""
    jwt_secret: str = Field(
        "chatterbox-secret-key-change-in-production",
        description="HMAC secret used to sign session tokens",
    )
    algorithm: str = Field("HS256", description="JWT signing algorithm")
    token_ttl_days: int = Field(7, ge=1, description="Lifetime of issued tokens")


class RealtimeConfig(BaseModel):
    """Realtime session behaviour."""
    ws_path: str = Field("/ws", description="WebSocket endpoint path")
    notify_send_failures: bool = Field(
        True,
        description="Send an error event to the sender when a message is not stored",
    )


class AppConfig(BaseModel):
    """Application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "config.yaml"


def load_config(path: Optional[Path | str] = None) -> AppConfig:
    """Load configuration from YAML file and environment variables.

    Environment variables take precedence over YAML values:
    - HOST / PORT: server bind address
    - CORS_ORIGINS: comma-separated list of allowed origins
    - JWT_SECRET: token signing secret
    """
    config_path = Path(path) if path is not None else _default_config_path()

    if not config_path.is_file():
        config = AppConfig()
    else:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        config = AppConfig.model_validate(raw)

    # Environment variables override YAML config
    if host := os.environ.get("HOST"):
        config.server.host = host
    if port := os.environ.get("PORT"):
        config.server.port = int(port)

    if origins := os.environ.get("CORS_ORIGINS"):
        config.cors.origins = [o.strip() for o in origins.split(",") if o.strip()]

    if secret := os.environ.get("JWT_SECRET"):
        config.auth.jwt_secret = secret

    return config
