"""Session token verification (HS256 JWT)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from realtime.config import AuthConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenCheck:
    valid: bool
    user_id: Optional[str] = None


class TokenVerifier:
    def __init__(self, config: AuthConfig) -> None:
        self._secret = config.jwt_secret
        self._algorithm = config.algorithm
        self._ttl = timedelta(days=config.token_ttl_days)

    def issue(self, user_id: str) -> str:
        payload = {
            "userId": user_id,
            "exp": datetime.now(timezone.utc) + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenCheck:
        try:
            decoded = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return TokenCheck(valid=False)
        except jwt.InvalidTokenError as e:
            logger.info("Rejected invalid token: %s", e)
            return TokenCheck(valid=False)

        user_id = decoded.get("userId")
        if not isinstance(user_id, str) or not user_id:
            return TokenCheck(valid=False)
        return TokenCheck(valid=True, user_id=user_id)
