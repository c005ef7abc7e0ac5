from __future__ import annotations

import pytest

_ENV_OVERRIDES = ("HOST", "PORT", "CORS_ORIGINS", "JWT_SECRET", "LOG_LEVEL", "ENABLE_CLOUDWATCH")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment overrides out of unit tests."""
    for var in _ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
