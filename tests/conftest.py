"""Pytest configuration and fixtures."""

import pytest

from app.config import RelayConfig
from tests.helpers import FakeClock


# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(monkeypatch) -> RelayConfig:
    """Configuration isolated from the developer's environment."""
    for key in ("PORT", "RELAY_PORT", "RELAY_RESOLVER_BACKEND", "RELAY_WEB_UI_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    return RelayConfig(_env_file=None)
