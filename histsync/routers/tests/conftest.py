"""Fixtures for HTTP tests: a real app with the sync engine swapped out."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from histsync.config import Settings
from histsync.dependencies import AuthContext
from histsync.main import create_app
from histsync.sync.orchestrator import SyncOrchestrator

GOOD_TOKEN = "session-token-alice"
AUTH_HEADERS = {"Authorization": f"Token {GOOD_TOKEN}"}
ALICE = AuthContext(user_id=1, username="alice")


class StaticResolver:
    """Resolves exactly one known token."""

    async def resolve(self, token: str) -> AuthContext | None:
        return ALICE if token == GOOD_TOKEN else None


@pytest.fixture
def sync() -> MagicMock:
    engine = MagicMock(spec=SyncOrchestrator)
    engine.page_size = 100
    engine.api_version = "18.4.0"
    return engine


@pytest.fixture
def client(sync: MagicMock) -> TestClient:
    # no ``with``: the lifespan (and its database pool) is never started
    app = create_app(Settings(page_size=100))
    app.state.sync = sync
    app.state.principal_resolver = StaticResolver()
    return TestClient(app)
