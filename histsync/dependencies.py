"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from histsync.config import Settings, get_settings
from histsync.sync.orchestrator import SyncOrchestrator


@dataclass(frozen=True)
class AuthContext:
    """Authenticated account resolved from the session token."""

    user_id: int
    username: str


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    ``TokenAuthMiddleware`` sets ``request.state.auth`` before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


def get_sync(request: Request) -> SyncOrchestrator:
    sync: SyncOrchestrator | None = getattr(request.app.state, "sync", None)
    if sync is None:
        raise RuntimeError("Sync engine not initialized")
    return sync


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Sync = Annotated[SyncOrchestrator, Depends(get_sync)]
