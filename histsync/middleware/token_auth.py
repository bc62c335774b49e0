"""Session-token authentication middleware.

Clients send ``Authorization: Token <session>``.  The token is resolved to an
account by the ``PrincipalResolver`` stored on ``app.state.principal_resolver``
and the result is placed on ``request.state.auth`` for ``get_current_user``.
Requests without a valid principal never reach the sync routes.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from histsync.dependencies import AuthContext
from histsync.models.base import ErrorResponse
from histsync.services.database import Database

logger = logging.getLogger("histsync.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _error(status_code: int, reason: str) -> Response:
    body = ErrorResponse(status=status_code, reason=reason)
    return JSONResponse(body.model_dump(), status_code=status_code)


def _unauthorized(reason: str) -> Response:
    return _error(401, reason)


class PrincipalResolver(Protocol):
    async def resolve(self, token: str) -> AuthContext | None: ...


class SessionPrincipalResolver:
    """Look the token up in the ``sessions`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def resolve(self, token: str) -> AuthContext | None:
        row = await self._db.fetchrow(
            """
            SELECT u.id, u.username
            FROM sessions s JOIN users u ON u.id = s.user_id
            WHERE s.token = $1
            """,
            token,
        )
        if row is None:
            return None
        return AuthContext(user_id=row["id"], username=row["username"])


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Resolve session tokens and populate request.state.auth."""

    def __init__(self, app: Any) -> None:
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return _unauthorized("missing authorization header")

        scheme, _, token = auth_header.partition(" ")
        if scheme.strip().lower() != "token":
            return _unauthorized("invalid authorization header encoding")
        token = token.strip()
        if not token:
            return _unauthorized("invalid token format")

        resolver: PrincipalResolver | None = getattr(
            request.app.state, "principal_resolver", None
        )
        if resolver is None:
            logger.error("No principal resolver configured, rejecting %s", request.url.path)
            return _unauthorized("authentication unavailable")

        try:
            auth = await resolver.resolve(token)
        except Exception:
            logger.exception("Principal lookup failed")
            return _error(500, "internal server error")
        if auth is None:
            return _unauthorized("invalid token")

        request.state.auth = auth
        return await call_next(request)
