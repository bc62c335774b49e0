"""Table definitions for the sync store.

Schema migration is handled outside this service; ``create_schema`` exists
for local development and the storage-backed tests.
"""

from __future__ import annotations

import logging

from histsync.services.database import Database

logger = logging.getLogger("histsync.db.schema")

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id BIGSERIAL PRIMARY KEY,
        username TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token TEXT PRIMARY KEY,
        user_id BIGINT NOT NULL REFERENCES users (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store (
        id UUID PRIMARY KEY,
        client_id TEXT NOT NULL,
        user_id BIGINT NOT NULL,
        host TEXT NOT NULL,
        tag TEXT NOT NULL,
        idx BIGINT NOT NULL,
        timestamp BIGINT NOT NULL,
        version TEXT NOT NULL,
        data TEXT NOT NULL,
        cek TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, host, tag, idx)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store_idx_cache (
        user_id BIGINT NOT NULL,
        host TEXT NOT NULL,
        tag TEXT NOT NULL,
        idx BIGINT NOT NULL,
        PRIMARY KEY (user_id, host, tag)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS history (
        id BIGSERIAL PRIMARY KEY,
        client_id TEXT NOT NULL,
        user_id BIGINT NOT NULL,
        hostname TEXT NOT NULL,
        timestamp TIMESTAMPTZ NOT NULL,
        data TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        deleted_at TIMESTAMPTZ,
        UNIQUE (user_id, client_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS history_user_created ON history (user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS history_user_timestamp ON history (user_id, timestamp)",
)


async def create_schema(db: Database) -> None:
    async with db.connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    logger.info("Schema ensured (%d statements)", len(SCHEMA_STATEMENTS))
