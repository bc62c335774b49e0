"""Shared Pydantic base models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SyncBase(BaseModel):
    """Base model with shared config for all wire schemas.

    Payload strings are ciphertext and must round-trip byte-for-byte, so no
    whitespace stripping here.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class ErrorResponse(BaseModel):
    status: int
    reason: str
