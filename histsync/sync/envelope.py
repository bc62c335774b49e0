"""Decoding of legacy history payloads.

A history payload is expected to be the JSON text of a two-field ciphertext
envelope::

    {"ciphertext": [..bytes..], "nonce": [..bytes..]}

Anything else (not JSON, missing or extra keys, wrong value types, or text
larger than the configured ceiling) decodes to ``None`` and is stored as
``EMPTY_ENVELOPE`` so a single bad entry never fails the batch it came in.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger("histsync.sync.envelope")

EMPTY_ENVELOPE = "{}"


class HistoryEnvelope(BaseModel):
    """The only payload shape accepted into the history timeline."""

    model_config = ConfigDict(extra="forbid", strict=True)

    ciphertext: list[int]
    nonce: list[int]


def payload_size(data: str) -> int:
    return len(data.encode("utf-8"))


def decode_envelope(data: str, max_size: int) -> HistoryEnvelope | None:
    """Return the parsed envelope, or None when ``data`` must be discarded.

    Args:
        data:     Raw payload text as sent by the client.
        max_size: Largest accepted payload, in UTF-8 bytes.
    """
    if payload_size(data) > max_size:
        return None
    try:
        return HistoryEnvelope.model_validate_json(data)
    except ValidationError:
        return None


def sanitize_payload(data: str, max_size: int) -> tuple[str, bool]:
    """Return ``(payload_to_store, was_sanitized)``.

    Valid payloads are stored byte-for-byte as received.
    """
    if decode_envelope(data, max_size) is None:
        return EMPTY_ENVELOPE, True
    return data, False
