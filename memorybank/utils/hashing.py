"""Deterministic hashing utilities for the memory bank.

All hashing uses SHA-256 with deterministic serialization (sorted keys)
to guarantee that identical data always produces identical hashes.
"""

import hashlib
import json
from typing import Any


def compute_content_hash(data: Any) -> str:
    """Compute SHA-256 hash of arbitrary data.

    Serializes the data deterministically using sorted keys and
    computes the SHA-256 hex digest.

    Args:
        data: Any JSON-serializable data (dict, list, primitive, or
              Pydantic model with .model_dump()).

    Returns:
        Hex-encoded SHA-256 hash string (64 characters).
    """
    if hasattr(data, "model_dump"):
        serializable = data.model_dump(mode="json")
    else:
        serializable = data

    serialized = json.dumps(serializable, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(serialized).hexdigest()


def compute_text_hash(text: str) -> str:
    """SHA-256 of a UTF-8 string. Used to compare component contents cheaply."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
