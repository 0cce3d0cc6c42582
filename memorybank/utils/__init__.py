"""Memory bank utilities — hashing, logging, and shared helpers."""

from memorybank.utils.hashing import compute_content_hash, compute_text_hash
from memorybank.utils.logging import configure_logging, get_logger

__all__ = [
    "compute_content_hash",
    "compute_text_hash",
    "configure_logging",
    "get_logger",
]
