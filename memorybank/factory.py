"""Store factory — builds backends and component stores from settings.

This is the only place that decides which storage strategy is in use.
Everything downstream receives an already-chosen Backend.
"""

from __future__ import annotations

from typing import Any

import structlog

from memorybank.config.settings import MemoryBankSettings, get_settings
from memorybank.exceptions import MemoryBankError
from memorybank.services.cache import CacheLayer
from memorybank.services.component_store import ComponentStore
from memorybank.services.history_policy import HistoryPolicy
from memorybank.storage.base import Backend
from memorybank.storage.file_backend import FileBackend
from memorybank.storage.sqlite_backend import SqliteBackend

logger = structlog.get_logger()


def build_file_backend(settings: MemoryBankSettings) -> FileBackend:
    return FileBackend(settings.base_path, settings.resolved_history_path)


def build_backend(settings: MemoryBankSettings) -> Backend:
    """Pick the storage strategy once, from configuration."""
    if settings.use_database:
        return SqliteBackend(settings.resolved_database_path)
    return build_file_backend(settings)


def build_store(
    settings: MemoryBankSettings | None = None,
    *,
    logger: Any = None,
) -> ComponentStore:
    """Assemble a ComponentStore with the configured backend, cache and history bound."""
    settings = settings or get_settings()
    return ComponentStore(
        build_backend(settings),
        history_policy=HistoryPolicy(settings.max_history_versions),
        cache=CacheLayer(enabled=settings.enable_cache),
        enable_notifications=settings.enable_notifications,
        logger=logger,
    )


def migrate_to_database(
    settings: MemoryBankSettings,
    *,
    include_history: bool = False,
) -> int:
    """Copy the file-backed memory bank into the configured SQLite database.

    Returns the number of components copied.

    Raises:
        MemoryBankError: if the settings do not enable database storage.
    """
    if not settings.use_database:
        raise MemoryBankError(
            "Database storage is not enabled",
            operation="migrate_to_database",
        )

    source = build_file_backend(settings)
    logger.info(
        "Starting migration from file system to database",
        source=str(settings.base_path),
        target=str(settings.resolved_database_path),
    )
    with build_store(settings) as store:
        copied = store.migrate_from(source, include_history=include_history)
    logger.info("Migration from file system to database completed", count=copied)
    return copied
