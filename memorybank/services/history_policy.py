"""HistoryPolicy — retention and ordering of component history.

Holds no state beyond the configured bound. Retention runs synchronously
as part of every history write, so after record() returns the component
never has more than max_versions versions.
"""

from __future__ import annotations

import structlog

from memorybank.exceptions import BackendError, HistoryWriteError
from memorybank.schemas.component import HistoryVersion
from memorybank.storage.base import Backend

logger = structlog.get_logger()

DEFAULT_MAX_HISTORY_VERSIONS = 10


class HistoryPolicy:
    """Keep the newest ``max_versions`` versions of each component."""

    def __init__(self, max_versions: int = DEFAULT_MAX_HISTORY_VERSIONS) -> None:
        if max_versions < 0:
            raise ValueError(f"max_versions must be >= 0, got {max_versions}")
        self._max_versions = max_versions

    @property
    def max_versions(self) -> int:
        return self._max_versions

    def record(self, backend: Backend, component_id: str, content: str) -> HistoryVersion:
        """Persist a superseded value, then prune to the bound.

        Raises:
            HistoryWriteError: if either the write or the prune fails.
        """
        try:
            version = backend.save_history_version(component_id, content)
        except BackendError as exc:
            raise HistoryWriteError(
                f"Failed to save history for component {component_id}: {exc}",
                component_id=component_id,
                operation="save_history_version",
            ) from exc

        self.enforce(backend, component_id)
        return version

    def enforce(self, backend: Backend, component_id: str) -> int:
        """Prune a component's history to the bound. Returns count removed."""
        try:
            return backend.prune_history(component_id, self._max_versions)
        except BackendError as exc:
            raise HistoryWriteError(
                f"Failed to prune history for component {component_id}: {exc}",
                component_id=component_id,
                operation="prune_history",
            ) from exc

    @staticmethod
    def order(versions: list[HistoryVersion]) -> list[HistoryVersion]:
        """Sort newest-first by timestamp.

        Expects backend output, which is already newest-first with ties
        in insertion order. The sort is stable, so versions sharing a
        timestamp keep that order instead of being shuffled.
        """
        return sorted(versions, key=lambda v: v.timestamp, reverse=True)

    @staticmethod
    def select(versions: list[HistoryVersion], limit: int | None) -> list[HistoryVersion]:
        """Truncate to the ``limit`` newest entries (None = all)."""
        if limit is None:
            return list(versions)
        return list(versions[: max(limit, 0)])

    def __repr__(self) -> str:
        return f"HistoryPolicy(max_versions={self._max_versions})"
