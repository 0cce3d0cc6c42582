"""Backend interface shared by all storage strategies.

Every backend implements the same durability contract so that
ComponentStore never needs to know which one it is talking to.
Backends know nothing about the set of valid component ids, caching,
or notifications; they only move text in and out of durable storage.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from memorybank.schemas.component import Component, HistoryVersion


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Backend(ABC):
    """Abstract storage strategy for components and their history.

    Implementations wrap their native I/O errors in BackendError.
    """

    name: str = "abstract"

    @abstractmethod
    def initialize(self) -> None:
        """Create directories / tables. Idempotent."""

    @abstractmethod
    def get_component(self, component_id: str) -> Component | None:
        """Return the current component, or None if it was never written."""

    @abstractmethod
    def save_component(self, component_id: str, content: str) -> Component:
        """Overwrite (or create) the current content of a component."""

    @abstractmethod
    def delete_component(self, component_id: str) -> bool:
        """Remove a component and all of its history.

        Returns False if nothing existed.
        """

    @abstractmethod
    def get_all_components(self) -> list[Component]:
        """Return every stored component, ordered by id."""

    @abstractmethod
    def save_history_version(self, component_id: str, content: str) -> HistoryVersion:
        """Persist a new history version and return it with its version id."""

    @abstractmethod
    def get_history_versions(
        self,
        component_id: str,
        limit: int | None = None,
    ) -> list[HistoryVersion]:
        """Return history versions newest-first, at most ``limit`` of them."""

    @abstractmethod
    def get_history_version(self, component_id: str, version_id: str) -> HistoryVersion | None:
        """Exact lookup of a single version. None if it does not exist."""

    @abstractmethod
    def prune_history(self, component_id: str, keep_count: int) -> int:
        """Delete all but the ``keep_count`` newest versions. Returns count removed."""

    def close(self) -> None:
        """Release any held resources. Safe to call more than once."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
