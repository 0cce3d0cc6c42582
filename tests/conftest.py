"""Shared test fixtures for memory bank tests.

Provides file and SQLite backends rooted in tmp_path, a parametrized
``backend`` fixture that runs a test once per storage strategy, and
ready-made stores.
"""

from pathlib import Path

import pytest

from memorybank.schemas.notification import Notification
from memorybank.services.cache import CacheLayer
from memorybank.services.component_store import ComponentStore
from memorybank.services.history_policy import HistoryPolicy
from memorybank.storage.base import Backend
from memorybank.storage.file_backend import FileBackend
from memorybank.storage.sqlite_backend import SqliteBackend
from tests.fixtures.backends import CountingBackend


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------
@pytest.fixture
def base_path(tmp_path: Path) -> Path:
    return tmp_path / "memory-bank"


@pytest.fixture
def file_backend(base_path: Path) -> FileBackend:
    backend = FileBackend(base_path)
    backend.initialize()
    return backend


@pytest.fixture
def sqlite_backend(base_path: Path):
    backend = SqliteBackend(base_path / "memory-bank.db")
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture(params=["file", "sqlite"])
def backend(request, base_path: Path):
    """Each test using this fixture runs against both storage strategies."""
    if request.param == "file":
        instance: Backend = FileBackend(base_path)
    else:
        instance = SqliteBackend(base_path / "memory-bank.db")
    instance.initialize()
    yield instance
    instance.close()


@pytest.fixture
def counting_backend(backend: Backend) -> CountingBackend:
    return CountingBackend(backend)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------
@pytest.fixture
def store(backend: Backend) -> ComponentStore:
    """Store with default retention and no cache."""
    return ComponentStore(backend, history_policy=HistoryPolicy(10))


@pytest.fixture
def cached_store(counting_backend: CountingBackend) -> ComponentStore:
    return ComponentStore(
        counting_backend,
        history_policy=HistoryPolicy(10),
        cache=CacheLayer(enabled=True),
    )


@pytest.fixture
def initialized_store(store: ComponentStore) -> ComponentStore:
    store.initialize()
    return store


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@pytest.fixture
def received() -> list[Notification]:
    """Sink list for subscriber callbacks: ``store.subscribe(..., received.append)``."""
    return []
