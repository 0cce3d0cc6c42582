"""Tests for HistoryPolicy — retention bound and newest-first ordering."""

from datetime import datetime, timedelta, timezone

import pytest

from memorybank.exceptions import HistoryWriteError
from memorybank.schemas.component import HistoryVersion
from memorybank.services.history_policy import DEFAULT_MAX_HISTORY_VERSIONS, HistoryPolicy
from memorybank.storage.base import Backend
from tests.fixtures.backends import FlakyHistoryBackend


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NOW = datetime(2026, 2, 20, 12, 0, 0, tzinfo=timezone.utc)


def _version(content: str, offset_seconds: int = 0, version_id: str | None = None) -> HistoryVersion:
    return HistoryVersion(
        component_id="progress",
        version_id=version_id or content,
        content=content,
        timestamp=NOW + timedelta(seconds=offset_seconds),
    )


# ===========================================================================
# Construction
# ===========================================================================


class TestConstruction:
    def test_default_bound(self):
        assert HistoryPolicy().max_versions == DEFAULT_MAX_HISTORY_VERSIONS == 10

    def test_zero_allowed(self):
        assert HistoryPolicy(0).max_versions == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="max_versions"):
            HistoryPolicy(-1)


# ===========================================================================
# record / enforce
# ===========================================================================


class TestRecord:
    def test_record_returns_version(self, backend: Backend):
        version = HistoryPolicy(5).record(backend, "progress", "old")
        assert version.content == "old"
        assert backend.get_history_versions("progress")[0].version_id == version.version_id

    def test_record_enforces_bound(self, backend: Backend):
        policy = HistoryPolicy(2)
        for content in ("one", "two", "three", "four"):
            policy.record(backend, "progress", content)
        contents = [v.content for v in backend.get_history_versions("progress")]
        assert contents == ["four", "three"]

    def test_bound_zero_keeps_nothing(self, backend: Backend):
        HistoryPolicy(0).record(backend, "progress", "gone")
        assert backend.get_history_versions("progress") == []

    def test_backend_failure_becomes_history_write_error(self, backend: Backend):
        flaky = FlakyHistoryBackend(backend)
        with pytest.raises(HistoryWriteError) as exc_info:
            HistoryPolicy(5).record(flaky, "progress", "old")
        assert exc_info.value.component_id == "progress"
        assert exc_info.value.operation == "save_history_version"
        assert "disk full" in str(exc_info.value)

    def test_enforce_returns_removed_count(self, backend: Backend):
        for content in ("one", "two", "three"):
            backend.save_history_version("progress", content)
        assert HistoryPolicy(1).enforce(backend, "progress") == 2


# ===========================================================================
# order / select
# ===========================================================================


class TestOrdering:
    def test_order_newest_first(self):
        versions = [_version("old", 0), _version("new", 20), _version("mid", 10)]
        assert [v.content for v in HistoryPolicy.order(versions)] == ["new", "mid", "old"]

    def test_order_is_stable_for_equal_timestamps(self):
        # Backend output: newest first, ties already in insertion order
        versions = [_version("c", 0, "3"), _version("b", 0, "2"), _version("a", 0, "1")]
        assert [v.content for v in HistoryPolicy.order(versions)] == ["c", "b", "a"]

    def test_order_does_not_mutate_input(self):
        versions = [_version("old", 0), _version("new", 10)]
        HistoryPolicy.order(versions)
        assert [v.content for v in versions] == ["old", "new"]

    def test_select_none_returns_all(self):
        versions = [_version("a"), _version("b")]
        assert HistoryPolicy.select(versions, None) == versions

    def test_select_truncates(self):
        versions = [_version(c) for c in ("a", "b", "c")]
        assert [v.content for v in HistoryPolicy.select(versions, 2)] == ["a", "b"]

    def test_select_non_positive(self):
        versions = [_version("a")]
        assert HistoryPolicy.select(versions, 0) == []
        assert HistoryPolicy.select(versions, -3) == []
