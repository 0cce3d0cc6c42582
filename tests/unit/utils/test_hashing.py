"""Tests for hashing utilities.

Validates deterministic content hashing of component mappings and
export snapshots.
"""

from datetime import datetime, timezone

from memorybank.schemas.snapshot import ComponentSnapshot, MemoryBankExport
from memorybank.utils.hashing import compute_content_hash, compute_text_hash


# ===================================================================
# compute_content_hash Tests
# ===================================================================
class TestComputeContentHash:
    """Tests for compute_content_hash utility."""

    def test_dict_produces_valid_hash(self) -> None:
        """Dict input should produce a 64-char hex SHA-256."""
        result = compute_content_hash({"activeContext": "# Active Context"})
        assert len(result) == 64
        assert all(c in "0123456789abcdef" for c in result)

    def test_deterministic(self) -> None:
        data = {"progress": "done", "decisionLog": "decided"}
        assert compute_content_hash(data) == compute_content_hash(data)

    def test_key_order_invariant(self) -> None:
        """Key order should not affect the hash."""
        h1 = compute_content_hash({"progress": "p", "activeContext": "a"})
        h2 = compute_content_hash({"activeContext": "a", "progress": "p"})
        assert h1 == h2

    def test_different_content_different_hash(self) -> None:
        h1 = compute_content_hash({"progress": "v1"})
        h2 = compute_content_hash({"progress": "v2"})
        assert h1 != h2

    def test_empty_dict(self) -> None:
        assert len(compute_content_hash({})) == 64

    def test_pydantic_model_input(self) -> None:
        """Pydantic models are hashed through model_dump(mode='json')."""
        snapshot = ComponentSnapshot(id="progress", content="p")
        assert compute_content_hash(snapshot) == compute_content_hash(
            {"id": "progress", "content": "p", "updated_at": None}
        )


# ===================================================================
# compute_text_hash Tests
# ===================================================================
class TestComputeTextHash:
    def test_known_digest(self) -> None:
        assert compute_text_hash("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_unicode(self) -> None:
        assert compute_text_hash("café") != compute_text_hash("cafe")


# ===================================================================
# Export snapshot hash
# ===================================================================
class TestExportHash:
    def test_hash_ignores_export_time(self) -> None:
        components = [ComponentSnapshot(id="progress", content="p")]
        a = MemoryBankExport(exported_at=datetime(2026, 1, 1, tzinfo=timezone.utc), components=components)
        b = MemoryBankExport(exported_at=datetime(2026, 6, 1, tzinfo=timezone.utc), components=components)
        assert a.content_hash == b.content_hash

    def test_hash_matches_mapping(self) -> None:
        export = MemoryBankExport(
            exported_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            components=[ComponentSnapshot(id="progress", content="p")],
        )
        assert export.content_hash == compute_content_hash(export.as_mapping())
