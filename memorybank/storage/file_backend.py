"""FileBackend — one markdown file per component, one file per history version.

Layout:
    <base_path>/<component_id>.md
    <history_path>/<component_id>/<version_id>.md

Version ids are the UTC creation timestamp rendered as
``YYYY-MM-DDTHH:MM:SS.ffffffZ`` with ':' and '.' replaced by '-'. Because
the rendering is zero-padded ISO-8601, a lexicographic descending sort of
the directory listing is newest-first. Writes landing in the same
microsecond get a ``_NNNN`` suffix, which sorts after the bare name and
so keeps insertion order.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path

import structlog

from memorybank.exceptions import BackendError
from memorybank.schemas.component import Component, HistoryVersion
from memorybank.storage.base import Backend, utc_now

logger = structlog.get_logger()

COMPONENT_SUFFIX = ".md"
_VERSION_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


def sanitize_version_id(raw: str) -> str:
    """Make a timestamp string filesystem-safe (':' and '.' become '-')."""
    return raw.replace(":", "-").replace(".", "-")


def version_id_for(ts: datetime) -> str:
    """Render a timestamp as a file backend version id."""
    rendered = ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return sanitize_version_id(rendered)


def timestamp_from_version_id(version_id: str) -> datetime:
    """Inverse of version_id_for. Ignores any collision suffix."""
    base = version_id.split("_", 1)[0]
    return datetime.strptime(base, _VERSION_FORMAT).replace(tzinfo=timezone.utc)


class FileBackend(Backend):
    """Flat-file storage strategy.

    Thread-safe for version-name allocation. Component writes go through
    a temp file and os.replace, so readers never see a partial file.
    """

    name = "file"

    def __init__(self, base_path: Path | str, history_path: Path | str | None = None) -> None:
        self._base_path = Path(base_path)
        self._history_path = Path(history_path) if history_path else self._base_path / "history"
        self._lock = threading.RLock()

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def history_path(self) -> Path:
        return self._history_path

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
            self._history_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BackendError(
                f"Failed to create memory bank directories under {self._base_path}: {exc}",
                operation="initialize",
            ) from exc
        logger.debug(
            "File backend initialized",
            base_path=str(self._base_path),
            history_path=str(self._history_path),
        )

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def get_component(self, component_id: str) -> Component | None:
        path = self._component_path(component_id, "get_component")
        try:
            content = self._read(path)
            updated_at = self._mtime(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BackendError(
                f"Failed to read component {component_id}: {exc}",
                component_id=component_id,
                operation="get_component",
            ) from exc
        return Component(id=component_id, content=content, updated_at=updated_at)

    def save_component(self, component_id: str, content: str) -> Component:
        path = self._component_path(component_id, "save_component")
        try:
            self._atomic_write(path, content)
            updated_at = self._mtime(path)
        except OSError as exc:
            raise BackendError(
                f"Failed to write component {component_id}: {exc}",
                component_id=component_id,
                operation="save_component",
            ) from exc
        return Component(id=component_id, content=content, updated_at=updated_at)

    def delete_component(self, component_id: str) -> bool:
        path = self._component_path(component_id, "delete_component")
        history_dir = self._history_path / component_id
        existed = False
        try:
            if path.exists():
                path.unlink()
                existed = True
            if history_dir.is_dir():
                shutil.rmtree(history_dir)
                existed = True
        except OSError as exc:
            raise BackendError(
                f"Failed to delete component {component_id}: {exc}",
                component_id=component_id,
                operation="delete_component",
            ) from exc
        return existed

    def get_all_components(self) -> list[Component]:
        if not self._base_path.is_dir():
            return []
        results: list[Component] = []
        try:
            paths = sorted(self._base_path.glob(f"*{COMPONENT_SUFFIX}"))
        except OSError as exc:
            raise BackendError(
                f"Failed to list components in {self._base_path}: {exc}",
                operation="get_all_components",
            ) from exc
        for path in paths:
            if not path.is_file() or path.name.startswith("."):
                continue
            component = self.get_component(path.stem)
            if component is not None:
                results.append(component)
        return results

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def save_history_version(self, component_id: str, content: str) -> HistoryVersion:
        self._validate_id(component_id, "save_history_version")
        history_dir = self._history_path / component_id
        with self._lock:
            timestamp = utc_now()
            base_id = version_id_for(timestamp)
            version_id = base_id
            try:
                history_dir.mkdir(parents=True, exist_ok=True)
                collisions = 0
                while (history_dir / f"{version_id}{COMPONENT_SUFFIX}").exists():
                    collisions += 1
                    version_id = f"{base_id}_{collisions:04d}"
                self._atomic_write(history_dir / f"{version_id}{COMPONENT_SUFFIX}", content)
            except OSError as exc:
                raise BackendError(
                    f"Failed to write history for component {component_id}: {exc}",
                    component_id=component_id,
                    operation="save_history_version",
                ) from exc

        return HistoryVersion(
            component_id=component_id,
            version_id=version_id,
            content=content,
            timestamp=timestamp,
        )

    def get_history_versions(
        self,
        component_id: str,
        limit: int | None = None,
    ) -> list[HistoryVersion]:
        names = self._version_names(component_id, "get_history_versions")
        if limit is not None:
            names = names[: max(limit, 0)]

        versions: list[HistoryVersion] = []
        for version_id in names:
            version = self._load_version(component_id, version_id)
            if version is not None:
                versions.append(version)
        return versions

    def get_history_version(self, component_id: str, version_id: str) -> HistoryVersion | None:
        self._validate_id(component_id, "get_history_version")
        for candidate in self._version_candidates(version_id):
            version = self._load_version(component_id, candidate)
            if version is not None:
                return version
        return None

    def prune_history(self, component_id: str, keep_count: int) -> int:
        if keep_count < 0:
            raise ValueError(f"keep_count must be >= 0, got {keep_count}")
        history_dir = self._history_path / component_id
        with self._lock:
            names = self._version_names(component_id, "prune_history")
            removed = 0
            try:
                for version_id in names[keep_count:]:
                    (history_dir / f"{version_id}{COMPONENT_SUFFIX}").unlink(missing_ok=True)
                    removed += 1
            except OSError as exc:
                raise BackendError(
                    f"Failed to prune history for component {component_id}: {exc}",
                    component_id=component_id,
                    operation="prune_history",
                ) from exc

        if removed:
            logger.debug(
                "History pruned",
                component_id=component_id,
                removed=removed,
                kept=keep_count,
            )
        return removed

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _validate_id(self, component_id: str, operation: str) -> None:
        """Reject ids that could escape the base directory."""
        separators = {"/", "\\", os.sep}
        if os.altsep:
            separators.add(os.altsep)
        if (
            not component_id
            or component_id in (".", "..")
            or "\x00" in component_id
            or any(sep in component_id for sep in separators)
        ):
            raise BackendError(
                f"Invalid component id: {component_id!r}",
                component_id=component_id,
                operation=operation,
            )

    def _component_path(self, component_id: str, operation: str) -> Path:
        self._validate_id(component_id, operation)
        return self._base_path / f"{component_id}{COMPONENT_SUFFIX}"

    def _version_names(self, component_id: str, operation: str) -> list[str]:
        """Version ids for a component, newest first."""
        self._validate_id(component_id, operation)
        history_dir = self._history_path / component_id
        try:
            entries = os.listdir(history_dir)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise BackendError(
                f"Failed to list history for component {component_id}: {exc}",
                component_id=component_id,
                operation=operation,
            ) from exc

        names = [
            entry[: -len(COMPONENT_SUFFIX)]
            for entry in entries
            if entry.endswith(COMPONENT_SUFFIX) and not entry.startswith(".")
        ]
        names.sort(reverse=True)
        return names

    def _version_candidates(self, version_id: str) -> list[str]:
        """Names a caller-supplied version id may refer to."""
        candidates = [version_id, sanitize_version_id(version_id)]
        try:
            parsed = datetime.fromisoformat(version_id.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            candidates.append(version_id_for(parsed))
        # dict.fromkeys keeps order while dropping duplicates
        return [
            c for c in dict.fromkeys(candidates)
            if c and "/" not in c and "\\" not in c and "\x00" not in c and c not in (".", "..")
        ]

    def _load_version(self, component_id: str, version_id: str) -> HistoryVersion | None:
        path = self._history_path / component_id / f"{version_id}{COMPONENT_SUFFIX}"
        try:
            content = self._read(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BackendError(
                f"Failed to read version {version_id} of component {component_id}: {exc}",
                component_id=component_id,
                operation="get_history_version",
            ) from exc

        try:
            timestamp = timestamp_from_version_id(version_id)
        except ValueError:
            timestamp = self._mtime(path)
        return HistoryVersion(
            component_id=component_id,
            version_id=version_id,
            content=content,
            timestamp=timestamp,
        )

    @staticmethod
    def _read(path: Path) -> str:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    @staticmethod
    def _mtime(path: Path) -> datetime:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        """Write via a temp file in the same directory, then os.replace."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise

    def __repr__(self) -> str:
        return f"FileBackend(base_path={str(self._base_path)!r})"
