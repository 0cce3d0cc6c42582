"""Centralized settings for the memory bank.

Reads configuration from environment variables with sensible defaults,
optionally layered on top of a YAML file.

Usage:
    from memorybank.config.settings import get_settings
    settings = get_settings()
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

ENV_PREFIX = "MEMORYBANK_"


@dataclass(frozen=True)
class MemoryBankSettings:
    """Immutable memory bank settings."""

    # Storage
    base_path: Path = Path("memory-bank")
    history_path: Path | None = None
    use_database: bool = False
    database_path: Path | None = None

    # History
    max_history_versions: int = 10

    # Features
    enable_cache: bool = False
    enable_notifications: bool = True

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    def __post_init__(self) -> None:
        if self.max_history_versions < 0:
            raise ValueError(
                f"max_history_versions must be >= 0, got {self.max_history_versions}"
            )

    @property
    def resolved_history_path(self) -> Path:
        return self.history_path or self.base_path / "history"

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.base_path / "memory-bank.db"

    def summary(self) -> dict[str, Any]:
        """Return a loggable view of the settings."""
        return {
            "backend": "sqlite" if self.use_database else "file",
            "base_path": str(self.base_path),
            "history_path": str(self.resolved_history_path),
            "database_path": str(self.resolved_database_path),
            "max_history_versions": self.max_history_versions,
            "enable_cache": self.enable_cache,
            "enable_notifications": self.enable_notifications,
        }


def _bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    val = str(value).strip().lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Convert raw strings / YAML scalars into field types."""
    result: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if key in ("base_path", "history_path", "database_path"):
            result[key] = Path(value)
        elif key in ("use_database", "enable_cache", "enable_notifications", "json_logs"):
            result[key] = _bool(value)
        elif key == "max_history_versions":
            result[key] = int(value)
        elif key == "log_level":
            result[key] = str(value).upper()
        else:
            result[key] = value
    return result


def _from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for f in fields(MemoryBankSettings):
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None and raw != "":
            values[f.name] = raw
    return values


def get_settings() -> MemoryBankSettings:
    """Load settings from environment variables.

    Environment variables (all optional):
        MEMORYBANK_BASE_PATH: Directory for component files (default: memory-bank)
        MEMORYBANK_HISTORY_PATH: History directory (default: <base>/history)
        MEMORYBANK_USE_DATABASE: Use the SQLite backend (default: false)
        MEMORYBANK_DATABASE_PATH: SQLite file (default: <base>/memory-bank.db)
        MEMORYBANK_MAX_HISTORY_VERSIONS: Versions kept per component (default: 10)
        MEMORYBANK_ENABLE_CACHE: Enable the read cache (default: false)
        MEMORYBANK_ENABLE_NOTIFICATIONS: Publish change events (default: true)
        MEMORYBANK_LOG_LEVEL: Logging level (default: INFO)
        MEMORYBANK_JSON_LOGS: Render logs as JSON (default: true)
    """
    return MemoryBankSettings(**_coerce(_from_env()))


def load_settings(path: str | Path) -> MemoryBankSettings:
    """Load settings from a YAML file; environment variables take precedence.

    The file is a flat mapping of field names, e.g.:

        base_path: ./memory-bank
        use_database: true
        max_history_versions: 5
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")

    known = {f.name for f in fields(MemoryBankSettings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings in {path}: {', '.join(sorted(unknown))}")

    merged = {**data, **_from_env()}
    return MemoryBankSettings(**_coerce(merged))
