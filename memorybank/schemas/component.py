"""Component and HistoryVersion schemas — the records the backends return.

Immutability Rules:
- A Component record is a point-in-time read; writes produce a new record.
- History versions are never modified after creation. They disappear
  only through pruning or component deletion.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Component(BaseModel):
    """Current content of a single memory bank component."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Component identifier, e.g. 'activeContext'")
    content: str = Field(default="", description="Current markdown content")
    updated_at: datetime = Field(..., description="Time of the last write (UTC)")

    @field_validator("updated_at")
    @classmethod
    def must_have_timezone(cls, v: datetime) -> datetime:
        """Timestamps must include timezone information."""
        if v.tzinfo is None:
            raise ValueError("updated_at must include timezone information")
        return v

    def to_payload(self) -> dict[str, Any]:
        """Notification-friendly representation."""
        return {
            "id": self.id,
            "content": self.content,
            "updatedAt": self.updated_at.isoformat(),
        }


class HistoryVersion(BaseModel):
    """An immutable snapshot of a component captured when it was superseded.

    version_id is opaque: the file backend uses a sanitized timestamp,
    the SQLite backend the row id. Callers must not parse it.
    """

    model_config = ConfigDict(frozen=True)

    component_id: str = Field(..., description="Owning component")
    version_id: str = Field(..., description="Backend-assigned version identity")
    content: str = Field(..., description="Content before the overwrite")
    timestamp: datetime = Field(..., description="Creation instant of this version")


class CacheStats(BaseModel):
    """Snapshot of CacheLayer counters."""

    model_config = ConfigDict(frozen=True)

    enabled: bool
    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    last_cleared_at: datetime
    size: int = Field(default=0, ge=0)
    ratio: Optional[float] = Field(
        default=None,
        description="Hit ratio, None before the first lookup",
    )
