"""Export snapshot schema.

A MemoryBankExport captures the current content of every component at
one instant. The content_hash makes snapshots comparable: the same
component contents always produce the same hash, regardless of when
the export ran.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from memorybank.utils.hashing import compute_content_hash


class ComponentSnapshot(BaseModel):
    """One component inside an export."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Component identifier")
    content: str = Field(default="")
    updated_at: datetime | None = Field(default=None)


class MemoryBankExport(BaseModel):
    """Serializable snapshot of the whole memory bank."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = Field(default="1.0.0")
    exported_at: datetime = Field(...)
    components: list[ComponentSnapshot] = Field(default_factory=list)
    content_hash: str = Field(default="")

    @model_validator(mode="after")
    def _compute_content_hash(self) -> "MemoryBankExport":
        data: dict[str, Any] = {c.id: c.content for c in self.components}
        # Use object.__setattr__ because model is frozen
        object.__setattr__(self, "content_hash", compute_content_hash(data))
        return self

    def as_mapping(self) -> dict[str, str]:
        return {c.id: c.content for c in self.components}
