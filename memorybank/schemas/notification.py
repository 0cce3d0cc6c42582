"""Notification schema — the payload delivered to subscriber callbacks.

Shape on the wire (model_dump(mode="json")):
    {"type": "component.updated", "timestamp": "...", "data": {...}}
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from memorybank.schemas.enums import EventType


class Notification(BaseModel):
    """A single published event.

    type is kept as a plain string so that events outside the known
    taxonomy can still be delivered to catch-all subscribers.
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Event type value, e.g. 'component.updated'")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def known(self) -> bool:
        """True if the type belongs to the EventType taxonomy."""
        return self.type in {e.value for e in EventType}
