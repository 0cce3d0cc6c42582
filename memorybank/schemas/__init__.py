"""Memory bank schemas — typed records shared by backends, services, and callers."""

from memorybank.schemas.component import CacheStats, Component, HistoryVersion
from memorybank.schemas.enums import (
    REQUIRED_COMPONENTS,
    ComponentId,
    EventType,
    ExportFormat,
)
from memorybank.schemas.notification import Notification
from memorybank.schemas.snapshot import ComponentSnapshot, MemoryBankExport

__all__ = [
    "CacheStats",
    "Component",
    "ComponentId",
    "ComponentSnapshot",
    "EventType",
    "ExportFormat",
    "HistoryVersion",
    "MemoryBankExport",
    "Notification",
    "REQUIRED_COMPONENTS",
]
