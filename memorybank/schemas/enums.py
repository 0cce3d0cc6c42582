"""Shared enumerations for memory bank schemas.

All enums used across the memory bank are defined here to ensure
consistency and avoid circular imports.
"""

from enum import Enum


class ComponentId(str, Enum):
    """Closed set of well-known memory bank components.

    The first four are required; SYSTEM_PATTERNS is an optional
    extension component that is only materialized on first access.
    """
    ACTIVE_CONTEXT = "activeContext"
    PRODUCT_CONTEXT = "productContext"
    DECISION_LOG = "decisionLog"
    PROGRESS = "progress"
    SYSTEM_PATTERNS = "systemPatterns"

    @property
    def required(self) -> bool:
        return self in REQUIRED_COMPONENTS


REQUIRED_COMPONENTS: tuple[ComponentId, ...] = (
    ComponentId.ACTIVE_CONTEXT,
    ComponentId.PRODUCT_CONTEXT,
    ComponentId.DECISION_LOG,
    ComponentId.PROGRESS,
)


class EventType(str, Enum):
    """Notification event taxonomy. Exhaustive."""
    COMPONENT_CREATED = "component.created"
    COMPONENT_UPDATED = "component.updated"
    COMPONENT_DELETED = "component.deleted"
    HISTORY_ADDED = "history.added"
    CACHE_CLEARED = "cache.cleared"
    IMPORT_COMPLETED = "import.completed"
    EXPORT_COMPLETED = "export.completed"


class ExportFormat(str, Enum):
    """Serialization formats for component snapshots."""
    JSON = "json"
    YAML = "yaml"
