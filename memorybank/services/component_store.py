"""ComponentStore — the public face of the memory bank.

Composes a Backend, a HistoryPolicy, a CacheLayer and a NotificationBus.
Callers (transport, CLI, workflows) only ever talk to this class; they
never touch a backend directly.

Per-component lifecycle:
  Absent  → first read materializes the static default (no history, no event)
  Absent  → first write creates the component (COMPONENT_CREATED)
  Present → content-changing write snapshots the old value into history
            *before* overwriting (HISTORY_ADDED, then COMPONENT_UPDATED)
  Present → delete_component() returns it to Absent (COMPONENT_DELETED)

Writes to the same component are serialized by a per-id re-entrant lock.
Events for a component are published under that lock, so subscribers
observe them in write order.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

import yaml
from pydantic import ValidationError

from memorybank.defaults import default_content
from memorybank.exceptions import (
    HistoryWriteError,
    MemoryBankError,
    UnknownComponentError,
    VersionNotFoundError,
)
from memorybank.schemas.component import CacheStats, Component, HistoryVersion
from memorybank.schemas.enums import REQUIRED_COMPONENTS, ComponentId, EventType, ExportFormat
from memorybank.schemas.snapshot import ComponentSnapshot, MemoryBankExport
from memorybank.services.cache import CacheLayer
from memorybank.services.history_policy import HistoryPolicy
from memorybank.services.notifications import DeliveryReport, NotificationBus, NotificationCallback
from memorybank.storage.base import Backend
from memorybank.utils.logging import get_logger


class ComponentStore:
    """Versioned, notification-emitting store for memory bank components.

    Construction initializes the backend; a BackendError raised there
    is fatal and propagates to the caller.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        history_policy: HistoryPolicy | None = None,
        cache: CacheLayer | None = None,
        bus: NotificationBus | None = None,
        enable_notifications: bool = True,
        logger: Any = None,
    ) -> None:
        self._backend = backend
        # Explicit None checks: an empty CacheLayer is falsy through __len__.
        self._history = history_policy if history_policy is not None else HistoryPolicy()
        self._cache = cache if cache is not None else CacheLayer(enabled=False)
        self._log = logger if logger is not None else get_logger("component_store")
        self._bus = bus if bus is not None else NotificationBus(logger=get_logger("notification_bus"))
        self._notifications_enabled = enable_notifications

        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

        self._backend.initialize()
        self._log.info(
            "Component store ready",
            backend=repr(backend),
            max_history_versions=self._history.max_versions,
            cache_enabled=self._cache.enabled,
        )

    @property
    def max_history_versions(self) -> int:
        return self._history.max_versions

    @property
    def notifications_enabled(self) -> bool:
        return self._notifications_enabled

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        """True iff every required component exists in the backend."""
        return all(
            self._backend.get_component(component.value) is not None
            for component in REQUIRED_COMPONENTS
        )

    def initialize(self) -> bool:
        """Write the default content of every required component.

        Safe to call on an initialized store: content is rewritten with
        the same defaults (no history is added for unchanged content).
        """
        for component in REQUIRED_COMPONENTS:
            self.update_component(component, default_content(component))
        self._log.info("Memory bank initialized", components=[c.value for c in REQUIRED_COMPONENTS])
        return True

    def close(self) -> None:
        self._backend.close()

    def __enter__(self) -> "ComponentStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_component(self, component_id: ComponentId | str) -> str:
        """Current content; materializes the default if never written."""
        component = self._resolve(component_id, "get_component")
        key = component.value

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        stored = self._backend.get_component(key)
        if stored is None:
            return self._materialize(component)

        self._cache.set(key, stored.content)
        return stored.content

    def get_all_components(self) -> dict[str, str]:
        """Content of every known component, keyed by id."""
        return {component.value: self.get_component(component) for component in ComponentId}

    def get_component_history(
        self,
        component_id: ComponentId | str,
        *,
        limit: int | None = None,
        content_only: bool = False,
    ) -> list[HistoryVersion] | list[str]:
        """History newest-first, optionally truncated and projected to content."""
        key = self._resolve(component_id, "get_component_history").value
        versions = self._backend.get_history_versions(key, limit)
        versions = HistoryPolicy.select(HistoryPolicy.order(versions), limit)
        if content_only:
            return [v.content for v in versions]
        return versions

    def get_component_version(self, component_id: ComponentId | str, version_id: str) -> str:
        """Content of one history version.

        Raises:
            VersionNotFoundError: if the version does not exist.
        """
        key = self._resolve(component_id, "get_component_version").value
        version = self._backend.get_history_version(key, str(version_id))
        if version is None:
            raise VersionNotFoundError(
                f"Version {version_id} not found for component {key}",
                component_id=key,
                operation="get_component_version",
                version_id=str(version_id),
            )
        return version.content

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def update_component(self, component_id: ComponentId | str, content: str) -> Component:
        """Replace a component's content."""
        component = self._resolve(component_id, "update_component")
        return self._write(component, lambda _current: content, "update_component")

    def append_to_component(self, component_id: ComponentId | str, content: str) -> Component:
        """Append to a component's content (an absent component counts as empty)."""
        component = self._resolve(component_id, "append_to_component")
        return self._write(component, lambda current: current + content, "append_to_component")

    def delete_component(self, component_id: ComponentId | str) -> bool:
        """Remove a component and its history. False if it did not exist."""
        key = self._resolve(component_id, "delete_component").value
        with self._write_lock(key):
            removed = self._backend.delete_component(key)
            self._cache.invalidate(key)
            if removed:
                self._publish(EventType.COMPONENT_DELETED, {"componentId": key})
        if removed:
            self._log.info("Component deleted", component_id=key)
        return removed

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> int:
        """Empty the cache and announce it. Returns entries dropped."""
        dropped = self._cache.clear()
        self._publish(EventType.CACHE_CLEARED, {})
        return dropped

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(
        self,
        connection_id: str,
        event_types: Iterable[EventType | str] | None,
        callback: NotificationCallback,
    ) -> str:
        return self._bus.subscribe(connection_id, event_types, callback)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._bus.unsubscribe(subscription_id)

    def unsubscribe_all(self, connection_id: str) -> int:
        return self._bus.unsubscribe_all(connection_id)

    @staticmethod
    def event_types() -> list[EventType]:
        return list(EventType)

    # ------------------------------------------------------------------
    # Import / export / migration
    # ------------------------------------------------------------------

    def export_components(self, fmt: ExportFormat | str = ExportFormat.JSON) -> str:
        """Serialize every stored component as JSON or YAML."""
        export_format = ExportFormat(fmt)
        known = {c.value for c in ComponentId}
        snapshot = MemoryBankExport(
            exported_at=datetime.now(timezone.utc),
            components=[
                ComponentSnapshot(id=c.id, content=c.content, updated_at=c.updated_at)
                for c in self._backend.get_all_components()
                if c.id in known
            ],
        )

        if export_format is ExportFormat.YAML:
            payload = yaml.safe_dump(
                snapshot.model_dump(mode="json"),
                sort_keys=False,
                allow_unicode=True,
            )
        else:
            payload = snapshot.model_dump_json(indent=2)

        self._publish(
            EventType.EXPORT_COMPLETED,
            {"count": len(snapshot.components), "format": export_format.value},
        )
        self._log.info(
            "Components exported",
            count=len(snapshot.components),
            format=export_format.value,
            content_hash=snapshot.content_hash,
        )
        return payload

    def import_components(self, payload: str, fmt: ExportFormat | str = ExportFormat.JSON) -> int:
        """Load components from an export (or a plain id → content mapping).

        Every id is validated before anything is written. Each component
        then goes through update_component, so history and events behave
        exactly as for a normal write.
        """
        export_format = ExportFormat(fmt)
        snapshot = self._parse_import(payload, export_format)

        components = [(self._resolve(c.id, "import_components"), c.content) for c in snapshot.components]
        for component, content in components:
            self.update_component(component, content)

        self._publish(
            EventType.IMPORT_COMPLETED,
            {"count": len(components), "format": export_format.value},
        )
        self._log.info("Components imported", count=len(components), format=export_format.value)
        return len(components)

    def migrate_from(self, source: Backend, *, include_history: bool = False) -> int:
        """One-shot, non-transactional copy from another backend.

        Copies each known component that exists in ``source``. With
        include_history, versions are replayed oldest-first so their
        order survives; they are re-stamped with the migration time.
        Returns the number of components copied.
        """
        source.initialize()
        copied = 0
        for component in ComponentId:
            key = component.value
            stored = source.get_component(key)
            if stored is None:
                continue

            with self._write_lock(key):
                self._backend.save_component(key, stored.content)
                if include_history:
                    for version in reversed(source.get_history_versions(key)):
                        self._backend.save_history_version(key, version.content)
                    self._history.enforce(self._backend, key)
                self._cache.invalidate(key)

            copied += 1
            self._log.info("Component migrated", component_id=key, source=repr(source))

        self._publish(EventType.IMPORT_COMPLETED, {"count": copied, "format": source.name})
        self._log.info("Migration completed", count=copied, source=repr(source))
        return copied

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve(self, component_id: ComponentId | str, operation: str) -> ComponentId:
        try:
            return ComponentId(component_id)
        except ValueError:
            raise UnknownComponentError(
                f"Unknown component: {component_id}",
                component_id=str(component_id),
                operation=operation,
            ) from None

    def _write_lock(self, key: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    def _materialize(self, component: ComponentId) -> str:
        key = component.value
        with self._write_lock(key):
            # A concurrent writer may have created it meanwhile.
            stored = self._backend.get_component(key)
            if stored is not None:
                content = stored.content
            else:
                content = default_content(component)
                self._backend.save_component(key, content)
                self._log.debug("Component materialized with default content", component_id=key)
            self._cache.set(key, content)
        return content

    def _write(
        self,
        component: ComponentId,
        compute: Callable[[str], str],
        operation: str,
    ) -> Component:
        key = component.value
        with self._write_lock(key):
            existing = self._backend.get_component(key)
            current = existing.content if existing is not None else ""
            content = compute(current)
            if not isinstance(content, str):
                raise TypeError(f"{operation}: content must be str, got {type(content).__name__}")

            version: HistoryVersion | None = None
            if existing is not None and existing.content != content:
                version = self._record_history(key, existing.content)

            saved = self._backend.save_component(key, content)
            self._cache.set(key, content)

            event = EventType.COMPONENT_CREATED if existing is None else EventType.COMPONENT_UPDATED
            self._publish(event, {"componentId": key, "component": saved.to_payload()})

        self._log.info(
            "Component written",
            component_id=key,
            operation=operation,
            created=existing is None,
            version_id=version.version_id if version else None,
        )
        return saved

    def _record_history(self, key: str, previous: str) -> HistoryVersion | None:
        """Snapshot the superseded value. Failures are logged, not raised."""
        if self._history.max_versions == 0:
            return None
        try:
            version = self._history.record(self._backend, key, previous)
        except HistoryWriteError as exc:
            self._log.warning(
                "History write failed; continuing with update",
                component_id=key,
                operation=exc.operation,
                error=str(exc),
            )
            return None

        self._publish(
            EventType.HISTORY_ADDED,
            {"componentId": key, "versionId": version.version_id},
        )
        return version

    def _publish(self, event_type: EventType, data: dict[str, Any]) -> DeliveryReport | None:
        if not self._notifications_enabled:
            return None
        return self._bus.publish(event_type, data)

    def _parse_import(self, payload: str, export_format: ExportFormat) -> MemoryBankExport:
        try:
            if export_format is ExportFormat.YAML:
                data = yaml.safe_load(payload)
            else:
                data = json.loads(payload)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise MemoryBankError(
                f"Import payload is not valid {export_format.value}: {exc}",
                operation="import_components",
            ) from exc

        if not isinstance(data, dict):
            raise MemoryBankError(
                "Import payload must be a mapping",
                operation="import_components",
            )

        if "components" not in data:
            # Plain mapping form: {componentId: content}
            data = {
                "exported_at": datetime.now(timezone.utc),
                "components": [{"id": k, "content": v} for k, v in data.items()],
            }

        expected_hash = data.get("content_hash")
        try:
            snapshot = MemoryBankExport.model_validate(data)
        except ValidationError as exc:
            raise MemoryBankError(
                f"Import payload does not match the export schema: {exc}",
                operation="import_components",
            ) from exc

        if expected_hash and expected_hash != snapshot.content_hash:
            raise MemoryBankError(
                "Import payload content hash mismatch",
                operation="import_components",
            )
        return snapshot
