"""Dwell service facade.

``DwellService`` is the call surface a presentation layer (CLI, panel,
extension) uses. It wires the store, backup manager and event bus together
and never holds aggregation logic of its own. Side effects that belong to
the presentation layer come in through capability interfaces:

- ``Exporter``: deliver export bytes under a file name
- ``Importer``: provide bytes to import
- ``UserConfirmation``: yes/no prompt before destructive actions
"""

from __future__ import annotations

from datetime import tzinfo
from typing import TYPE_CHECKING, Protocol

from .core.clock import SystemClock
from .core.events import EventBus
from .core.time import Timestamp
from .exchange.export import export_csv, export_filename, export_json
from .exchange.importer import ImportResult, import_json, import_payload
from .maintenance.backup import BackupInfo, BackupManager
from .observability import get_logger
from .rollups.summary import StoreSummary, summarize_store
from .rollups.windows import Resolution, recent_series
from .storage.backends import DirectoryBackend
from .storage.records import DomainRecord, StoreData
from .storage.store import AggregateStore
from .tracker import Tracker

if TYPE_CHECKING:
    from .config.settings import Settings
    from .core.clock import Clock
    from .storage.backends import StorageBackend

__all__ = [
    "CLEAR_CONFIRMATION_MESSAGE",
    "DwellService",
    "Exporter",
    "Importer",
    "UserConfirmation",
    "create_service",
]

CLEAR_CONFIRMATION_MESSAGE = "Are you sure you want to clear all tracking data? This cannot be undone."

logger = get_logger("store")


class Exporter(Protocol):
    """Delivers export content, e.g. as a download or a file."""

    def deliver(self, filename: str, content: str) -> None: ...


class Importer(Protocol):
    """Provides content to import, e.g. from a file picker."""

    def read(self) -> str: ...


class UserConfirmation(Protocol):
    """Asks the user a yes/no question."""

    def confirm(self, message: str) -> bool: ...


class DwellService:
    """Facade over the aggregate store, backups and export/import.

    Parameters
    ----------
    store
        Aggregate store
    backups
        Backup manager for ``store`` (created with defaults when omitted)
    clock
        Clock used for export dates and recent windows
    """

    def __init__(
        self,
        store: AggregateStore,
        *,
        backups: BackupManager | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.backups = backups or BackupManager(store, clock=self.clock)

    @property
    def event_bus(self) -> EventBus | None:
        return self.store.event_bus

    @property
    def timezone(self) -> tzinfo:
        return self.store.timezone

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def apply(self, domain: str, timestamp: Timestamp, delta_seconds: int) -> None:
        self.store.apply(domain, timestamp, delta_seconds)

    def snapshot(self) -> StoreData:
        return self.store.snapshot()

    def restore(self, blob: StoreData) -> None:
        """Replace the whole store with ``blob`` (destructive, no merge)."""
        self.store.restore(blob)

    def merge(self, blob: StoreData) -> ImportResult:
        """Merge a store from another source into the live store."""
        return import_payload(self.store, {"data": blob})

    def clear_all(self, confirmation: UserConfirmation | None = None) -> bool:
        """Remove every record, after asking ``confirmation`` if given.

        Returns
        -------
        bool
            True if the store was cleared, False if the user declined
        """
        if confirmation is not None and not confirmation.confirm(CLEAR_CONFIRMATION_MESSAGE):
            logger.info("Clear declined")
            return False

        self.store.clear()
        return True

    def record(self, domain: str) -> DomainRecord:
        return self.store.get(domain)

    def summary(self) -> StoreSummary:
        return summarize_store(self.store.load())

    def recent(self, domain: str, resolution: Resolution, count: int | None = None) -> dict[str, int]:
        """Zero-filled recent window for ``domain`` ending now."""
        return recent_series(self.store.get(domain), self.clock.now(), resolution, self.timezone, count)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def create_backup(self) -> str:
        return self.backups.create_backup()

    def list_backups(self) -> list[BackupInfo]:
        return self.backups.list_backups()

    def restore_backup(self, backup_id: str) -> None:
        self.backups.restore_backup(backup_id)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_json(self, exporter: Exporter | None = None) -> str:
        """JSON export of the store; handed to ``exporter`` when given."""
        now = self.clock.now()
        content = export_json(self.store.load(), now)
        if exporter is not None:
            exporter.deliver(export_filename(now, "json"), content)
        logger.bind(component="exchange").info("Exported JSON", domains=len(self.store.domains()))
        return content

    def export_csv(self, exporter: Exporter | None = None) -> str:
        """CSV export of the store; handed to ``exporter`` when given."""
        now = self.clock.now()
        content = export_csv(self.store.load())
        if exporter is not None:
            exporter.deliver(export_filename(now, "csv"), content)
        logger.bind(component="exchange").info("Exported CSV", domains=len(self.store.domains()))
        return content

    def import_json(self, source: str | bytes | Importer) -> ImportResult:
        """Import JSON text, or the content an ``Importer`` provides."""
        text = source if isinstance(source, (str, bytes)) else source.read()
        return import_json(self.store, text)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def tracker(
        self,
        domain: str,
        *,
        tick_seconds: int = 1,
        idle_threshold_ms: int | None = None,
    ) -> Tracker:
        """New tracker for ``domain`` bound to this service's store and clock."""
        kwargs = {} if idle_threshold_ms is None else {"idle_threshold_ms": idle_threshold_ms}
        return Tracker(domain, self.store, clock=self.clock, tick_seconds=tick_seconds, **kwargs)


def create_service(
    settings: Settings,
    *,
    backend: StorageBackend | None = None,
    clock: Clock | None = None,
    event_bus: EventBus | None = None,
) -> DwellService:
    """Build a service from settings.

    Parameters
    ----------
    settings
        Loaded settings
    backend
        Storage backend (default: ``DirectoryBackend(settings.data_dir)``)
    clock
        Clock (default: system clock)
    event_bus
        Event bus (default: a new one)
    """
    clock = clock or SystemClock()
    store = AggregateStore(
        backend or DirectoryBackend(settings.data_dir),
        store_key=settings.store_key,
        timezone=settings.timezone,
        event_bus=event_bus or EventBus(),
    )
    backups = BackupManager(store, retention=settings.backup_retention, clock=clock)
    return DwellService(store, backups=backups, clock=clock)
