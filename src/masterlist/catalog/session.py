# src/masterlist/catalog/session.py
import logging
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional, TypeVar, Union

from .errors import ExportError, ParseError
from .exporter import DEFAULT_BASE_NAME, DownloadSink, Exporter, ExportResult, create_optional_sink
from .importer import build_snapshot, parse_payload, read_text
from .persistence import PersistenceManager, PersistenceState
from .snapshot import SCHEMA_VERSION, Snapshot, next_timestamp, now_iso
from .store import CategoryStore, clean
from .views import CatalogView, format_category_items, format_full_report, format_status

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogSession:
    """
    Owns one CategoryStore and its version metadata, and is the only way to
    change them.

    Each public mutation runs under a single-flight lock: it either commits
    (store changed, version +1, updatedAt stamped, autosave queued) or raises
    with nothing changed. Concurrent callers queue on the lock. Views are
    refreshed after the lock is released, only for committed changes, and
    again when a background autosave fails or recovers.
    """

    def __init__(
        self,
        persistence: PersistenceManager,
        exporter: Optional[Exporter] = None,
        views: Optional[List[CatalogView]] = None,
    ):
        self.persistence = persistence
        self.exporter = exporter
        self.views: List[CatalogView] = list(views or [])

        self.store = CategoryStore()
        self.schema = SCHEMA_VERSION
        self.version = 1
        self.updated_at = now_iso()
        self.source_file_name: Optional[str] = None

        self._mutation_lock = threading.Lock()
        self._render_lock = threading.Lock()

        # Background saves report back here so a failure reaches the views
        self._save_ok = True
        self._chained_status = persistence.on_status
        persistence.on_status = self._on_save_status

    @classmethod
    def from_config(cls, config, views: Optional[List[CatalogView]] = None,
                    optional_sink: Optional[str] = None) -> "CatalogSession":
        """Builds a started session for the active profile of `config`."""
        persistence = PersistenceManager(
            snapshot_path=config.path("snapshot"),
            metadata_path=config.path("metadata"),
            autosave_async=config.get_bool("persistence.autosave_async", True),
            flush_timeout=config.get_float("persistence.flush_timeout_seconds", 5.0),
        )
        exporter = Exporter(
            fallback_sink=DownloadSink(config.path("exports")),
            optional_sink=create_optional_sink(config, optional_sink),
            default_base_name=config.get_str("export.default_base_name", DEFAULT_BASE_NAME),
        )
        session = cls(persistence, exporter, views)
        session.start()
        return session

    # --- Lifecycle ---

    def start(self) -> None:
        """Restores the persisted snapshot, or starts and saves an empty one."""
        restored = self.persistence.load()
        fresh = None
        with self._mutation_lock:
            if restored:
                snapshot, metadata = restored
                self._apply_snapshot(snapshot)
                self.source_file_name = metadata.source_file_name if metadata else None
            else:
                self._apply_snapshot(Snapshot.empty())
                self.source_file_name = None
                fresh = self._snapshot_locked()
        if fresh is not None:
            self.persistence.save(fresh, None)
        logger.info(f"Session ready: v{self.version}, {len(self.store)} categories")
        self._render()

    def close(self) -> None:
        self.persistence.close()

    def _apply_snapshot(self, snapshot: Snapshot) -> None:
        # replace_all raises before touching anything, so metadata is set only after it succeeds
        self.store.replace_all(snapshot.categories)
        self.schema = snapshot.schema
        self.version = snapshot.version
        self.updated_at = snapshot.updated_at

    # --- Versioning ---

    def _snapshot_locked(self) -> Snapshot:
        return Snapshot(version=self.version, updated_at=self.updated_at,
                        categories=self.store.rows(), schema=self.schema)

    def _bump_version(self) -> None:
        """Once per committed mutation; caller holds the mutation lock."""
        self.version += 1
        self.updated_at = next_timestamp(self.updated_at)
        self._queue_save()

    def _queue_save(self) -> None:
        self.persistence.mark_dirty()
        self.persistence.schedule_save(self._snapshot_locked(), self.source_file_name)

    def _commit(self, mutate: Callable[[], T]) -> T:
        with self._mutation_lock:
            result = mutate()
            self._bump_version()
        self._render()
        return result

    # --- Mutations ---

    def add_category(self, name: Any) -> str:
        self._commit(lambda: self.store.insert_category(name))
        logger.info(f"Added category: {clean(name)}")
        return clean(name)

    def delete_category(self, name: Any) -> int:
        removed = self._commit(lambda: self.store.delete_category(name))
        logger.info(f"Deleted category: {clean(name)} ({removed} row(s))")
        return removed

    def add_item(self, category: Any, item: Any) -> str:
        added = self._commit(lambda: self.store.add_item(category, item))
        logger.info(f"Added '{added}' to {clean(category)}")
        return added

    def remove_item(self, category: Any, item: Any) -> str:
        removed = self._commit(lambda: self.store.remove_item(category, item))
        logger.info(f"Removed '{removed}' from {clean(category)}")
        return removed

    def edit_item(self, category: Any, old_item: Any, new_item: Any) -> None:
        self._commit(lambda: self.store.edit_item(category, old_item, new_item))
        logger.info(f"Replaced '{clean(old_item)}' with '{clean(new_item)}' in {clean(category)}")

    def clear_items(self, category: Any) -> int:
        dropped = self._commit(lambda: self.store.clear_items(category))
        logger.info(f"Cleared {dropped} item(s) in {clean(category)}")
        return dropped

    def new_database(self) -> None:
        """Resets to an empty version-1 snapshot and saves it."""
        with self._mutation_lock:
            self.store.replace_all([])
            self.schema = SCHEMA_VERSION
            self.version = 1
            self.updated_at = next_timestamp(self.updated_at)
            self.source_file_name = None
            self._queue_save()
        logger.info("New empty database")
        self._render()

    # --- Import ---

    def import_text(self, text: str, source_file_name: Optional[str] = None) -> Snapshot:
        """
        Validates, normalizes and swaps in a payload. Raises ParseError or
        ShapeError with the store untouched. The imported version is kept.
        """
        snapshot = build_snapshot(parse_payload(text))
        with self._mutation_lock:
            self._apply_snapshot(snapshot)
            self.updated_at = next_timestamp(self.updated_at)
            self.source_file_name = source_file_name
            self._queue_save()
            imported = self._snapshot_locked()
        logger.info(f"Imported {source_file_name or 'payload'}: v{imported.version}, {len(imported.categories)} categories")
        self._render()
        return imported

    def import_file(self, path: Union[str, Path]) -> Snapshot:
        text = read_text(path)
        if text is None:
            raise ParseError(f"Could not read {path}")
        return self.import_text(text, source_file_name=Path(path).name)

    # --- Export ---

    def build_snapshot(self) -> Snapshot:
        """Read-only projection of the current state."""
        with self._mutation_lock:
            return self._snapshot_locked()

    def export(self, base_name: Optional[str] = None) -> ExportResult:
        if self.exporter is None:
            raise ExportError("No exporter configured")
        return self.exporter.export(self.build_snapshot(), base_name or self.source_file_name)

    # --- Read side ---
    # Reads copy under the mutation lock so rows and version always come
    # from the same commit.

    def category_names(self) -> List[str]:
        with self._mutation_lock:
            return self.store.names()

    def category_items_text(self, name: Any) -> str:
        with self._mutation_lock:
            items = self.store.items(name)
        return format_category_items([clean(name)] + items)

    def full_report(self) -> str:
        with self._mutation_lock:
            rows = self.store.rows()
        return format_full_report(rows)

    def status_text(self) -> str:
        with self._mutation_lock:
            return self._status_locked()

    def _status_locked(self) -> str:
        return format_status(self.version, self.updated_at, len(self.store),
                             self.source_file_name, self.persistence.autosave_ok)

    def _on_save_status(self, state: PersistenceState) -> None:
        if self._chained_status:
            self._chained_status(state)
        if state not in (PersistenceState.SAVED, PersistenceState.FAILED):
            return
        ok = state is PersistenceState.SAVED
        changed = ok != self._save_ok
        self._save_ok = ok
        # Inline saves run under the mutation lock; the commit renders right after
        if changed and self.persistence.autosave_async:
            self._render()

    def _render(self) -> None:
        if not self.views:
            return
        # Renders come from the committing thread and the autosave worker;
        # serializing them keeps the last delivered projection the newest one
        with self._render_lock:
            with self._mutation_lock:
                rows = self.store.rows()
                status = self._status_locked()
            names = [row[0] for row in rows]
            for view in self.views:
                try:
                    view.render_categories(rows)
                    view.render_options(names)
                    view.render_status(status)
                except Exception as e:
                    logger.error(f"View {type(view).__name__} failed to render: {e}", exc_info=True)
