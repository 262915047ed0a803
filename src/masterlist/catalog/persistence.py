# src/masterlist/catalog/persistence.py
import json
import os
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from queue import Queue, Empty
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import CatalogError, PersistenceError
from .importer import build_snapshot
from .snapshot import Snapshot, now_iso

logger = logging.getLogger(__name__)


class PersistenceState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    DIRTY = "dirty"
    SAVED = "saved"
    FAILED = "failed"


@dataclass
class SaveMetadata:
    """Lightweight record kept beside the snapshot slot."""
    saved_at: str
    source_file_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["SaveMetadata"]:
        if not isinstance(data, dict) or not isinstance(data.get("savedAt"), str):
            return None
        source = data.get("sourceFileName")
        return cls(saved_at=data["savedAt"], source_file_name=source if isinstance(source, str) else None)

    def to_dict(self) -> Dict[str, Any]:
        return {"savedAt": self.saved_at, "sourceFileName": self.source_file_name}


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """
    Writes through a temp file and os.replace so readers see either the old
    or the new content. Raises PersistenceError on failure.
    """
    path = Path(path)
    temp_file_path = path.with_name(f"{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_file_path, 'wb') as f:
            f.write(data)
        os.replace(temp_file_path, path)
    except OSError as e:
        if temp_file_path.exists():
            try:
                os.remove(temp_file_path)
                logger.debug(f"Removed temporary save file: {temp_file_path}")
            except OSError:
                logger.error(f"Failed to remove temporary save file: {temp_file_path}")
        raise PersistenceError(f"Could not write {path}: {e}") from e


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode('utf-8'))


class PersistenceManager:
    """
    Owns the two persisted slots (snapshot + metadata) of one profile.

    Nothing here raises to the caller: load() returns None for a missing or
    invalid slot, save() returns False on failure and records the error as
    a status signal. Autosaves run on a background worker fed by a queue,
    so a mutation never waits on the disk.
    """

    def __init__(
        self,
        snapshot_path: Path,
        metadata_path: Path,
        autosave_async: bool = True,
        flush_timeout: float = 5.0,
        on_status: Optional[Callable[["PersistenceState"], None]] = None,
    ):
        self.snapshot_path = Path(snapshot_path)
        self.metadata_path = Path(metadata_path)
        self.autosave_async = autosave_async
        self.flush_timeout = flush_timeout
        self.on_status = on_status

        self.state = PersistenceState.UNINITIALIZED
        self.last_error: Optional[str] = None

        self._lock = threading.Lock()
        self._save_queue: "Queue[Optional[Tuple[Any, ...]]]" = Queue()
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def autosave_ok(self) -> bool:
        return self.state is not PersistenceState.FAILED

    def _set_state(self, state: PersistenceState) -> None:
        with self._lock:
            self.state = state
        if self.on_status:
            try:
                self.on_status(state)
            except Exception as e:
                logger.error(f"Status callback failed: {e}", exc_info=True)

    # --- Loading ---

    def load(self) -> Optional[Tuple[Snapshot, Optional[SaveMetadata]]]:
        """
        Reads and validates the persisted snapshot. Returns (snapshot, metadata)
        or None; the caller falls back to a fresh empty snapshot on None.
        """
        result = None
        try:
            if not self.snapshot_path.exists():
                logger.info(f"No persisted snapshot at {self.snapshot_path}. Starting fresh.")
            else:
                with open(self.snapshot_path, 'r', encoding='utf-8') as f:
                    payload = json.load(f)
                snapshot = build_snapshot(payload)
                result = (snapshot, self._load_metadata())
                logger.info(f"Restored snapshot v{snapshot.version} with {len(snapshot.categories)} categories from {self.snapshot_path}")
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Error reading or decoding snapshot {self.snapshot_path}: {e}. Starting fresh.")
        except CatalogError as e:
            logger.error(f"Persisted snapshot {self.snapshot_path} failed validation: {e}. Starting fresh.")

        self._set_state(PersistenceState.LOADED)
        return result

    def _load_metadata(self) -> Optional[SaveMetadata]:
        if not self.metadata_path.exists():
            return None
        try:
            with open(self.metadata_path, 'r', encoding='utf-8') as f:
                return SaveMetadata.from_dict(json.load(f))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable metadata {self.metadata_path}: {e}")
            return None

    # --- Saving ---

    def mark_dirty(self) -> None:
        # FAILED sticks until a save succeeds
        if self.state is not PersistenceState.FAILED:
            self._set_state(PersistenceState.DIRTY)

    def save(self, snapshot: Snapshot, source_file_name: Optional[str] = None) -> bool:
        """Writes the snapshot slot, then the metadata slot. Never raises."""
        metadata = SaveMetadata(saved_at=now_iso(), source_file_name=source_file_name)
        try:
            snapshot_text = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
            metadata_text = json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False)
            atomic_write_text(self.snapshot_path, snapshot_text)
            atomic_write_text(self.metadata_path, metadata_text)
        except (PersistenceError, TypeError, ValueError) as e:
            with self._lock:
                self.last_error = str(e)
            logger.error(f"Autosave of v{snapshot.version} failed: {e}", exc_info=True)
            self._set_state(PersistenceState.FAILED)
            return False

        with self._lock:
            self.last_error = None
        logger.debug(f"Saved snapshot v{snapshot.version} ({len(snapshot.categories)} categories) to {self.snapshot_path}")
        self._set_state(PersistenceState.SAVED)
        return True

    def schedule_save(self, snapshot: Snapshot, source_file_name: Optional[str] = None) -> None:
        """Fire-and-forget autosave. Inline when async autosave is disabled."""
        if not self.autosave_async:
            self.save(snapshot, source_file_name)
            return
        self._ensure_worker()
        self._save_queue.put(("save", snapshot, source_file_name))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Blocks until every save queued so far has been attempted."""
        if not self._worker or not self._worker.is_alive():
            return True
        done = threading.Event()
        self._save_queue.put(("flush", done))
        finished = done.wait(self.flush_timeout if timeout is None else timeout)
        if not finished:
            logger.warning("Timed out waiting for pending autosaves")
        return finished

    def close(self) -> None:
        """Drains pending saves and stops the worker thread."""
        if not self._worker:
            return
        self.flush()
        self._stop_event.set()
        self._save_queue.put(None)
        self._worker.join(timeout=self.flush_timeout)
        self._worker = None
        logger.debug("Autosave worker stopped")

    def _ensure_worker(self) -> None:
        if self._worker and self._worker.is_alive():
            return
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._save_worker, name="masterlist-autosave", daemon=True)
        self._worker.start()
        logger.debug("Autosave worker started")

    def _save_worker(self) -> None:
        """Worker thread that performs queued saves in order."""
        while not self._stop_event.is_set():
            try:
                task = self._save_queue.get(timeout=0.5)
            except Empty:
                continue
            try:
                if task is None:
                    break
                if task[0] == "flush":
                    task[1].set()
                else:
                    _, snapshot, source_file_name = task
                    self.save(snapshot, source_file_name)
            except Exception as e:
                logger.error(f"Error in autosave worker: {e}", exc_info=True)
            finally:
                self._save_queue.task_done()
