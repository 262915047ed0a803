"""Tests for the persisted snapshot/metadata slots and autosave worker."""

import json
from unittest.mock import patch

import pytest

from masterlist.catalog import PersistenceManager, PersistenceState, Snapshot


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


class TestLoad:
    """Tests for startup loading; load() never raises."""

    def test_missing_slot_returns_none(self, persistence):
        assert persistence.load() is None
        assert persistence.state is PersistenceState.LOADED

    def test_invalid_json_returns_none(self, persistence):
        persistence.snapshot_path.parent.mkdir(parents=True)
        persistence.snapshot_path.write_text("{not json", encoding="utf-8")
        assert persistence.load() is None

    def test_shape_failure_returns_none(self, persistence):
        write_json(persistence.snapshot_path, {"categories": "nope"})
        assert persistence.load() is None

    def test_valid_slot_restores_snapshot_and_metadata(self, persistence):
        write_json(persistence.snapshot_path, {
            "schema": 1,
            "version": 4,
            "updatedAt": "2025-01-31T14:05:09+02:00",
            "categories": [["PLC", "x"], ["Legacy", '["Legacy","y"]']],
        })
        write_json(persistence.metadata_path, {"savedAt": "2025-01-31T14:05:10+02:00", "sourceFileName": "Foo.json"})

        snapshot, metadata = persistence.load()

        assert snapshot.version == 4
        assert snapshot.updated_at == "2025-01-31T14:05:09+02:00"
        assert snapshot.categories == [["PLC", "x"], ["Legacy", "y"]]
        assert metadata.source_file_name == "Foo.json"

    def test_unreadable_metadata_is_ignored(self, persistence):
        write_json(persistence.snapshot_path, {"version": 2, "categories": []})
        persistence.metadata_path.write_text("garbage", encoding="utf-8")

        snapshot, metadata = persistence.load()

        assert snapshot.version == 2
        assert metadata is None


class TestSave:
    """Tests for writing both slots."""

    def test_writes_snapshot_and_metadata(self, persistence):
        snapshot = Snapshot(version=3, categories=[["A", "x"]])

        assert persistence.save(snapshot, "Foo.json") is True

        saved = json.loads(persistence.snapshot_path.read_text(encoding="utf-8"))
        meta = json.loads(persistence.metadata_path.read_text(encoding="utf-8"))
        assert saved["version"] == 3
        assert saved["schema"] == 1
        assert saved["categories"] == [["A", "x"]]
        assert meta["sourceFileName"] == "Foo.json"
        assert "savedAt" in meta
        assert persistence.state is PersistenceState.SAVED

    def test_no_temp_files_left_behind(self, persistence):
        persistence.save(Snapshot(categories=[["A"]]))
        leftovers = list(persistence.snapshot_path.parent.glob("*.tmp"))
        assert leftovers == []

    def test_failed_write_returns_false_and_flags_status(self, persistence):
        with patch("masterlist.catalog.persistence.os.replace", side_effect=OSError("disk full")):
            assert persistence.save(Snapshot(categories=[["A"]])) is False

        assert persistence.state is PersistenceState.FAILED
        assert not persistence.autosave_ok
        assert "disk full" in persistence.last_error
        assert list(persistence.snapshot_path.parent.glob("*.tmp")) == []

    def test_next_successful_save_clears_failure(self, persistence):
        with patch("masterlist.catalog.persistence.os.replace", side_effect=OSError("disk full")):
            persistence.save(Snapshot(categories=[["A"]]))

        assert persistence.save(Snapshot(version=2, categories=[["A"]])) is True
        assert persistence.autosave_ok
        assert persistence.last_error is None

    def test_failure_survives_mark_dirty(self, persistence):
        with patch("masterlist.catalog.persistence.os.replace", side_effect=OSError("disk full")):
            persistence.save(Snapshot(categories=[["A"]]))

        persistence.mark_dirty()

        assert persistence.state is PersistenceState.FAILED
        assert not persistence.autosave_ok

    def test_failed_write_keeps_previous_slot_intact(self, persistence):
        persistence.save(Snapshot(version=1, categories=[["A"]]))
        with patch("masterlist.catalog.persistence.os.replace", side_effect=OSError("disk full")):
            persistence.save(Snapshot(version=2, categories=[["A"], ["B"]]))

        saved = json.loads(persistence.snapshot_path.read_text(encoding="utf-8"))
        assert saved["version"] == 1

    def test_status_callback_receives_states(self, tmp_path):
        seen = []
        manager = PersistenceManager(tmp_path / "db.json", tmp_path / "meta.json",
                                     autosave_async=False, on_status=seen.append)
        manager.load()
        manager.mark_dirty()
        manager.save(Snapshot())
        assert seen == [PersistenceState.LOADED, PersistenceState.DIRTY, PersistenceState.SAVED]


class TestAsyncAutosave:
    """Tests for the background autosave worker."""

    @pytest.fixture
    def async_manager(self, tmp_path):
        manager = PersistenceManager(tmp_path / "db.json", tmp_path / "meta.json",
                                     autosave_async=True, flush_timeout=5)
        yield manager
        manager.close()

    def test_queued_saves_land_in_order(self, async_manager):
        for version in range(1, 6):
            async_manager.schedule_save(Snapshot(version=version, categories=[["A"]] * version))

        assert async_manager.flush() is True

        saved = json.loads(async_manager.snapshot_path.read_text(encoding="utf-8"))
        assert saved["version"] == 5
        assert async_manager.state is PersistenceState.SAVED

    def test_failure_on_worker_only_sets_status(self, async_manager):
        with patch("masterlist.catalog.persistence.os.replace", side_effect=OSError("read-only")):
            async_manager.schedule_save(Snapshot(version=2))
            assert async_manager.flush() is True

        assert async_manager.state is PersistenceState.FAILED

    def test_flush_without_worker_is_immediate(self, tmp_path):
        manager = PersistenceManager(tmp_path / "db.json", tmp_path / "meta.json")
        assert manager.flush() is True

    def test_close_drains_pending_saves(self, tmp_path):
        manager = PersistenceManager(tmp_path / "db.json", tmp_path / "meta.json")
        manager.schedule_save(Snapshot(version=9))
        manager.close()
        saved = json.loads(manager.snapshot_path.read_text(encoding="utf-8"))
        assert saved["version"] == 9
