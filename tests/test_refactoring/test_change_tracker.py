"""Tests for checkpoint snapshots and batch checkpoints."""

from __future__ import annotations

from nsmigrate.refactoring.change_tracker import ChangeTracker
from nsmigrate.store.kv import InMemoryKeyValueStore


class TestFileCheckpoints:
    def test_snapshot_round_trip(self) -> None:
        tracker = ChangeTracker()
        checkpoint_id = tracker.create_checkpoint(
            "/p/A.java", "original", "before", project_path="/p"
        )

        checkpoint = tracker.get_checkpoint(checkpoint_id)
        assert checkpoint is not None
        assert checkpoint.file_path == "/p/A.java"
        assert checkpoint.project_path == "/p"
        assert checkpoint.description == "before"
        assert tracker.get_original_content(checkpoint_id) == "original"

    def test_ids_are_unique(self) -> None:
        tracker = ChangeTracker()
        ids = {tracker.create_checkpoint("/p/A.java", "x") for _ in range(5)}
        assert len(ids) == 5

    def test_unknown_id_returns_none(self) -> None:
        tracker = ChangeTracker()
        assert tracker.get_checkpoint("nope") is None
        assert tracker.get_original_content("nope") is None


class TestBatchCheckpoints:
    def test_batch_maps_files_to_checkpoints(self) -> None:
        tracker = ChangeTracker()
        first = tracker.create_checkpoint("/p/A.java", "a")
        second = tracker.create_checkpoint("/p/B.java", "b")

        batch_id = tracker.create_batch_checkpoint(
            "/p", {"/p/A.java": first, "/p/B.java": second}, "phase 1"
        )

        batch = tracker.get_batch(batch_id)
        assert batch is not None
        assert batch.project_path == "/p"
        assert batch.file_checkpoints == {
            "/p/A.java": first,
            "/p/B.java": second,
        }
        assert tracker.batch_count() == 1
        assert tracker.get_batch(first) is None

    def test_injected_stores_are_used(self) -> None:
        snapshots = InMemoryKeyValueStore()  # type: ignore[var-annotated]
        batches = InMemoryKeyValueStore()  # type: ignore[var-annotated]
        tracker = ChangeTracker(snapshots, batches)

        checkpoint_id = tracker.create_checkpoint("/p/A.java", "a")
        tracker.create_batch_checkpoint("/p", {"/p/A.java": checkpoint_id})

        assert snapshots.keys() == [checkpoint_id]
        assert len(batches) == 1
