"""Checkpoint store: pre-change file snapshots addressable by opaque id.

Append-only during normal operation; cleanup is an external concern.
Unknown ids return None, never raise.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass

from nsmigrate.refactoring.schemas import BatchCheckpoint, Checkpoint
from nsmigrate.store.kv import InMemoryKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    checkpoint: Checkpoint
    original_content: str


class ChangeTracker:
    def __init__(
        self,
        snapshots: KeyValueStore[Snapshot] | None = None,
        batches: KeyValueStore[BatchCheckpoint] | None = None,
    ) -> None:
        self._snapshots: KeyValueStore[Snapshot] = (
            snapshots if snapshots is not None else InMemoryKeyValueStore()
        )
        self._batches: KeyValueStore[BatchCheckpoint] = (
            batches if batches is not None else InMemoryKeyValueStore()
        )

    def create_checkpoint(
        self,
        file_path: str,
        original_content: str,
        description: str = "",
        project_path: str = "",
    ) -> str:
        checkpoint_id = str(uuid.uuid4())
        checkpoint = Checkpoint(
            checkpoint_id=checkpoint_id,
            file_path=file_path,
            description=description,
            project_path=project_path,
        )
        self._snapshots.put(
            checkpoint_id, Snapshot(checkpoint, original_content)
        )
        logger.debug(
            "event=checkpoint_created id=%s file=%s", checkpoint_id, file_path
        )
        return checkpoint_id

    def get_checkpoint(self, checkpoint_id: str) -> Checkpoint | None:
        snapshot = self._snapshots.get(checkpoint_id)
        return snapshot.checkpoint if snapshot else None

    def get_original_content(self, checkpoint_id: str) -> str | None:
        snapshot = self._snapshots.get(checkpoint_id)
        return snapshot.original_content if snapshot else None

    def create_batch_checkpoint(
        self,
        project_path: str,
        file_checkpoints: Mapping[str, str],
        description: str = "",
    ) -> str:
        checkpoint_id = str(uuid.uuid4())
        self._batches.put(
            checkpoint_id,
            BatchCheckpoint(
                checkpoint_id=checkpoint_id,
                project_path=project_path,
                file_checkpoints=dict(file_checkpoints),
                description=description,
            ),
        )
        logger.info(
            "event=batch_checkpoint_created id=%s project=%s files=%d",
            checkpoint_id,
            project_path,
            len(file_checkpoints),
        )
        return checkpoint_id

    def get_batch(self, checkpoint_id: str) -> BatchCheckpoint | None:
        return self._batches.get(checkpoint_id)

    def batch_count(self) -> int:
        return len(self._batches.keys())
