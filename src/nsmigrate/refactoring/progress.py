"""Per-project progress tracking.

State is never stored as a free transition: it is recomputed from the
statistics on every read (see :attr:`ProgressStatistics.state`).
Projects are independent; each path is a separate store key updated
atomically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from nsmigrate.refactoring.schemas import (
    Checkpoint,
    MigrationProgress,
    ProgressStatistics,
)
from nsmigrate.store.kv import InMemoryKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectState:
    planned_files: int
    refactored: frozenset[str] = frozenset()
    failed: frozenset[str] = frozenset()
    checkpoints: tuple[Checkpoint, ...] = ()
    current_phase: int = 0
    last_update: datetime = datetime.min.replace(tzinfo=UTC)

    def statistics(self) -> ProgressStatistics:
        done = len(self.refactored) + len(self.failed)
        pending = max(0, self.planned_files - done)
        return ProgressStatistics(
            total_files=done + pending,
            refactored_files=len(self.refactored),
            failed_files=len(self.failed),
            pending_files=pending,
        )


class ProgressTracker:
    def __init__(
        self, store: KeyValueStore[ProjectState] | None = None
    ) -> None:
        self._store: KeyValueStore[ProjectState] = (
            store if store is not None else InMemoryKeyValueStore()
        )

    def initialize(self, project_path: str, total_files: int) -> None:
        """Start (or restart) tracking; a second call resets the path."""
        if total_files < 0:
            raise ValueError("total_files must be >= 0")
        self._store.put(
            project_path,
            ProjectState(
                planned_files=total_files, last_update=datetime.now(UTC)
            ),
        )
        logger.info(
            "event=progress_initialized project=%s total=%d",
            project_path,
            total_files,
        )

    def _mutate(self, project_path: str, **changes: object) -> ProjectState:
        def apply(state: ProjectState | None) -> ProjectState:
            if state is None:
                msg = f"Progress not initialized for {project_path}"
                raise ValueError(msg)
            resolved = {
                k: v(state) if callable(v) else v for k, v in changes.items()
            }
            return replace(
                state, last_update=datetime.now(UTC), **resolved
            )

        return self._store.update(project_path, apply)

    def mark_file_refactored(self, project_path: str, file_path: str) -> None:
        self._mutate(
            project_path,
            refactored=lambda s: s.refactored | {file_path},
            failed=lambda s: s.failed - {file_path},
        )

    def mark_file_failed(self, project_path: str, file_path: str) -> None:
        self._mutate(
            project_path,
            failed=lambda s: s.failed | {file_path},
            refactored=lambda s: s.refactored - {file_path},
        )

    def add_checkpoint(
        self, project_path: str, checkpoint: Checkpoint
    ) -> None:
        self._mutate(
            project_path,
            checkpoints=lambda s: (*s.checkpoints, checkpoint),
        )

    def set_current_phase(self, project_path: str, phase: int) -> None:
        if phase < 0:
            raise ValueError("phase must be >= 0")
        self._mutate(project_path, current_phase=phase)

    def get_progress(self, project_path: str) -> MigrationProgress | None:
        state = self._store.get(project_path)
        if state is None:
            return None
        stats = state.statistics()
        return MigrationProgress(
            project_path=project_path,
            current_state=stats.state,
            current_phase=state.current_phase,
            statistics=stats,
            checkpoints=list(state.checkpoints),
            last_update=state.last_update,
        )
