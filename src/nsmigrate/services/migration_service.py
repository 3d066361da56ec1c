"""Migration facade: analysis, planning, refactoring, progress, rollback.

Callers (the CLI, tests) go through this service instead of wiring the
dependency and refactoring components themselves. Persistence is
optional: without a store, reports and plans live only in the return
values.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from nsmigrate.config import Settings
from nsmigrate.dependency.analyzer import DependencyAnalyzer
from nsmigrate.dependency.classifier import NamespaceClassifier
from nsmigrate.dependency.metadata_search import MavenCentralSearch
from nsmigrate.dependency.recommender import VersionRecommender
from nsmigrate.dependency.schemas import DependencyAnalysisReport
from nsmigrate.refactoring.executor import BatchRefactoringExecutor
from nsmigrate.refactoring.planner import MigrationPlanner
from nsmigrate.refactoring.progress import ProgressTracker
from nsmigrate.refactoring.recipes import TextRecipeRunner
from nsmigrate.refactoring.scanner import NamespaceScanner
from nsmigrate.refactoring.schemas import (
    MigrationPlan,
    MigrationProgress,
    RefactoringOptions,
    RefactoringResult,
    RollbackResult,
    ValidationResult,
)
from nsmigrate.refactoring.validation import RefactoringValidator
from nsmigrate.store.migration_store import MigrationStore

logger = logging.getLogger(__name__)


class MigrationService:
    def __init__(
        self,
        analyzer: DependencyAnalyzer | None = None,
        planner: MigrationPlanner | None = None,
        executor: BatchRefactoringExecutor | None = None,
        progress: ProgressTracker | None = None,
        store: MigrationStore | None = None,
        settings: Settings | None = None,
        search: MavenCentralSearch | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._analyzer = analyzer or DependencyAnalyzer()
        self._planner = planner or MigrationPlanner()
        self._executor = executor or BatchRefactoringExecutor()
        self._progress = progress or ProgressTracker()
        self._store = store
        self._search = search

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: MigrationStore | None = None,
    ) -> MigrationService:
        """Wire every component from one Settings object."""
        old_root, new_root = settings.old_root, settings.new_root
        search = None
        if settings.metadata_search_enabled:
            search = MavenCentralSearch(
                settings.metadata_search_url,
                timeout=settings.metadata_search_timeout_seconds,
                failure_threshold=settings.search_breaker_failure_threshold,
                recovery_timeout=settings.search_breaker_recovery_seconds,
            )
        classifier = NamespaceClassifier(old_root=old_root, new_root=new_root)
        recommender = VersionRecommender(
            search, old_root=old_root, new_root=new_root
        )
        scanner = NamespaceScanner(old_root=old_root, new_root=new_root)
        skip_dirs = set(settings.skip_directories)
        return cls(
            analyzer=DependencyAnalyzer(classifier, recommender, skip_dirs),
            planner=MigrationPlanner(
                scanner, skip_dirs=skip_dirs, new_root=new_root
            ),
            executor=BatchRefactoringExecutor(
                TextRecipeRunner(old_root=old_root, new_root=new_root),
                validator=RefactoringValidator(scanner),
            ),
            store=store,
            settings=settings,
            search=search,
        )

    def close(self) -> None:
        if self._search is not None:
            self._search.close()

    def default_options(
        self, project_path: str, *, dry_run: bool = False
    ) -> RefactoringOptions:
        return RefactoringOptions(
            project_path=project_path,
            create_checkpoints=not dry_run,
            validate_after_refactoring=not dry_run,
            dry_run=dry_run,
            max_retries=self._settings.max_retries,
            max_concurrency=self._settings.batch_max_concurrency,
            recipe_timeout_seconds=self._settings.recipe_timeout_seconds,
        )

    # ── Analysis and planning ────────────────────────────

    async def analyze_project(
        self, project_path: str
    ) -> DependencyAnalysisReport:
        # graph parsing and metadata search are blocking
        report = await asyncio.to_thread(
            self._analyzer.analyze_project, project_path
        )
        if self._store is not None:
            await self._store.save_report(report)
        return report

    async def create_migration_plan(
        self,
        project_path: str,
        report: DependencyAnalysisReport | None = None,
    ) -> MigrationPlan:
        """Plan from ``report``, analysing the project first if absent.

        Starts progress tracking for the project over the planned files.
        """
        if report is None:
            report = await self.analyze_project(project_path)
        plan = await asyncio.to_thread(
            self._planner.create_plan, project_path, report
        )
        if self._store is not None:
            await self._store.save_plan(plan)
        self._progress.initialize(project_path, plan.total_file_count)
        return plan

    # ── Refactoring ──────────────────────────────────────

    async def refactor_batch(
        self,
        files: Sequence[str],
        recipe_names: Sequence[str],
        options: RefactoringOptions,
    ) -> RefactoringResult:
        result = await self._executor.refactor_batch_async(
            files, recipe_names, options
        )
        if not options.dry_run:
            self._record_progress(options.project_path, result)
        return result

    def _record_progress(
        self, project_path: str, result: RefactoringResult
    ) -> None:
        if self._progress.get_progress(project_path) is None:
            self._progress.initialize(
                project_path, result.statistics.total_files
            )
        for file_path in result.refactored_files:
            self._progress.mark_file_refactored(project_path, file_path)
        for failure in result.failures:
            self._progress.mark_file_failed(project_path, failure.file_path)

        if result.checkpoint_id is None:
            return
        batch = self._executor.tracker.get_batch(result.checkpoint_id)
        if batch is None:
            return
        for checkpoint_id in batch.file_checkpoints.values():
            checkpoint = self._executor.tracker.get_checkpoint(checkpoint_id)
            if checkpoint is not None:
                self._progress.add_checkpoint(project_path, checkpoint)

    def get_progress(self, project_path: str) -> MigrationProgress | None:
        return self._progress.get_progress(project_path)

    def set_current_phase(self, project_path: str, phase: int) -> None:
        self._progress.set_current_phase(project_path, phase)

    def validate_refactoring(self, file_path: str) -> ValidationResult:
        return self._executor.validate_refactoring(file_path)

    def rollback(self, checkpoint_id: str) -> list[RollbackResult]:
        return self._executor.rollback(checkpoint_id)

    # ── History ──────────────────────────────────────────

    async def latest_report(
        self, project_path: str
    ) -> DependencyAnalysisReport | None:
        if self._store is None:
            return None
        return await self._store.latest_report(project_path)

    async def latest_plan(self, project_path: str) -> MigrationPlan | None:
        if self._store is None:
            return None
        return await self._store.latest_plan(project_path)
