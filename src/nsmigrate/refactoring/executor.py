"""Checkpointed batch refactoring with rollback.

Per-file failures are data: every file yields exactly one outcome and
the batch always runs to the end. Only programmer errors (a bad
options object) raise.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from tenacity import (
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from nsmigrate.constants import (
    ERROR_TRUNCATION_CHARS,
    RETRY_MAX_ATTEMPTS,
    FailureKind,
    ValidationStatus,
)
from nsmigrate.refactoring.change_tracker import ChangeTracker
from nsmigrate.refactoring.recipes import (
    RecipeRunner,
    TextRecipeRunner,
    UnknownRecipeError,
)
from nsmigrate.refactoring.schemas import (
    RefactoringChanges,
    RefactoringFailure,
    RefactoringOptions,
    RefactoringResult,
    RefactoringStatistics,
    RollbackResult,
    ValidationResult,
)
from nsmigrate.refactoring.validation import RefactoringValidator

logger = logging.getLogger(__name__)


def read_source(path: Path) -> str:
    # newline="" keeps line endings so snapshots restore byte for byte
    with path.open(encoding="utf-8", newline="") as fh:
        return fh.read()


def write_source(path: Path, content: str) -> None:
    """Replace ``path`` atomically; a failed write leaves it untouched."""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


@dataclass(frozen=True)
class _Outcome:
    file_path: str
    failure: RefactoringFailure | None = None
    checkpoint_id: str | None = None
    # a write was attempted, so the snapshot must stay reachable
    touched: bool = False
    change_count: int = 0
    validation: ValidationResult | None = None

    @property
    def success(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class _Prepared:
    path: Path
    original: str
    checkpoint_id: str | None


def _failed(
    file_path: str,
    kind: FailureKind,
    error: BaseException | str,
    checkpoint_id: str | None = None,
    *,
    touched: bool = False,
) -> _Outcome:
    message = str(error)[:ERROR_TRUNCATION_CHARS] or type(error).__name__
    return _Outcome(
        file_path=file_path,
        failure=RefactoringFailure(
            file_path=file_path,
            kind=kind,
            message=message,
            checkpoint_id=checkpoint_id,
        ),
        checkpoint_id=checkpoint_id,
        touched=touched,
    )


class BatchRefactoringExecutor:
    def __init__(
        self,
        runner: RecipeRunner | None = None,
        tracker: ChangeTracker | None = None,
        validator: RefactoringValidator | None = None,
        *,
        rollback_retries: int = RETRY_MAX_ATTEMPTS - 1,
        io_wait: wait_base | None = None,
    ) -> None:
        self.runner: RecipeRunner = runner or TextRecipeRunner()
        self.tracker = tracker or ChangeTracker()
        self.validator = validator or RefactoringValidator()
        self._rollback_retries = rollback_retries
        self._io_wait = io_wait or wait_exponential_jitter(
            initial=0.05, max=1
        )

    # ── I/O ──────────────────────────────────────────────

    def _with_retries[T](self, fn: Callable[[], T], retries: int) -> T:
        """Retry transient OSErrors; a missing file is never transient."""
        retrying = Retrying(
            stop=stop_after_attempt(retries + 1),
            wait=self._io_wait,
            retry=(
                retry_if_exception_type(OSError)
                & retry_if_not_exception_type(FileNotFoundError)
            ),
            reraise=True,
        )
        return retrying(fn)

    # ── Per-file steps ───────────────────────────────────

    def _prepare(
        self, file_path: str, options: RefactoringOptions
    ) -> _Prepared | _Outcome:
        path = Path(file_path)
        if not path.is_file():
            return _failed(
                file_path,
                FailureKind.FILE_NOT_FOUND,
                f"No such file: {file_path}",
            )
        try:
            original = self._with_retries(
                lambda: read_source(path), options.max_retries
            )
        except FileNotFoundError as exc:
            return _failed(file_path, FailureKind.FILE_NOT_FOUND, exc)
        except (OSError, UnicodeDecodeError) as exc:
            return _failed(file_path, FailureKind.IO_ERROR, exc)

        checkpoint_id = None
        if options.create_checkpoints and not options.dry_run:
            try:
                checkpoint_id = self.tracker.create_checkpoint(
                    file_path,
                    original,
                    description="Before batch refactoring",
                    project_path=options.project_path,
                )
            except Exception as exc:
                # never modify a file that has no snapshot
                logger.warning(
                    "event=checkpoint_failed file=%s error=%s", file_path, exc
                )
                return _failed(file_path, FailureKind.UNKNOWN, exc)
        return _Prepared(path, original, checkpoint_id)

    def _apply(
        self, prepared: _Prepared, recipes: Sequence[str], file_path: str
    ) -> RefactoringChanges:
        return self.runner.apply(prepared.original, recipes, file_path)

    def _commit(
        self,
        file_path: str,
        prepared: _Prepared,
        changes: RefactoringChanges,
        options: RefactoringOptions,
    ) -> _Outcome:
        if options.dry_run:
            if changes.has_changes:
                logger.info(
                    "event=dry_run_would_refactor file=%s changes=%d",
                    file_path,
                    changes.change_count,
                )
            return _Outcome(file_path, change_count=changes.change_count)
        if not changes.has_changes:
            return _Outcome(file_path, checkpoint_id=prepared.checkpoint_id)

        try:
            self._with_retries(
                lambda: write_source(
                    prepared.path, changes.refactored_content
                ),
                options.max_retries,
            )
        except OSError as exc:
            return _failed(
                file_path,
                FailureKind.IO_ERROR,
                exc,
                prepared.checkpoint_id,
                touched=True,
            )
        except Exception as exc:
            logger.warning(
                "event=write_failed file=%s error=%s", file_path, exc
            )
            return _failed(
                file_path,
                FailureKind.UNKNOWN,
                exc,
                prepared.checkpoint_id,
                touched=True,
            )

        validation = None
        if options.validate_after_refactoring:
            try:
                validation = self.validator.validate_content(
                    changes.refactored_content, file_path
                )
            except Exception as exc:
                logger.warning(
                    "event=validation_crashed file=%s error=%s",
                    file_path,
                    exc,
                )
                return _failed(
                    file_path,
                    FailureKind.UNKNOWN,
                    exc,
                    prepared.checkpoint_id,
                    touched=True,
                )
            if validation.status == ValidationStatus.FAILED:
                return _Outcome(
                    file_path,
                    failure=RefactoringFailure(
                        file_path=file_path,
                        kind=FailureKind.VALIDATION_FAILED,
                        message=(
                            f"{len(validation.issues)} validation "
                            "issue(s) remain"
                        ),
                        checkpoint_id=prepared.checkpoint_id,
                    ),
                    checkpoint_id=prepared.checkpoint_id,
                    touched=True,
                    change_count=changes.change_count,
                    validation=validation,
                )
        return _Outcome(
            file_path,
            checkpoint_id=prepared.checkpoint_id,
            touched=True,
            change_count=changes.change_count,
            validation=validation,
        )

    def _process_file(
        self,
        file_path: str,
        recipes: Sequence[str],
        options: RefactoringOptions,
    ) -> _Outcome:
        prepared = self._prepare(file_path, options)
        if isinstance(prepared, _Outcome):
            return prepared
        try:
            changes = self._apply(prepared, recipes, file_path)
        except UnknownRecipeError as exc:
            return _failed(
                file_path,
                FailureKind.RECIPE_ERROR,
                f"Unknown recipe: {exc.args[0]}",
                prepared.checkpoint_id,
            )
        except Exception as exc:
            logger.warning(
                "event=recipe_failed file=%s error=%s", file_path, exc
            )
            return _failed(
                file_path,
                FailureKind.RECIPE_ERROR,
                exc,
                prepared.checkpoint_id,
            )
        return self._commit(file_path, prepared, changes, options)

    async def _process_file_async(
        self,
        file_path: str,
        recipes: Sequence[str],
        options: RefactoringOptions,
    ) -> _Outcome:
        prepared = await asyncio.to_thread(self._prepare, file_path, options)
        if isinstance(prepared, _Outcome):
            return prepared
        try:
            changes = await asyncio.wait_for(
                asyncio.to_thread(self._apply, prepared, recipes, file_path),
                timeout=options.recipe_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "event=recipe_timeout file=%s timeout=%s",
                file_path,
                options.recipe_timeout_seconds,
            )
            return _failed(
                file_path,
                FailureKind.TIMEOUT,
                f"Recipes exceeded {options.recipe_timeout_seconds}s",
                prepared.checkpoint_id,
            )
        except UnknownRecipeError as exc:
            return _failed(
                file_path,
                FailureKind.RECIPE_ERROR,
                f"Unknown recipe: {exc.args[0]}",
                prepared.checkpoint_id,
            )
        except Exception as exc:
            logger.warning(
                "event=recipe_failed file=%s error=%s", file_path, exc
            )
            return _failed(
                file_path,
                FailureKind.RECIPE_ERROR,
                exc,
                prepared.checkpoint_id,
            )
        return await asyncio.to_thread(
            self._commit, file_path, prepared, changes, options
        )

    # ── Batch ────────────────────────────────────────────

    @staticmethod
    def _crashed(file_path: str, exc: Exception) -> _Outcome:
        logger.exception("event=file_step_crashed file=%s", file_path)
        return _failed(file_path, FailureKind.UNKNOWN, exc)

    @staticmethod
    def _partition(
        files: Iterable[str], options: RefactoringOptions
    ) -> tuple[list[str], list[str]]:
        targets: list[str] = []
        skipped: list[str] = []
        for f in dict.fromkeys(files):
            (skipped if options.is_excluded(f) else targets).append(f)
        return targets, skipped

    def refactor_batch(
        self,
        files: Iterable[str],
        recipes: Sequence[str],
        options: RefactoringOptions,
    ) -> RefactoringResult:
        targets, skipped = self._partition(files, options)
        outcomes: list[_Outcome] = []
        for file_path in targets:
            try:
                outcomes.append(
                    self._process_file(file_path, recipes, options)
                )
            except Exception as exc:
                outcomes.append(self._crashed(file_path, exc))
        return self._finish(outcomes, skipped, options)

    async def refactor_batch_async(
        self,
        files: Iterable[str],
        recipes: Sequence[str],
        options: RefactoringOptions,
    ) -> RefactoringResult:
        """Bounded fan-out; outcomes are merged once every file finishes."""
        targets, skipped = self._partition(files, options)
        semaphore = asyncio.Semaphore(options.max_concurrency)

        async def run_one(file_path: str) -> _Outcome:
            async with semaphore:
                try:
                    return await self._process_file_async(
                        file_path, recipes, options
                    )
                except Exception as exc:
                    return self._crashed(file_path, exc)

        outcomes = await asyncio.gather(*(run_one(f) for f in targets))
        return self._finish(list(outcomes), skipped, options)

    def _finish(
        self,
        outcomes: list[_Outcome],
        skipped: list[str],
        options: RefactoringOptions,
    ) -> RefactoringResult:
        succeeded = [o for o in outcomes if o.success]
        failures = [o.failure for o in outcomes if o.failure is not None]

        batch_id = None
        if options.create_checkpoints and not options.dry_run:
            covered = {
                o.file_path: o.checkpoint_id
                for o in outcomes
                if o.checkpoint_id is not None and (o.success or o.touched)
            }
            if covered:
                batch_id = self.tracker.create_batch_checkpoint(
                    options.project_path,
                    covered,
                    description=f"Batch refactoring of {len(covered)} files",
                )

        result = RefactoringResult(
            refactored_files=[o.file_path for o in succeeded],
            failures=failures,
            statistics=RefactoringStatistics(
                total_files=len(outcomes),
                successful_files=len(succeeded),
                failed_files=len(failures),
                total_changes=sum(o.change_count for o in outcomes),
            ),
            checkpoint_id=batch_id,
            can_rollback=batch_id is not None,
            dry_run=options.dry_run,
            skipped_files=skipped,
            validation_results=[
                o.validation for o in outcomes if o.validation is not None
            ],
        )
        logger.info(
            "event=batch_refactored project=%s total=%d ok=%d failed=%d "
            "skipped=%d dry_run=%s",
            options.project_path,
            result.statistics.total_files,
            result.statistics.successful_files,
            result.statistics.failed_files,
            len(skipped),
            options.dry_run,
        )
        return result

    # ── Validation and rollback ──────────────────────────

    def validate_refactoring(self, file_path: str) -> ValidationResult:
        return self.validator.validate_file(file_path)

    def rollback(self, checkpoint_id: str) -> list[RollbackResult]:
        """Restore a batch or single-file checkpoint. Never raises."""
        batch = self.tracker.get_batch(checkpoint_id)
        if batch is not None:
            results = [
                self._restore(file_checkpoint, file_path)
                for file_path, file_checkpoint in (
                    batch.file_checkpoints.items()
                )
            ]
        else:
            checkpoint = self.tracker.get_checkpoint(checkpoint_id)
            if checkpoint is None:
                logger.warning(
                    "event=rollback_unknown_checkpoint id=%s", checkpoint_id
                )
                return [
                    RollbackResult.failed(
                        checkpoint_id, f"Unknown checkpoint: {checkpoint_id}"
                    )
                ]
            results = [self._restore(checkpoint_id, checkpoint.file_path)]

        logger.info(
            "event=rollback_done id=%s restored=%d failed=%d",
            checkpoint_id,
            sum(r.success for r in results),
            sum(not r.success for r in results),
        )
        return results

    def _restore(self, checkpoint_id: str, file_path: str) -> RollbackResult:
        checkpoint = self.tracker.get_checkpoint(checkpoint_id)
        content = self.tracker.get_original_content(checkpoint_id)
        if checkpoint is None or content is None:
            return RollbackResult.failed(
                checkpoint_id,
                "Checkpoint metadata is incomplete",
                file_path,
            )
        if checkpoint.file_path != file_path:
            return RollbackResult.failed(
                checkpoint_id,
                f"Checkpoint belongs to {checkpoint.file_path}",
                file_path,
            )
        try:
            self._with_retries(
                lambda: write_source(Path(file_path), content),
                self._rollback_retries,
            )
        except OSError as exc:
            return RollbackResult.failed(
                checkpoint_id, f"Restore failed: {exc}", file_path
            )
        return RollbackResult.succeeded(checkpoint_id, file_path)
