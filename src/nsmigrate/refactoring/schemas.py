"""Pydantic models for planning, refactoring, checkpoints and progress.

Every model validates at construction: an invalid value raises
``pydantic.ValidationError`` and no partial object exists.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from nsmigrate.constants import (
    ActionType,
    ChangeType,
    FailureKind,
    MigrationState,
    RollbackStatus,
    SafetyLevel,
    ValidationSeverity,
    ValidationStatus,
)
from nsmigrate.dependency.schemas import RiskAssessment


def _now() -> datetime:
    return datetime.now(UTC)


class Recipe(BaseModel):
    """A named, reusable source transformation."""

    name: str
    description: str
    safety: SafetyLevel
    file_suffixes: tuple[str, ...] = ()

    model_config = {"frozen": True}

    def applies_to(self, file_name: str) -> bool:
        return not self.file_suffixes or file_name.endswith(
            self.file_suffixes
        )


# ── Planning ─────────────────────────────────────────────


class PhaseAction(BaseModel):
    file_path: str
    action_type: ActionType
    specific_changes: list[str] = Field(default_factory=lambda: list[str]())

    model_config = {"frozen": True}


class RefactoringPhase(BaseModel):
    """An ordered unit of work with predecessor constraints.

    ``dependencies`` name the descriptions of phases that must
    complete first.
    """

    phase_number: int = Field(ge=1)
    description: str
    files: list[str] = Field(default_factory=lambda: list[str]())
    actions: list[PhaseAction] = Field(
        default_factory=lambda: list[PhaseAction]()
    )
    recipes: list[str] = Field(default_factory=lambda: list[str]())
    dependencies: list[str] = Field(default_factory=lambda: list[str]())
    estimated_duration: timedelta = timedelta(0)
    risk_factors: list[str] = Field(default_factory=lambda: list[str]())

    model_config = {"frozen": True}

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("phase description must not be blank")
        return v


class MigrationPlan(BaseModel):
    phases: list[RefactoringPhase] = Field(min_length=1)
    file_sequence: list[str] = Field(default_factory=lambda: list[str]())
    estimated_duration: timedelta = timedelta(0)
    overall_risk: RiskAssessment
    prerequisites: list[str] = Field(default_factory=lambda: list[str]())
    project_path: str = ""
    created_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}

    @property
    def total_file_count(self) -> int:
        return len(self.file_sequence)

    @property
    def phase_count(self) -> int:
        return len(self.phases)


# ── Checkpoints ──────────────────────────────────────────


class Checkpoint(BaseModel):
    """Metadata for a pre-change snapshot of one file."""

    checkpoint_id: str
    file_path: str
    created_at: datetime = Field(default_factory=_now)
    description: str = ""
    project_path: str = ""

    model_config = {"frozen": True}

    @field_validator("checkpoint_id", "file_path")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class BatchCheckpoint(BaseModel):
    """One entry per refactor call tagging every touched file.

    ``file_checkpoints`` maps file path → per-file checkpoint id.
    """

    checkpoint_id: str
    project_path: str
    file_checkpoints: dict[str, str] = Field(
        default_factory=lambda: dict[str, str]()
    )
    created_at: datetime = Field(default_factory=_now)
    description: str = ""

    model_config = {"frozen": True}


# ── Progress ─────────────────────────────────────────────


class ProgressStatistics(BaseModel):
    total_files: int = Field(ge=0)
    refactored_files: int = Field(ge=0)
    failed_files: int = Field(ge=0)
    pending_files: int = Field(ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _counts_add_up(self) -> Self:
        parts = self.refactored_files + self.failed_files + self.pending_files
        if parts != self.total_files:
            msg = (
                f"total_files ({self.total_files}) must equal refactored + "
                f"failed + pending ({parts})"
            )
            raise ValueError(msg)
        return self

    @property
    def state(self) -> MigrationState:
        if self.pending_files == 0 and self.failed_files == 0:
            return MigrationState.COMPLETE
        if self.refactored_files > 0 or self.failed_files > 0:
            return MigrationState.IN_PROGRESS
        return MigrationState.NOT_STARTED


class MigrationProgress(BaseModel):
    project_path: str
    current_state: MigrationState
    current_phase: int = Field(default=0, ge=0)
    statistics: ProgressStatistics
    checkpoints: list[Checkpoint] = Field(
        default_factory=lambda: list[Checkpoint]()
    )
    last_update: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}


# ── Batch Refactoring ────────────────────────────────────


class RefactoringOptions(BaseModel):
    project_path: str
    create_checkpoints: bool = True
    validate_after_refactoring: bool = True
    dry_run: bool = False
    excluded_files: frozenset[str] = frozenset()
    max_retries: int = Field(default=3, ge=0)
    max_concurrency: int = Field(default=1, ge=1)
    recipe_timeout_seconds: float | None = Field(default=None, gt=0)

    model_config = {"frozen": True}

    @classmethod
    def defaults(cls, project_path: str) -> RefactoringOptions:
        return cls(project_path=project_path)

    @classmethod
    def dry_run_for(cls, project_path: str) -> RefactoringOptions:
        """Preview mode: nothing written, checkpointed or validated."""
        return cls(
            project_path=project_path,
            create_checkpoints=False,
            validate_after_refactoring=False,
            dry_run=True,
        )

    def is_excluded(self, file_path: str) -> bool:
        return file_path in self.excluded_files


class RefactoringFailure(BaseModel):
    file_path: str
    kind: FailureKind
    message: str
    # snapshot taken before the failing step, when there was one
    checkpoint_id: str | None = None

    model_config = {"frozen": True}


class RefactoringStatistics(BaseModel):
    total_files: int = Field(ge=0)
    successful_files: int = Field(ge=0)
    failed_files: int = Field(ge=0)
    total_changes: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _counts_add_up(self) -> Self:
        if self.successful_files + self.failed_files != self.total_files:
            raise ValueError(
                "successful_files + failed_files must equal total_files"
            )
        return self


class ChangeDetail(BaseModel):
    line_number: int = Field(ge=1)
    original_line: str
    new_line: str
    description: str
    change_type: ChangeType

    model_config = {"frozen": True}


class RefactoringChanges(BaseModel):
    """Output of running a recipe set over one file's content."""

    file_path: str
    original_content: str
    refactored_content: str
    changes: list[ChangeDetail] = Field(
        default_factory=lambda: list[ChangeDetail]()
    )
    applied_recipes: list[str] = Field(default_factory=lambda: list[str]())

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return self.original_content != self.refactored_content

    @property
    def change_count(self) -> int:
        return len(self.changes)


class ValidationIssue(BaseModel):
    line_number: int = Field(ge=0)
    message: str
    severity: ValidationSeverity
    suggestion: str = ""

    model_config = {"frozen": True}


class ValidationResult(BaseModel):
    is_valid: bool
    issues: list[ValidationIssue] = Field(
        default_factory=lambda: list[ValidationIssue]()
    )
    file_path: str
    status: ValidationStatus

    model_config = {"frozen": True}

    @property
    def has_critical_issues(self) -> bool:
        return any(
            i.severity == ValidationSeverity.CRITICAL for i in self.issues
        )

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [
            i for i in self.issues if i.severity == ValidationSeverity.WARNING
        ]


class RefactoringResult(BaseModel):
    refactored_files: list[str] = Field(default_factory=lambda: list[str]())
    failures: list[RefactoringFailure] = Field(
        default_factory=lambda: list[RefactoringFailure]()
    )
    statistics: RefactoringStatistics
    checkpoint_id: str | None = None
    can_rollback: bool = False
    dry_run: bool = False
    skipped_files: list[str] = Field(default_factory=lambda: list[str]())
    validation_results: list[ValidationResult] = Field(
        default_factory=lambda: list[ValidationResult]()
    )

    model_config = {"frozen": True}

    @property
    def is_successful(self) -> bool:
        return not self.failures

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class RollbackResult(BaseModel):
    success: bool
    file_path: str = ""
    checkpoint_id: str
    message: str
    status: RollbackStatus

    model_config = {"frozen": True}

    @classmethod
    def succeeded(
        cls, checkpoint_id: str, file_path: str
    ) -> RollbackResult:
        return cls(
            success=True,
            file_path=file_path,
            checkpoint_id=checkpoint_id,
            message=f"Rolled back {file_path} successfully",
            status=RollbackStatus.SUCCESS,
        )

    @classmethod
    def failed(
        cls, checkpoint_id: str, message: str, file_path: str = ""
    ) -> RollbackResult:
        return cls(
            success=False,
            file_path=file_path,
            checkpoint_id=checkpoint_id,
            message=message,
            status=RollbackStatus.FAILED,
        )
