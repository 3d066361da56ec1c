"""Pydantic models for runtime verification of a built archive."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field

from nsmigrate.constants import (
    ErrorCategory,
    ErrorType,
    VerificationStatus,
)


class VerificationOptions(BaseModel):
    timeout_seconds: float = Field(default=300.0, gt=0)
    max_memory_mb: int = Field(default=2048, ge=16)
    capture_stdout: bool = True
    capture_stderr: bool = True
    jvm_args: list[str] = Field(default_factory=lambda: list[str]())
    program_args: list[str] = Field(default_factory=lambda: list[str]())

    model_config = {"frozen": True}


class RuntimeIssue(BaseModel):
    """One error recognised in the process output."""

    error_type: ErrorType
    category: ErrorCategory
    message: str
    class_name: str | None = None
    line_number: int = Field(default=0, ge=0)
    confidence: float = Field(ge=0.0, le=1.0)

    model_config = {"frozen": True}


class ExecutionMetrics(BaseModel):
    execution_time: timedelta = timedelta(0)
    exit_code: int | None = None
    timed_out: bool = False

    model_config = {"frozen": True}


class VerificationResult(BaseModel):
    archive_path: str
    status: VerificationStatus
    errors: list[RuntimeIssue] = Field(
        default_factory=lambda: list[RuntimeIssue]()
    )
    warnings: list[str] = Field(default_factory=lambda: list[str]())
    metrics: ExecutionMetrics = Field(default_factory=ExecutionMetrics)
    stdout: str = ""
    stderr: str = ""

    model_config = {"frozen": True}

    @property
    def passed(self) -> bool:
        return self.status == VerificationStatus.PASSED

    @property
    def migration_errors(self) -> list[RuntimeIssue]:
        """Errors whose likely cause is the namespace change itself."""
        related = {
            ErrorCategory.NAMESPACE_MIGRATION,
            ErrorCategory.CLASSPATH_ISSUE,
            ErrorCategory.BINARY_INCOMPATIBILITY,
        }
        return [e for e in self.errors if e.category in related]
