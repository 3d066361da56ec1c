"""Lightweight textual validation of refactored content.

Validation never blocks a write that already happened; it only marks
the result. ERROR: a file type expected to be fully migrated still
references old-root packages with no new-root token present.
WARNING: old and new tokens coexist (partial migration).
"""

from __future__ import annotations

import logging
from pathlib import Path

from nsmigrate.constants import (
    BUILD_DESCRIPTORS,
    FULLY_MIGRATED_EXTENSIONS,
    ValidationSeverity,
    ValidationStatus,
)
from nsmigrate.refactoring.scanner import NamespaceScanner
from nsmigrate.refactoring.schemas import ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)


def _status_for(issues: list[ValidationIssue]) -> ValidationStatus:
    blocking = {ValidationSeverity.CRITICAL, ValidationSeverity.ERROR}
    if any(i.severity in blocking for i in issues):
        return ValidationStatus.FAILED
    if any(i.severity == ValidationSeverity.WARNING for i in issues):
        return ValidationStatus.WARNINGS
    return ValidationStatus.PASSED


class RefactoringValidator:
    def __init__(self, scanner: NamespaceScanner | None = None) -> None:
        self._scanner = scanner or NamespaceScanner()

    def validate_content(
        self, content: str, file_path: str
    ) -> ValidationResult:
        path = Path(file_path)
        expected_full = (
            path.suffix in FULLY_MIGRATED_EXTENSIONS
            or path.name in BUILD_DESCRIPTORS
        )
        hits = self._scanner.old_references(content)
        issues: list[ValidationIssue] = []

        if hits:
            has_new = self._scanner.has_new_references(content)
            if has_new:
                severity = ValidationSeverity.WARNING
                message = "Old and new namespace references coexist"
            elif expected_full:
                severity = ValidationSeverity.ERROR
                message = "Old namespace reference was not migrated"
            else:
                severity = ValidationSeverity.WARNING
                message = "Old namespace reference remains"
            issues.extend(
                ValidationIssue(
                    line_number=hit.line_number,
                    message=f"{message}: {hit.token}",
                    severity=severity,
                    suggestion="Re-run the namespace recipes or edit by hand",
                )
                for hit in hits
            )

        status = _status_for(issues)
        if status != ValidationStatus.PASSED:
            logger.info(
                "event=validation_issues file=%s status=%s issues=%d",
                file_path,
                status,
                len(issues),
            )
        return ValidationResult(
            is_valid=status != ValidationStatus.FAILED,
            issues=issues,
            file_path=file_path,
            status=status,
        )

    def validate_file(self, file_path: str) -> ValidationResult:
        """Read and validate a file; unreadable files fail CRITICAL."""
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ValidationResult(
                is_valid=False,
                issues=[
                    ValidationIssue(
                        line_number=0,
                        message=f"Cannot read file: {exc}",
                        severity=ValidationSeverity.CRITICAL,
                    )
                ],
                file_path=file_path,
                status=ValidationStatus.FAILED,
            )
        return self.validate_content(content, file_path)
