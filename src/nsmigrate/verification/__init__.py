"""Runtime verification of migrated build output."""

from nsmigrate.verification.errors import (
    analyze_output,
    determine_error_category,
    determine_error_type,
)
from nsmigrate.verification.runner import RuntimeVerifier
from nsmigrate.verification.schemas import (
    ExecutionMetrics,
    RuntimeIssue,
    VerificationOptions,
    VerificationResult,
)

__all__ = [
    "ExecutionMetrics",
    "RuntimeIssue",
    "RuntimeVerifier",
    "VerificationOptions",
    "VerificationResult",
    "analyze_output",
    "determine_error_category",
    "determine_error_type",
]
