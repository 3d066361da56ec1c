"""Recognise JVM failures in process output and guess their cause.

Category precedence: an old-root class or message means the namespace
migration is incomplete; a new-root one means the new API is missing
from the classpath; linkage-style errors without either root point at
binary incompatibility; anything mentioning descriptors or properties
is configuration.
"""

from __future__ import annotations

import re

from nsmigrate.constants import (
    NEW_ROOT,
    OLD_ROOT,
    ErrorCategory,
    ErrorType,
)
from nsmigrate.verification.schemas import RuntimeIssue

# Most specific first; matched case-insensitively against the line.
_TYPE_MARKERS: tuple[tuple[str, ErrorType], ...] = (
    ("classnotfoundexception", ErrorType.CLASS_NOT_FOUND),
    ("noclassdeffounderror", ErrorType.NO_CLASS_DEF_FOUND),
    ("linkageerror", ErrorType.LINKAGE_ERROR),
    ("nosuchmethoderror", ErrorType.NO_SUCH_METHOD),
    ("nosuchfielderror", ErrorType.NO_SUCH_FIELD),
    ("illegalaccesserror", ErrorType.ILLEGAL_ACCESS),
    ("classcastexception", ErrorType.CLASS_CAST),
)

_BINARY_TYPES = frozenset(
    {
        ErrorType.LINKAGE_ERROR,
        ErrorType.NO_SUCH_METHOD,
        ErrorType.NO_SUCH_FIELD,
        ErrorType.ILLEGAL_ACCESS,
        ErrorType.CLASS_CAST,
    }
)

_CONFIG_MARKERS = ("xml", "configuration", "properties")

# "java.lang.ClassNotFoundException: javax.servlet.Filter"
_CLASS_AFTER_THROWABLE = re.compile(
    r"(?:Exception|Error):?\s+([A-Za-z_$][\w$]*(?:[./][A-Za-z_$][\w$]*)+)"
)
_THROWABLE_LINE = re.compile(
    r"^(?:Exception in thread|Caused by:)|\b[\w.$]+(?:Exception|Error)\b"
)
_STACK_FRAME = re.compile(r"^\s+(?:at |\.\.\. \d+ more)")


def determine_error_type(message: str) -> ErrorType:
    lowered = message.lower()
    for marker, error_type in _TYPE_MARKERS:
        if marker in lowered:
            return error_type
    return ErrorType.OTHER


def extract_class_name(message: str) -> str | None:
    m = _CLASS_AFTER_THROWABLE.search(message)
    return m.group(1).replace("/", ".") if m else None


def _mentions_root(text: str, root: str) -> bool:
    return re.search(rf"(?<![\w.]){re.escape(root)}\.", text) is not None


def determine_error_category(
    message: str,
    class_name: str | None = None,
    *,
    old_root: str = OLD_ROOT,
    new_root: str = NEW_ROOT,
) -> ErrorCategory:
    combined = f"{message} {class_name or ''}"
    if _mentions_root(combined, old_root):
        return ErrorCategory.NAMESPACE_MIGRATION
    if _mentions_root(combined, new_root):
        return ErrorCategory.CLASSPATH_ISSUE
    if determine_error_type(message) in _BINARY_TYPES:
        return ErrorCategory.BINARY_INCOMPATIBILITY
    lowered = combined.lower()
    if any(marker in lowered for marker in _CONFIG_MARKERS):
        return ErrorCategory.CONFIGURATION_ERROR
    return ErrorCategory.UNKNOWN


def _confidence(error_type: ErrorType, category: ErrorCategory) -> float:
    if error_type == ErrorType.OTHER:
        return 0.4
    if category == ErrorCategory.UNKNOWN:
        return 0.7
    return 0.9


def analyze_output(
    output: str,
    *,
    old_root: str = OLD_ROOT,
    new_root: str = NEW_ROOT,
) -> list[RuntimeIssue]:
    """One issue per throwable line; stack frames are skipped."""
    issues: list[RuntimeIssue] = []
    for idx, raw in enumerate(output.splitlines(), start=1):
        if not raw.strip() or _STACK_FRAME.match(raw):
            continue
        line = raw.strip()
        if not _THROWABLE_LINE.search(line):
            continue
        error_type = determine_error_type(line)
        class_name = extract_class_name(line)
        category = determine_error_category(
            line, class_name, old_root=old_root, new_root=new_root
        )
        issues.append(
            RuntimeIssue(
                error_type=error_type,
                category=category,
                message=line,
                class_name=class_name,
                line_number=idx,
                confidence=_confidence(error_type, category),
            )
        )
    return issues
