"""Binary compatibility comparison between two builds of an archive."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from nsmigrate.constants import BreakingChangeKind
from nsmigrate.dependency.schemas import BreakingChange

logger = logging.getLogger(__name__)


class CompatibilityReport(BaseModel):
    """Tagged outcome: ``available`` is False when no check could run."""

    available: bool
    breaking_changes: list[BreakingChange] = Field(
        default_factory=lambda: list[BreakingChange]()
    )
    reason: str = ""

    model_config = {"frozen": True}

    @property
    def is_compatible(self) -> bool:
        return self.available and not self.breaking_changes


class CompatibilityChecker(Protocol):
    def compare(
        self, old_archive: Path, new_archive: Path
    ) -> CompatibilityReport: ...


class UnavailableCompatibilityChecker:
    """Stand-in when no comparison backend is configured."""

    def __init__(self, reason: str = "compatibility checking disabled"):
        self._reason = reason

    def compare(
        self, old_archive: Path, new_archive: Path
    ) -> CompatibilityReport:
        return CompatibilityReport(available=False, reason=self._reason)


def _class_names(archive: Path) -> set[str]:
    with zipfile.ZipFile(archive) as zf:
        return {
            name[: -len(".class")].replace("/", ".")
            for name in zf.namelist()
            if name.endswith(".class")
            and not name.startswith("META-INF/")
            and not name.endswith("module-info.class")
        }


def _package_of(class_name: str) -> str:
    return class_name.rpartition(".")[0]


class ArchiveCompatibilityChecker:
    """Compares the class listings of two jar files.

    Detects removed packages and removed classes. Member-level
    signature changes need bytecode inspection and are not reported.
    """

    def compare(
        self, old_archive: Path, new_archive: Path
    ) -> CompatibilityReport:
        try:
            old_classes = _class_names(Path(old_archive))
            new_classes = _class_names(Path(new_archive))
        except (OSError, zipfile.BadZipFile) as exc:
            logger.warning(
                "event=compatibility_unavailable old=%s new=%s error=%s",
                old_archive,
                new_archive,
                exc,
            )
            return CompatibilityReport(available=False, reason=str(exc))

        new_packages = {_package_of(c) for c in new_classes}
        removed_packages = sorted(
            {_package_of(c) for c in old_classes} - new_packages
        )
        changes = [
            BreakingChange(
                kind=BreakingChangeKind.PACKAGE_REMOVED,
                symbol=pkg,
                description=f"Package {pkg} no longer present",
            )
            for pkg in removed_packages
        ]
        changes.extend(
            BreakingChange(
                kind=BreakingChangeKind.CLASS_REMOVED,
                symbol=cls,
                description=f"Class {cls} no longer present",
            )
            for cls in sorted(old_classes - new_classes)
            if _package_of(cls) in new_packages
        )
        logger.info(
            "event=compatibility_compared old=%s new=%s breaking=%d",
            old_archive,
            new_archive,
            len(changes),
        )
        return CompatibilityReport(available=True, breaking_changes=changes)
