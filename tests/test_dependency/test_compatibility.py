"""Tests for archive compatibility comparison."""

from __future__ import annotations

import zipfile
from pathlib import Path

from nsmigrate.constants import BreakingChangeKind
from nsmigrate.dependency.compatibility import (
    ArchiveCompatibilityChecker,
    UnavailableCompatibilityChecker,
)


def _jar(path: Path, *class_names: str) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        for name in class_names:
            zf.writestr(name.replace(".", "/") + ".class", b"\xca\xfe")
    return path


def test_identical_archives_are_compatible(tmp_path: Path) -> None:
    old = _jar(tmp_path / "old.jar", "com.acme.Cart", "com.acme.Item")
    new = _jar(tmp_path / "new.jar", "com.acme.Cart", "com.acme.Item")

    report = ArchiveCompatibilityChecker().compare(old, new)

    assert report.available
    assert report.is_compatible
    assert report.breaking_changes == []


def test_removed_package_and_class(tmp_path: Path) -> None:
    old = _jar(
        tmp_path / "old.jar",
        "com.acme.Cart",
        "com.acme.Item",
        "com.acme.legacy.Bridge",
    )
    new = _jar(tmp_path / "new.jar", "com.acme.Cart")

    report = ArchiveCompatibilityChecker().compare(old, new)

    assert not report.is_compatible
    kinds = {(c.kind, c.symbol) for c in report.breaking_changes}
    assert kinds == {
        (BreakingChangeKind.PACKAGE_REMOVED, "com.acme.legacy"),
        (BreakingChangeKind.CLASS_REMOVED, "com.acme.Item"),
    }


def test_added_classes_are_not_breaking(tmp_path: Path) -> None:
    old = _jar(tmp_path / "old.jar", "com.acme.Cart")
    new = _jar(tmp_path / "new.jar", "com.acme.Cart", "com.acme.Promo")
    assert ArchiveCompatibilityChecker().compare(old, new).is_compatible


def test_unreadable_archive_is_unavailable(tmp_path: Path) -> None:
    old = _jar(tmp_path / "old.jar", "com.acme.Cart")
    broken = tmp_path / "broken.jar"
    broken.write_text("not a zip")

    report = ArchiveCompatibilityChecker().compare(old, broken)

    assert not report.available
    assert not report.is_compatible
    assert report.reason


def test_unavailable_checker_is_tagged(tmp_path: Path) -> None:
    report = UnavailableCompatibilityChecker("no backend").compare(
        tmp_path / "a.jar", tmp_path / "b.jar"
    )
    assert not report.available
    assert report.reason == "no backend"
