"""Project file discovery, categorisation and namespace token scanning."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from nsmigrate.constants import (
    BUILD_DESCRIPTORS,
    DEFAULT_SKIP_DIRECTORIES,
    MIGRATED_PACKAGES,
    NAMESPACE_DESCRIPTOR_FILES,
    NEW_ROOT,
    NEW_XML_NAMESPACE_PREFIX,
    OLD_ROOT,
    RESOURCE_EXTENSIONS,
    SOURCE_EXTENSIONS,
    UNMIGRATED_SUBPACKAGES,
    XML_NAMESPACE_MAPPINGS,
    FileCategory,
)

logger = logging.getLogger(__name__)

_GENERATED_MARKERS = ("generated-sources", "generated", "gen-src")


def categorize(path: Path | str) -> FileCategory | None:
    """Concern a file belongs to, or None if it is never migrated."""
    p = Path(path)
    if p.name in BUILD_DESCRIPTORS:
        return FileCategory.BUILD
    if p.suffix in SOURCE_EXTENSIONS:
        if any(marker in p.parts for marker in _GENERATED_MARKERS):
            return FileCategory.RESOURCE
        return FileCategory.SOURCE
    if p.name in NAMESPACE_DESCRIPTOR_FILES:
        return FileCategory.CONFIG
    if p.suffix in RESOURCE_EXTENSIONS:
        return FileCategory.RESOURCE
    return None


def discover_files(
    root: Path | str, skip_dirs: Iterable[str] | None = None
) -> list[Path]:
    """All categorisable files under ``root``, sorted, skipping build dirs."""
    skips = set(DEFAULT_SKIP_DIRECTORIES if skip_dirs is None else skip_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skips)
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if categorize(path) is not None:
                found.append(path)
    logger.debug("event=files_discovered root=%s count=%d", root, len(found))
    return found


@dataclass(frozen=True)
class TokenHit:
    line_number: int
    token: str
    line: str


class NamespaceScanner:
    """Finds old- and new-namespace references in text content."""

    def __init__(
        self,
        *,
        old_root: str = OLD_ROOT,
        new_root: str = NEW_ROOT,
        packages: Iterable[str] = MIGRATED_PACKAGES,
        excluded_packages: Iterable[str] = UNMIGRATED_SUBPACKAGES,
        xml_namespaces: Mapping[str, str] | None = None,
        new_xml_prefix: str = NEW_XML_NAMESPACE_PREFIX,
    ) -> None:
        alternation = "|".join(
            re.escape(p) for p in sorted(packages, key=len, reverse=True)
        )
        negatives = "".join(
            rf"(?!{re.escape(e)}\b)" for e in excluded_packages
        )
        self._old_re = re.compile(
            rf"(?<![\w.]){re.escape(old_root)}\.{negatives}"
            rf"(?:{alternation})\b"
        )
        self._new_re = re.compile(
            rf"(?<![\w.]){re.escape(new_root)}\.(?:{alternation})\b"
        )
        self._old_xml = tuple(
            XML_NAMESPACE_MAPPINGS
            if xml_namespaces is None
            else xml_namespaces
        )
        self._new_xml_prefix = new_xml_prefix

    def old_references(self, content: str) -> list[TokenHit]:
        hits: list[TokenHit] = []
        for idx, line in enumerate(content.splitlines(), start=1):
            m = self._old_re.search(line)
            if m:
                hits.append(TokenHit(idx, m.group(0), line))
                continue
            for uri in self._old_xml:
                if uri in line:
                    hits.append(TokenHit(idx, uri, line))
                    break
        return hits

    def has_old_references(self, content: str) -> bool:
        return bool(self._old_re.search(content)) or any(
            uri in content for uri in self._old_xml
        )

    def has_new_references(self, content: str) -> bool:
        return (
            bool(self._new_re.search(content))
            or self._new_xml_prefix in content
        )
