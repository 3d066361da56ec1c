"""Classify artifacts as old-namespace, new-namespace, mixed or unknown.

Precedence, first match wins:

1. exact ``group:name`` in the new-namespace table (version gated)
2. exact ``group:name`` in the old-namespace table
3. framework release-line thresholds, matched by coordinate prefix
4. group prefix against the two namespace roots
5. UNKNOWN
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from nsmigrate.constants import (
    NEW_NAMESPACE_ARTIFACTS,
    NEW_ROOT,
    OLD_NAMESPACE_ARTIFACTS,
    OLD_ROOT,
    Namespace,
)
from nsmigrate.dependency.schemas import Artifact

logger = logging.getLogger(__name__)

_SUFFIX_SEPARATOR_RE = re.compile(r"[-+_]")
_LEADING_DIGITS_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class FrameworkRule:
    """A framework whose releases switch namespace at ``threshold``."""

    coordinate_prefix: str
    threshold: str
    target_version: str
    caveats: tuple[str, ...] = field(default_factory=tuple)

    def matches(self, artifact: Artifact) -> bool:
        return artifact.coordinate.startswith(self.coordinate_prefix)


FRAMEWORK_RULES: tuple[FrameworkRule, ...] = (
    FrameworkRule(
        "org.springframework.boot:",
        "3.0.0",
        "3.2.0",
        ("Requires Java 17+", "Spring Boot 3 drops deprecated 2.x APIs"),
    ),
    FrameworkRule(
        "org.springframework:spring-",
        "6.0.0",
        "6.1.0",
        ("Requires Java 17+",),
    ),
    FrameworkRule(
        "org.hibernate:hibernate-",
        "6.0.0",
        "6.4.0",
        ("Hibernate 6 changes HQL parsing and type mappings",),
    ),
    FrameworkRule(
        "org.hibernate.validator:hibernate-validator",
        "7.0.0",
        "8.0.1",
    ),
    FrameworkRule(
        "org.glassfish.jersey",
        "3.0.0",
        "3.1.3",
    ),
    FrameworkRule(
        "org.apache.tomcat.embed:tomcat-embed-",
        "10.0.0",
        "10.1.16",
        ("Tomcat 10 implements Servlet 6 / the jakarta.servlet API",),
    ),
)


def _parse_part(part: str) -> int:
    head = _SUFFIX_SEPARATOR_RE.split(part, maxsplit=1)[0]
    m = _LEADING_DIGITS_RE.match(head)
    return int(m.group(0)) if m else 0


def compare_versions(left: str, right: str) -> int:
    """Compare two dotted versions; returns -1, 0 or 1.

    ``"1.0"`` equals ``"1.0.0"``; ``"5.0.0-M1"`` compares as ``5.0.0``.
    Strings with no numeric content at all compare lexicographically.
    """
    if not any(c.isdigit() for c in left + right):
        return (left > right) - (left < right)

    lparts = [_parse_part(p) for p in left.strip().split(".")]
    rparts = [_parse_part(p) for p in right.strip().split(".")]
    width = max(len(lparts), len(rparts))
    lparts += [0] * (width - len(lparts))
    rparts += [0] * (width - len(rparts))
    return (lparts > rparts) - (lparts < rparts)


def is_version_at_least(version: str, minimum: str) -> bool:
    return compare_versions(version, minimum) >= 0


def _under_root(group: str, root: str) -> bool:
    return group == root or group.startswith(root + ".")


class NamespaceClassifier:
    """Pure artifact → Namespace classifier with injectable tables."""

    def __init__(
        self,
        *,
        old_root: str = OLD_ROOT,
        new_root: str = NEW_ROOT,
        new_artifacts: Mapping[str, str] | None = None,
        old_artifacts: Iterable[str] | None = None,
        framework_rules: Iterable[FrameworkRule] | None = None,
    ) -> None:
        self.old_root = old_root
        self.new_root = new_root
        self._new_artifacts = dict(
            NEW_NAMESPACE_ARTIFACTS if new_artifacts is None else new_artifacts
        )
        self._old_artifacts = frozenset(
            OLD_NAMESPACE_ARTIFACTS if old_artifacts is None else old_artifacts
        )
        self._rules = tuple(
            FRAMEWORK_RULES if framework_rules is None else framework_rules
        )

    def classify(self, artifact: Artifact) -> Namespace:
        coordinate = artifact.coordinate

        minimum = self._new_artifacts.get(coordinate)
        if minimum is not None:
            if is_version_at_least(artifact.version, minimum):
                return Namespace.NEW_NAMESPACE
            # transitional release: new coordinates, old packages
            return Namespace.MIXED

        if coordinate in self._old_artifacts:
            return Namespace.OLD_NAMESPACE

        rule = self.framework_rule_for(artifact)
        if rule is not None:
            if is_version_at_least(artifact.version, rule.threshold):
                return Namespace.NEW_NAMESPACE
            return Namespace.OLD_NAMESPACE

        if _under_root(artifact.group, self.new_root):
            return Namespace.NEW_NAMESPACE
        if _under_root(artifact.group, self.old_root):
            return Namespace.OLD_NAMESPACE

        return Namespace.UNKNOWN

    def classify_all(
        self, artifacts: Iterable[Artifact]
    ) -> dict[Artifact, Namespace]:
        """One entry per distinct artifact; UNKNOWN is a valid outcome."""
        result: dict[Artifact, Namespace] = {}
        for artifact in artifacts:
            if artifact not in result:
                result[artifact] = self.classify(artifact)
        logger.debug("event=classified count=%d", len(result))
        return result

    def framework_rule_for(self, artifact: Artifact) -> FrameworkRule | None:
        for rule in self._rules:
            if rule.matches(artifact):
                return rule
        return None
