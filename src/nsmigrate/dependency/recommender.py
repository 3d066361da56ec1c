"""Map an artifact to its best-known new-namespace replacement."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from difflib import SequenceMatcher

from nsmigrate.constants import (
    KNOWN_EQUIVALENTS,
    NEW_NAMESPACE_ARTIFACTS,
    NEW_ROOT,
    OLD_ROOT,
    RecommendationConfidence,
    RecommendationSource,
)
from nsmigrate.dependency.classifier import (
    FRAMEWORK_RULES,
    FrameworkRule,
    compare_versions,
    is_version_at_least,
)
from nsmigrate.dependency.metadata_search import (
    ArtifactCandidate,
    MetadataSearch,
)
from nsmigrate.dependency.schemas import Artifact, VersionRecommendation

logger = logging.getLogger(__name__)


def _swap_root(value: str, old_root: str, new_root: str) -> str:
    if value == old_root:
        return new_root
    if value.startswith(old_root + "."):
        return new_root + value[len(old_root):]
    return value.replace(old_root, new_root)


class VersionRecommender:
    """Lookup order: known equivalents, framework upgrades, metadata search.

    Never raises for an artifact with no replacement; that outcome is a
    recommendation tagged ``NO_EQUIVALENT_FOUND``.
    """

    def __init__(
        self,
        search: MetadataSearch | None = None,
        *,
        old_root: str = OLD_ROOT,
        new_root: str = NEW_ROOT,
        known_equivalents: Mapping[str, str] | None = None,
        new_artifacts: Mapping[str, str] | None = None,
        framework_rules: Iterable[FrameworkRule] | None = None,
    ) -> None:
        self._search = search
        self.old_root = old_root
        self.new_root = new_root
        self._known = dict(
            KNOWN_EQUIVALENTS
            if known_equivalents is None
            else known_equivalents
        )
        self._new_artifacts = dict(
            NEW_NAMESPACE_ARTIFACTS if new_artifacts is None else new_artifacts
        )
        self._rules = tuple(
            FRAMEWORK_RULES if framework_rules is None else framework_rules
        )
        self._cache: dict[str, VersionRecommendation] = {}

    def recommend_version(
        self, group: str, name: str, current_version: str
    ) -> VersionRecommendation:
        current = Artifact(group=group, name=name, version=current_version)
        return (
            self._from_known(current)
            or self._from_transitional(current)
            or self._from_framework(current)
            or self._from_search(current)
            or VersionRecommendation(
                current_artifact=current,
                recommended_artifact=None,
                source=RecommendationSource.NO_EQUIVALENT_FOUND,
                rationale=(
                    f"No {self.new_root} equivalent known for "
                    f"{current.coordinate}"
                ),
                confidence=RecommendationConfidence.NONE,
            )
        )

    def recommend(self, artifact: Artifact) -> VersionRecommendation:
        """Memoised by identifier so repeated lookups skip the search."""
        cached = self._cache.get(artifact.identifier)
        if cached is None:
            cached = self.recommend_version(
                artifact.group, artifact.name, artifact.version
            )
            self._cache[artifact.identifier] = cached
        return cached

    def recommend_all(
        self, artifacts: Iterable[Artifact]
    ) -> list[VersionRecommendation]:
        """Recommendations that name a target; misses are dropped."""
        seen: set[str] = set()
        results: list[VersionRecommendation] = []
        for artifact in artifacts:
            if artifact.identifier in seen:
                continue
            seen.add(artifact.identifier)
            rec = self.recommend(artifact)
            if rec.has_target:
                results.append(rec)
        return results

    def _from_known(
        self, current: Artifact
    ) -> VersionRecommendation | None:
        target = self._known.get(current.coordinate)
        if target is None:
            return None
        group, name, version = target.split(":", 2)
        return VersionRecommendation(
            current_artifact=current,
            recommended_artifact=Artifact(
                group=group, name=name, version=version
            ),
            source=RecommendationSource.KNOWN_EQUIVALENT,
            rationale=f"{current.coordinate} was relocated to {group}:{name}",
            caveats=[
                f"Source code must switch from {self.old_root}.* "
                f"to {self.new_root}.* packages",
            ],
            confidence=RecommendationConfidence.KNOWN_EQUIVALENT,
        )

    def _from_transitional(
        self, current: Artifact
    ) -> VersionRecommendation | None:
        """New coordinates released before the package rename."""
        minimum = self._new_artifacts.get(current.coordinate)
        if minimum is None or is_version_at_least(current.version, minimum):
            return None
        return VersionRecommendation(
            current_artifact=current,
            recommended_artifact=Artifact(
                group=current.group, name=current.name, version=minimum
            ),
            source=RecommendationSource.KNOWN_EQUIVALENT,
            rationale=(
                f"{current.coordinate} below {minimum} still ships "
                f"{self.old_root} packages"
            ),
            confidence=RecommendationConfidence.KNOWN_EQUIVALENT,
        )

    def _from_framework(
        self, current: Artifact
    ) -> VersionRecommendation | None:
        rule = next((r for r in self._rules if r.matches(current)), None)
        if rule is None:
            return None
        if is_version_at_least(current.version, rule.threshold):
            target_version = current.version
            rationale = (
                f"{current.coordinate} {current.version} already uses "
                f"{self.new_root} packages"
            )
        else:
            target_version = rule.target_version
            if compare_versions(current.version, target_version) > 0:
                target_version = current.version
            rationale = (
                f"{current.coordinate} switched to {self.new_root} "
                f"packages in {rule.threshold}"
            )
        return VersionRecommendation(
            current_artifact=current,
            recommended_artifact=Artifact(
                group=current.group,
                name=current.name,
                version=target_version,
            ),
            source=RecommendationSource.FRAMEWORK_UPGRADE,
            rationale=rationale,
            caveats=list(rule.caveats),
            confidence=RecommendationConfidence.FRAMEWORK_UPGRADE,
        )

    def _from_search(
        self, current: Artifact
    ) -> VersionRecommendation | None:
        if self._search is None:
            return None
        target_group = _swap_root(current.group, self.old_root, self.new_root)
        if not target_group.startswith(self.new_root):
            target_group = self.new_root
        wanted_name = _swap_root(current.name, self.old_root, self.new_root)

        candidates = [
            c
            for c in self._search.search(f"g:{target_group}*")
            if c.group.startswith(self.new_root)
        ]
        best = _best_candidate(candidates, wanted_name)
        if best is None:
            logger.info(
                "event=no_search_candidate artifact=%s", current.coordinate
            )
            return None
        return VersionRecommendation(
            current_artifact=current,
            recommended_artifact=Artifact(
                group=best.group,
                name=best.name,
                version=best.latest_version,
            ),
            source=RecommendationSource.METADATA_SEARCH,
            rationale=(
                f"Closest {self.new_root} artifact found by metadata search"
            ),
            caveats=["Verify API compatibility; match is name-based"],
            confidence=RecommendationConfidence.METADATA_SEARCH,
        )


def _best_candidate(
    candidates: list[ArtifactCandidate], wanted_name: str
) -> ArtifactCandidate | None:
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda c: SequenceMatcher(None, c.name, wanted_name).ratio(),
    )
