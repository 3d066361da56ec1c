"""Blocker detection plus risk and readiness scoring.

All functions are side-effect free and never mutate the graph.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from nsmigrate.constants import (
    BLOCKER_SATURATION,
    DEFUNCT_API_PATTERNS,
    READINESS_HIGH,
    READINESS_MODERATE,
    BlockerConfidence,
    BlockerType,
    Namespace,
    RiskWeight,
)
from nsmigrate.dependency.classifier import NamespaceClassifier
from nsmigrate.dependency.recommender import VersionRecommender
from nsmigrate.dependency.schemas import (
    Artifact,
    Blocker,
    DependencyGraph,
    MigrationReadinessScore,
    NamespaceCompatibilityMap,
    RiskAssessment,
)

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def weighted_risk(
    old_ratio: float, mixed: bool, blocker_pressure: float
) -> float:
    """Shared risk score used by analysis and planning."""
    return _clamp(
        RiskWeight.OLD_RATIO * _clamp(old_ratio)
        + RiskWeight.MIXED * (1.0 if mixed else 0.0)
        + RiskWeight.BLOCKERS * _clamp(blocker_pressure)
    )


def blocker_pressure(blocker_count: int) -> float:
    return min(1.0, blocker_count / BLOCKER_SATURATION)


def is_defunct(
    artifact: Artifact, patterns: Iterable[str] = DEFUNCT_API_PATTERNS
) -> bool:
    return any(
        artifact.group.startswith(p) or p in artifact.name for p in patterns
    )


def detect_blockers(
    graph: DependencyGraph,
    *,
    classifier: NamespaceClassifier | None = None,
    recommender: VersionRecommender | None = None,
    defunct_patterns: Iterable[str] = DEFUNCT_API_PATTERNS,
) -> list[Blocker]:
    """One blocker per old-namespace node with no known replacement."""
    classifier = classifier or NamespaceClassifier()
    recommender = recommender or VersionRecommender(
        old_root=classifier.old_root, new_root=classifier.new_root
    )
    patterns = tuple(defunct_patterns)

    blockers: list[Blocker] = []
    for artifact in sorted(graph.nodes, key=lambda a: a.identifier):
        if classifier.classify(artifact) != Namespace.OLD_NAMESPACE:
            continue
        if recommender.recommend(artifact).has_target:
            continue

        mitigations = [
            f"Search for a community fork published under "
            f"{classifier.new_root}.*",
            "Isolate the dependency behind an adapter until replaced",
        ]
        if is_defunct(artifact, patterns):
            reason = (
                f"{artifact.coordinate} belongs to an API pruned from the "
                f"platform; no {classifier.new_root} successor exists"
            )
            mitigations.insert(0, "Remove or replace usages of the API")
            confidence = BlockerConfidence.DEFUNCT
        else:
            reason = (
                f"No {classifier.new_root} equivalent found for "
                f"{artifact.coordinate}"
            )
            confidence = BlockerConfidence.UNRESOLVED

        blockers.append(
            Blocker(
                artifact=artifact,
                blocker_type=BlockerType.NO_EQUIVALENT_AVAILABLE,
                reason=reason,
                mitigation_strategies=mitigations,
                confidence=confidence,
            )
        )

    logger.info(
        "event=blockers_detected nodes=%d blockers=%d",
        graph.node_count,
        len(blockers),
    )
    return blockers


def assess_risk(
    graph: DependencyGraph,
    namespace_map: NamespaceCompatibilityMap,
    blockers: list[Blocker],
) -> RiskAssessment:
    total = graph.node_count
    old = sum(
        1
        for a in graph.nodes
        if namespace_map.namespace_of(a) == Namespace.OLD_NAMESPACE
    )
    new = sum(
        1
        for a in graph.nodes
        if namespace_map.namespace_of(a) == Namespace.NEW_NAMESPACE
    )
    mixed_artifacts = sum(
        1
        for a in graph.nodes
        if namespace_map.namespace_of(a) == Namespace.MIXED
    )
    old_ratio = old / total if total else 0.0
    mixed = mixed_artifacts > 0 or (old > 0 and new > 0)

    factors: list[str] = []
    mitigations: list[str] = []
    if old:
        factors.append(
            f"{old} of {total} artifacts use the old namespace"
        )
        mitigations.append("Upgrade old-namespace artifacts first")
    if mixed:
        factors.append("Old and new namespace artifacts coexist")
        mitigations.append(
            "Migrate in a single phase to avoid split classpaths"
        )
    if blockers:
        factors.append(f"{len(blockers)} artifacts have no known equivalent")
        mitigations.append("Resolve blockers before refactoring sources")

    return RiskAssessment(
        score=weighted_risk(old_ratio, mixed, blocker_pressure(len(blockers))),
        risk_factors=factors,
        mitigations=mitigations,
    )


def compute_readiness(
    risk: RiskAssessment, blockers: list[Blocker]
) -> MigrationReadinessScore:
    score = _clamp(1.0 - risk.score)
    if score >= READINESS_HIGH and not blockers:
        summary = "Ready for migration"
    elif score >= READINESS_MODERATE:
        summary = "Moderate readiness - some dependencies need migration"
    else:
        summary = "Low readiness - significant migration work required"
    if blockers:
        summary += f" ({len(blockers)} blockers)"
    return MigrationReadinessScore(score=score, summary=summary)
