"""Tests for blocker detection, risk and readiness scoring."""

from __future__ import annotations

import pytest

from nsmigrate.constants import BlockerType, Namespace
from nsmigrate.dependency.blockers import (
    assess_risk,
    blocker_pressure,
    compute_readiness,
    detect_blockers,
    is_defunct,
    weighted_risk,
)
from nsmigrate.dependency.classifier import NamespaceClassifier
from nsmigrate.dependency.recommender import VersionRecommender
from nsmigrate.dependency.schemas import (
    Artifact,
    Dependency,
    DependencyGraph,
    NamespaceCompatibilityMap,
    RiskAssessment,
)


def _custom_roots() -> tuple[NamespaceClassifier, VersionRecommender]:
    classifier = NamespaceClassifier(
        old_root="old.ns",
        new_root="new.ns",
        new_artifacts={},
        old_artifacts=set(),
        framework_rules=[],
    )
    recommender = VersionRecommender(
        old_root="old.ns",
        new_root="new.ns",
        known_equivalents={},
        new_artifacts={},
        framework_rules=[],
    )
    return classifier, recommender


class TestDetectBlockers:
    def test_single_unresolvable_artifact(self) -> None:
        """One old-namespace node with no equivalent is one blocker."""
        classifier, recommender = _custom_roots()
        lib = Artifact(group="old.ns", name="lib", version="1.0")
        graph = DependencyGraph()
        graph.add_node(lib)

        blockers = detect_blockers(
            graph, classifier=classifier, recommender=recommender
        )

        assert len(blockers) == 1
        assert blockers[0].artifact == lib
        assert blockers[0].blocker_type == BlockerType.NO_EQUIVALENT_AVAILABLE
        assert blockers[0].confidence == pytest.approx(0.6)
        assert "new.ns" in blockers[0].reason

    def test_known_equivalent_is_not_a_blocker(self) -> None:
        graph = DependencyGraph()
        graph.add_node(
            Artifact(
                group="javax.servlet",
                name="javax.servlet-api",
                version="4.0.1",
            )
        )
        assert detect_blockers(graph) == []

    def test_defunct_api_gets_higher_confidence(self) -> None:
        rpc = Artifact(group="javax.xml.rpc", name="rpc-api", version="1.1")
        graph = DependencyGraph()
        graph.add_node(rpc)

        blockers = detect_blockers(graph)

        assert len(blockers) == 1
        assert blockers[0].confidence == pytest.approx(0.9)
        assert blockers[0].mitigation_strategies[0] == (
            "Remove or replace usages of the API"
        )

    def test_non_old_nodes_ignored(self) -> None:
        graph = DependencyGraph()
        graph.add_node(
            Artifact(group="org.example", name="x", version="1.0")
        )
        graph.add_node(
            Artifact(
                group="jakarta.servlet",
                name="jakarta.servlet-api",
                version="6.0.0",
            )
        )
        assert detect_blockers(graph) == []

    def test_graph_not_mutated(self) -> None:
        classifier, recommender = _custom_roots()
        app = Artifact(group="com.acme", name="app", version="1")
        lib = Artifact(group="old.ns", name="lib", version="1.0")
        graph = DependencyGraph()
        graph.add_edge(Dependency(source=app, target=lib))
        before = graph.model_copy(deep=True)

        detect_blockers(graph, classifier=classifier, recommender=recommender)

        assert graph == before


def test_is_defunct_matches_group_or_name() -> None:
    assert is_defunct(Artifact(group="javax.jws", name="api", version="1"))
    assert is_defunct(
        Artifact(group="com.acme", name="javax.xml.rpc-impl", version="1")
    )
    assert not is_defunct(
        Artifact(group="javax.servlet", name="servlet-api", version="1")
    )


class TestScoring:
    def test_weighted_risk_components(self) -> None:
        assert weighted_risk(0.0, False, 0.0) == 0.0
        assert weighted_risk(1.0, True, 1.0) == pytest.approx(1.0)
        assert weighted_risk(0.5, False, 0.0) == pytest.approx(0.25)

    def test_weighted_risk_clamps_inputs(self) -> None:
        assert weighted_risk(3.0, False, -1.0) == pytest.approx(0.5)

    def test_blocker_pressure_saturates(self) -> None:
        assert blocker_pressure(0) == 0.0
        assert blocker_pressure(50) == 1.0

    def test_assess_risk_all_old(self) -> None:
        lib = Artifact(group="javax.cache", name="cache-api", version="1")
        graph = DependencyGraph()
        graph.add_node(lib)
        ns_map = NamespaceCompatibilityMap.from_classification(
            {lib: Namespace.OLD_NAMESPACE}
        )

        risk = assess_risk(graph, ns_map, [])

        assert risk.score == pytest.approx(0.5)
        assert any("1 of 1" in f for f in risk.risk_factors)

    def test_assess_risk_empty_graph(self) -> None:
        risk = assess_risk(
            DependencyGraph(), NamespaceCompatibilityMap(), []
        )
        assert risk.score == 0.0
        assert risk.risk_factors == []

    def test_mixed_flag_when_both_namespaces_present(self) -> None:
        old = Artifact(group="javax.cache", name="cache-api", version="1")
        new = Artifact(group="jakarta.cache", name="cache-api", version="2")
        graph = DependencyGraph()
        graph.add_node(old)
        graph.add_node(new)
        ns_map = NamespaceCompatibilityMap.from_classification(
            {old: Namespace.OLD_NAMESPACE, new: Namespace.NEW_NAMESPACE}
        )

        risk = assess_risk(graph, ns_map, [])

        assert "Old and new namespace artifacts coexist" in risk.risk_factors
        assert risk.score == pytest.approx(0.5 * 0.5 + 0.2)


class TestReadiness:
    def test_ready_without_blockers(self) -> None:
        readiness = compute_readiness(RiskAssessment(score=0.1), [])
        assert readiness.score == pytest.approx(0.9)
        assert readiness.summary == "Ready for migration"

    def test_low_readiness(self) -> None:
        readiness = compute_readiness(RiskAssessment(score=0.8), [])
        assert readiness.summary.startswith("Low readiness")

    def test_blockers_prevent_ready(self) -> None:
        classifier, recommender = _custom_roots()
        graph = DependencyGraph()
        graph.add_node(Artifact(group="old.ns", name="lib", version="1.0"))
        blockers = detect_blockers(
            graph, classifier=classifier, recommender=recommender
        )

        readiness = compute_readiness(RiskAssessment(score=0.0), blockers)

        assert readiness.summary.startswith("Moderate readiness")
        assert readiness.summary.endswith("(1 blockers)")
