"""Tests for DependencyAnalyzer report assembly."""

from __future__ import annotations

from pathlib import Path

import pytest

from nsmigrate.constants import Namespace, RecommendationSource
from nsmigrate.dependency.analyzer import DependencyAnalyzer
from nsmigrate.dependency.graph_builder import DescriptorNotFoundError
from nsmigrate.dependency.schemas import (
    Artifact,
    Dependency,
    DependencyGraph,
)


def test_analyze_legacy_project(legacy_project: Path) -> None:
    report = DependencyAnalyzer().analyze_project(legacy_project)

    assert report.project_path == str(legacy_project)
    assert report.graph.node_count == 4
    ns = report.namespace_map
    assert ns.count(Namespace.OLD_NAMESPACE) == 2
    assert ns.count(Namespace.UNKNOWN) == 2
    assert {
        r.current_artifact.name for r in report.recommendations
    } == {"javax.servlet-api", "javax.persistence-api"}
    assert all(
        r.source == RecommendationSource.KNOWN_EQUIVALENT
        for r in report.recommendations
    )
    assert report.blockers == []
    assert report.risk.score == pytest.approx(0.25)
    assert report.readiness.score == pytest.approx(0.75)


def test_report_owns_a_copy_of_the_graph() -> None:
    app = Artifact(group="com.acme", name="app", version="1")
    rpc = Artifact(group="javax.xml.rpc", name="rpc-api", version="1.1")
    graph = DependencyGraph()
    graph.add_edge(Dependency(source=app, target=rpc))

    report = DependencyAnalyzer().analyze(graph)
    graph.add_node(Artifact(group="com.acme", name="late", version="1"))

    assert report.graph.node_count == 2
    assert [b.artifact for b in report.blockers] == [rpc]
    assert report.readiness.summary.endswith("(1 blockers)")


def test_mixed_artifacts_get_recommendations() -> None:
    jaxb = Artifact(
        group="jakarta.xml.bind", name="jakarta.xml.bind-api", version="2.3.3"
    )
    graph = DependencyGraph()
    graph.add_node(jaxb)

    report = DependencyAnalyzer().analyze(graph)

    assert report.namespace_map.namespace_of(jaxb) == Namespace.MIXED
    assert len(report.recommendations) == 1
    assert "Old and new namespace artifacts coexist" in (
        report.risk.risk_factors
    )


def test_missing_descriptor_propagates(tmp_path: Path) -> None:
    with pytest.raises(DescriptorNotFoundError):
        DependencyAnalyzer().analyze_project(tmp_path)
