"""Assemble a DependencyAnalysisReport from a project or graph."""

from __future__ import annotations

import logging
from pathlib import Path

from nsmigrate.constants import Namespace
from nsmigrate.dependency.blockers import (
    assess_risk,
    compute_readiness,
    detect_blockers,
)
from nsmigrate.dependency.classifier import NamespaceClassifier
from nsmigrate.dependency.graph_builder import build_from_project
from nsmigrate.dependency.recommender import VersionRecommender
from nsmigrate.dependency.schemas import (
    DependencyAnalysisReport,
    DependencyGraph,
    NamespaceCompatibilityMap,
)

logger = logging.getLogger(__name__)

_NEEDS_MIGRATION = frozenset({Namespace.OLD_NAMESPACE, Namespace.MIXED})


class DependencyAnalyzer:
    def __init__(
        self,
        classifier: NamespaceClassifier | None = None,
        recommender: VersionRecommender | None = None,
        skip_dirs: set[str] | None = None,
    ) -> None:
        self.classifier = classifier or NamespaceClassifier()
        self.recommender = recommender or VersionRecommender(
            old_root=self.classifier.old_root,
            new_root=self.classifier.new_root,
        )
        self._skip_dirs = skip_dirs

    def analyze(
        self, graph: DependencyGraph, project_path: str = ""
    ) -> DependencyAnalysisReport:
        """Classify, recommend, find blockers and score one graph.

        The report owns a deep copy of ``graph``.
        """
        classified = self.classifier.classify_all(graph.nodes)
        namespace_map = NamespaceCompatibilityMap.from_classification(
            classified
        )
        needs_migration = [
            a
            for a, ns in sorted(
                classified.items(), key=lambda kv: kv[0].identifier
            )
            if ns in _NEEDS_MIGRATION
        ]
        recommendations = self.recommender.recommend_all(needs_migration)
        blockers = detect_blockers(
            graph,
            classifier=self.classifier,
            recommender=self.recommender,
        )
        risk = assess_risk(graph, namespace_map, blockers)
        readiness = compute_readiness(risk, blockers)

        logger.info(
            "event=analysis_complete project=%s nodes=%d old=%d"
            " recommendations=%d blockers=%d risk=%.2f",
            project_path,
            graph.node_count,
            namespace_map.count(Namespace.OLD_NAMESPACE),
            len(recommendations),
            len(blockers),
            risk.score,
        )
        return DependencyAnalysisReport(
            project_path=project_path,
            graph=graph.model_copy(deep=True),
            namespace_map=namespace_map,
            blockers=blockers,
            recommendations=recommendations,
            risk=risk,
            readiness=readiness,
        )

    def analyze_project(
        self, project_path: Path | str
    ) -> DependencyAnalysisReport:
        root = Path(project_path)
        graph = build_from_project(root, self._skip_dirs)
        return self.analyze(graph, str(root))
