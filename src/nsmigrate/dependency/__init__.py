"""Dependency analysis: graph model, classification, recommendations."""

from nsmigrate.dependency.analyzer import DependencyAnalyzer
from nsmigrate.dependency.classifier import (
    NamespaceClassifier,
    compare_versions,
)
from nsmigrate.dependency.graph_builder import (
    DependencyGraphError,
    DescriptorNotFoundError,
    build_from_project,
)
from nsmigrate.dependency.recommender import VersionRecommender
from nsmigrate.dependency.schemas import (
    Artifact,
    Blocker,
    Dependency,
    DependencyAnalysisReport,
    DependencyGraph,
    MigrationReadinessScore,
    NamespaceCompatibilityMap,
    RiskAssessment,
    VersionRecommendation,
)

__all__ = [
    "Artifact",
    "Blocker",
    "Dependency",
    "DependencyAnalysisReport",
    "DependencyAnalyzer",
    "DependencyGraph",
    "DependencyGraphError",
    "DescriptorNotFoundError",
    "MigrationReadinessScore",
    "NamespaceClassifier",
    "NamespaceCompatibilityMap",
    "RiskAssessment",
    "VersionRecommendation",
    "VersionRecommender",
    "build_from_project",
    "compare_versions",
]
