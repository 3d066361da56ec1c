"""Pydantic models for dependency analysis."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from nsmigrate.constants import (
    RISK_LOW_BELOW,
    RISK_MEDIUM_BELOW,
    BlockerType,
    BreakingChangeKind,
    Namespace,
    RecommendationSource,
    RiskLevel,
)


class Artifact(BaseModel):
    """A versioned, uniquely-coordinated unit of code.

    Pure identity value: classification results live in a
    :class:`NamespaceCompatibilityMap`, never on the artifact.
    """

    group: str
    name: str
    version: str
    scope: str = "compile"
    transitive: bool = False

    model_config = {"frozen": True}

    @field_validator("group", "name", "version", "scope")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @property
    def coordinate(self) -> str:
        """``group:name``, the key used by classification tables."""
        return f"{self.group}:{self.name}"

    @property
    def identifier(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"

    def __str__(self) -> str:
        return self.identifier


class Dependency(BaseModel):
    """A directed edge: ``source`` depends on ``target``."""

    source: Artifact
    target: Artifact
    scope: str = "compile"
    optional: bool = False

    model_config = {"frozen": True}


class DependencyGraph(BaseModel):
    """Artifact nodes and dependency edges of one project.

    A multigraph: parallel edges are kept. Every edge endpoint is a
    node; :meth:`add_edge` inserts both endpoints. No ordering
    guarantee over nodes or edges.
    """

    nodes: set[Artifact] = Field(default_factory=lambda: set[Artifact]())
    edges: list[Dependency] = Field(
        default_factory=lambda: list[Dependency]()
    )

    def add_node(self, artifact: Artifact) -> None:
        self.nodes.add(artifact)

    def add_edge(self, edge: Dependency) -> None:
        self.nodes.add(edge.source)
        self.nodes.add(edge.target)
        self.edges.append(edge)

    def contains(self, artifact: Artifact) -> bool:
        return artifact in self.nodes

    def dependencies_of(self, artifact: Artifact) -> list[Artifact]:
        """Direct targets of ``artifact``'s outgoing edges."""
        return [e.target for e in self.edges if e.source == artifact]

    def dependents_of(self, artifact: Artifact) -> list[Artifact]:
        return [e.source for e in self.edges if e.target == artifact]

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)


class NamespaceCompatibilityMap(BaseModel):
    """Side map from artifact identifier to namespace classification."""

    entries: dict[str, Namespace] = Field(
        default_factory=lambda: dict[str, Namespace]()
    )

    @classmethod
    def from_classification(
        cls, classified: dict[Artifact, Namespace]
    ) -> NamespaceCompatibilityMap:
        return cls(
            entries={a.identifier: ns for a, ns in classified.items()}
        )

    def namespace_of(self, artifact: Artifact) -> Namespace:
        return self.entries.get(artifact.identifier, Namespace.UNKNOWN)

    def count(self, namespace: Namespace) -> int:
        return Counter(self.entries.values())[namespace]

    def __len__(self) -> int:
        return len(self.entries)


class Blocker(BaseModel):
    """An artifact with no known migration path."""

    artifact: Artifact
    blocker_type: BlockerType = BlockerType.NO_EQUIVALENT_AVAILABLE
    reason: str
    mitigation_strategies: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    confidence: float = Field(ge=0.0, le=1.0)

    model_config = {"frozen": True}


class VersionRecommendation(BaseModel):
    """Best-known new-namespace replacement for an artifact.

    ``recommended_artifact`` is None when the source is
    ``NO_EQUIVALENT_FOUND``.
    """

    current_artifact: Artifact
    recommended_artifact: Artifact | None = None
    source: RecommendationSource
    rationale: str
    caveats: list[str] = Field(default_factory=lambda: list[str]())
    confidence: float = Field(ge=0.0, le=1.0)

    model_config = {"frozen": True}

    @property
    def has_target(self) -> bool:
        return self.recommended_artifact is not None


class RiskAssessment(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    risk_factors: list[str] = Field(default_factory=lambda: list[str]())
    mitigations: list[str] = Field(default_factory=lambda: list[str]())

    model_config = {"frozen": True}

    @property
    def level(self) -> RiskLevel:
        if self.score < RISK_LOW_BELOW:
            return RiskLevel.LOW
        if self.score < RISK_MEDIUM_BELOW:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH


class MigrationReadinessScore(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    summary: str

    model_config = {"frozen": True}


class DependencyAnalysisReport(BaseModel):
    """Aggregate analysis of a project; the sole input to planning."""

    project_path: str = ""
    graph: DependencyGraph
    namespace_map: NamespaceCompatibilityMap
    blockers: list[Blocker] = Field(default_factory=lambda: list[Blocker]())
    recommendations: list[VersionRecommendation] = Field(
        default_factory=lambda: list[VersionRecommendation]()
    )
    risk: RiskAssessment
    readiness: MigrationReadinessScore
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}


class BreakingChange(BaseModel):
    """An incompatibility between two builds of an archive."""

    kind: BreakingChangeKind
    symbol: str
    description: str

    model_config = {"frozen": True}
