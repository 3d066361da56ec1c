"""Turn a dependency analysis report into an ordered migration plan.

Files are partitioned by concern, each concern becomes a phase, and
phases are ordered by a stable topological sort over their declared
dependencies. A cyclic or dangling dependency is a fatal
:class:`PlanningError`; no partial plan is ever returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from nsmigrate.constants import (
    FILE_MINUTES,
    FILE_VOLUME_SATURATION,
    NEW_ROOT,
    PHASE_BASE_MINUTES,
    ActionType,
    FileCategory,
    Namespace,
)
from nsmigrate.dependency.blockers import blocker_pressure, weighted_risk
from nsmigrate.dependency.schemas import (
    DependencyAnalysisReport,
    RiskAssessment,
)
from nsmigrate.refactoring.recipes import RecipeLibrary
from nsmigrate.refactoring.scanner import (
    NamespaceScanner,
    categorize,
    discover_files,
)
from nsmigrate.refactoring.schemas import (
    MigrationPlan,
    PhaseAction,
    RefactoringPhase,
)

logger = logging.getLogger(__name__)

BUILD_PHASE = "Update build dependencies"
SOURCE_PHASE = "Migrate source imports"
CONFIG_PHASE = "Update XML configuration namespaces"
RESOURCE_PHASE = "Migrate resources and generated files"
VERIFY_PHASE = "Verify migration readiness"

_MAX_LISTED_CHANGES = 5


class PlanningError(Exception):
    """Plan cannot be produced: cyclic phases or a malformed report."""


@dataclass(frozen=True)
class PhaseTemplate:
    name: str
    category: FileCategory
    action_type: ActionType
    dependencies: tuple[str, ...] = ()


DEFAULT_PHASE_TEMPLATES: tuple[PhaseTemplate, ...] = (
    PhaseTemplate(
        BUILD_PHASE, FileCategory.BUILD, ActionType.UPDATE_DEPENDENCY
    ),
    PhaseTemplate(
        SOURCE_PHASE,
        FileCategory.SOURCE,
        ActionType.UPDATE_IMPORTS,
        (BUILD_PHASE,),
    ),
    PhaseTemplate(
        CONFIG_PHASE,
        FileCategory.CONFIG,
        ActionType.UPDATE_XML_NAMESPACE,
        (BUILD_PHASE,),
    ),
    PhaseTemplate(
        RESOURCE_PHASE,
        FileCategory.RESOURCE,
        ActionType.UPDATE_CLASS_REFERENCES,
        (SOURCE_PHASE,),
    ),
)

_ORDER_RANK: dict[FileCategory | None, int] = {
    FileCategory.BUILD: 0,
    FileCategory.SOURCE: 1,
    FileCategory.CONFIG: 2,
    FileCategory.RESOURCE: 2,
    None: 3,
}


# ── Ordering ─────────────────────────────────────────────


def topological_order(
    names: Sequence[str], dependencies: dict[str, Sequence[str]]
) -> list[str]:
    """Stable Kahn's algorithm: ties keep their input order."""
    if len(set(names)) != len(names):
        raise PlanningError("Duplicate phase names")
    known = set(names)
    for name in names:
        for dep in dependencies.get(name, ()):
            if dep not in known:
                msg = f"Phase '{name}' depends on unknown phase '{dep}'"
                raise PlanningError(msg)

    remaining = {n: set(dependencies.get(n, ())) for n in names}
    ordered: list[str] = []
    while remaining:
        ready = [n for n in names if n in remaining and not remaining[n]]
        if not ready:
            cycle = ", ".join(n for n in names if n in remaining)
            msg = f"Cyclic phase dependency among: {cycle}"
            raise PlanningError(msg)
        head = ready[0]
        ordered.append(head)
        del remaining[head]
        for deps in remaining.values():
            deps.discard(head)
    return ordered


def order_phases(
    templates: Sequence[PhaseTemplate],
) -> list[PhaseTemplate]:
    by_name = {t.name: t for t in templates}
    names = [t.name for t in templates]
    order = topological_order(
        names, {t.name: t.dependencies for t in templates}
    )
    return [by_name[n] for n in order]


def check_phase_order(phases: Sequence[RefactoringPhase]) -> None:
    """Raise PlanningError unless every dependency precedes its phase."""
    names = [p.description for p in phases]
    topological_order(names, {p.description: p.dependencies for p in phases})
    seen: set[str] = set()
    for phase in phases:
        for dep in phase.dependencies:
            if dep not in seen:
                msg = (
                    f"Phase '{phase.description}' is ordered before its "
                    f"dependency '{dep}'"
                )
                raise PlanningError(msg)
        seen.add(phase.description)


def determine_optimal_order(files: Iterable[str]) -> list[str]:
    """Build descriptors, then sources, then config and resources.

    Stable: files of equal rank keep their input order.
    """
    return sorted(files, key=lambda f: _ORDER_RANK[categorize(f)])


def _prune_empty(
    templates: Sequence[PhaseTemplate], keep: set[str]
) -> list[PhaseTemplate]:
    """Drop phases not in ``keep``; dependents inherit their deps."""
    deps = {t.name: t.dependencies for t in templates}

    def effective(name: str, trail: frozenset[str]) -> list[str]:
        if name in trail:
            msg = f"Cyclic phase dependency through '{name}'"
            raise PlanningError(msg)
        if name in keep:
            return [name]
        out: list[str] = []
        for dep in deps.get(name, ()):
            for d in effective(dep, trail | {name}):
                if d not in out:
                    out.append(d)
        return out

    pruned: list[PhaseTemplate] = []
    for t in templates:
        if t.name not in keep:
            continue
        new_deps: list[str] = []
        for dep in t.dependencies:
            for d in effective(dep, frozenset({t.name})):
                if d not in new_deps:
                    new_deps.append(d)
        pruned.append(
            PhaseTemplate(t.name, t.category, t.action_type, tuple(new_deps))
        )
    return pruned


# ── Planner ──────────────────────────────────────────────


class MigrationPlanner:
    def __init__(
        self,
        scanner: NamespaceScanner | None = None,
        library: RecipeLibrary | None = None,
        *,
        templates: Sequence[PhaseTemplate] = DEFAULT_PHASE_TEMPLATES,
        skip_dirs: Iterable[str] | None = None,
        new_root: str = NEW_ROOT,
    ) -> None:
        self._scanner = scanner or NamespaceScanner()
        self._library = library or RecipeLibrary()
        self._templates = tuple(templates)
        self._skip_dirs = skip_dirs
        self._new_root = new_root
        # fail fast on a bad template set, before any project is read
        order_phases(self._templates)

    def create_plan(
        self, project_path: str, report: DependencyAnalysisReport
    ) -> MigrationPlan:
        if not isinstance(report, DependencyAnalysisReport):
            msg = f"Expected DependencyAnalysisReport, got {type(report)!r}"
            raise PlanningError(msg)
        root = Path(project_path)
        if not root.is_dir():
            msg = f"Project path is not a directory: {project_path}"
            raise PlanningError(msg)

        candidates = discover_files(root, self._skip_dirs)
        groups, hits = self._partition(candidates, report)

        templates = _prune_empty(
            self._templates,
            {t.name for t in self._templates if groups.get(t.category)},
        )
        ordered = order_phases(templates)

        phases: list[RefactoringPhase] = []
        for number, template in enumerate(ordered, start=1):
            files = groups[template.category]
            phases.append(
                self._build_phase(number, template, files, hits, report)
            )

        if not phases:
            phases.append(
                RefactoringPhase(
                    phase_number=1,
                    description=VERIFY_PHASE,
                    estimated_duration=timedelta(minutes=PHASE_BASE_MINUTES),
                    risk_factors=[],
                )
            )
        check_phase_order(phases)

        file_sequence = [f for p in phases for f in p.files]
        duration = sum(
            (p.estimated_duration for p in phases), timedelta(0)
        )
        overall = self._overall_risk(
            report, phases, len(file_sequence), len(candidates)
        )
        plan = MigrationPlan(
            phases=phases,
            file_sequence=file_sequence,
            estimated_duration=duration,
            overall_risk=overall,
            prerequisites=self._prerequisites(report),
            project_path=str(root),
        )
        logger.info(
            "event=plan_created project=%s phases=%d files=%d risk=%.2f",
            project_path,
            plan.phase_count,
            plan.total_file_count,
            overall.score,
        )
        return plan

    def _partition(
        self,
        candidates: Sequence[Path],
        report: DependencyAnalysisReport,
    ) -> tuple[dict[FileCategory, list[str]], dict[str, list[str]]]:
        needs_dependency_work = bool(report.recommendations) or any(
            ns in (Namespace.OLD_NAMESPACE, Namespace.MIXED)
            for ns in report.namespace_map.entries.values()
        )
        groups: dict[FileCategory, list[str]] = {}
        hits: dict[str, list[str]] = {}
        for path in candidates:
            category = categorize(path)
            if category is None:
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning(
                    "event=plan_file_unreadable file=%s error=%s", path, exc
                )
                continue
            found = self._scanner.old_references(content)
            if found or (
                category == FileCategory.BUILD and needs_dependency_work
            ):
                key = str(path)
                groups.setdefault(category, []).append(key)
                hits[key] = list(dict.fromkeys(h.token for h in found))
        for category, files in groups.items():
            groups[category] = determine_optimal_order(files)
        return groups, hits

    def _build_phase(
        self,
        number: int,
        template: PhaseTemplate,
        files: list[str],
        hits: dict[str, list[str]],
        report: DependencyAnalysisReport,
    ) -> RefactoringPhase:
        if template.category == FileCategory.BUILD:
            dependency_changes = [
                f"{r.current_artifact.coordinate} -> "
                f"{r.recommended_artifact.identifier}"
                for r in report.recommendations
                if r.recommended_artifact is not None
            ]
        else:
            dependency_changes = []

        actions = [
            PhaseAction(
                file_path=f,
                action_type=template.action_type,
                specific_changes=(
                    dependency_changes or hits.get(f, [])
                )[:_MAX_LISTED_CHANGES],
            )
            for f in files
        ]
        minutes = PHASE_BASE_MINUTES + FILE_MINUTES[template.category] * len(
            files
        )
        risk_factors: list[str] = []
        if template.category == FileCategory.BUILD and report.blockers:
            risk_factors.append(
                f"{len(report.blockers)} dependencies have no "
                f"{self._new_root} equivalent"
            )
        if len(files) > FILE_VOLUME_SATURATION // 10:
            risk_factors.append(
                f"{len(files)} files in '{template.name}'"
            )
        return RefactoringPhase(
            phase_number=number,
            description=template.name,
            files=files,
            actions=actions,
            recipes=self._library.for_category(template.category),
            dependencies=list(template.dependencies),
            estimated_duration=timedelta(minutes=minutes),
            risk_factors=risk_factors,
        )

    def _overall_risk(
        self,
        report: DependencyAnalysisReport,
        phases: Sequence[RefactoringPhase],
        affected_files: int,
        scanned_files: int,
    ) -> RiskAssessment:
        namespace_map = report.namespace_map
        old = namespace_map.count(Namespace.OLD_NAMESPACE)
        new = namespace_map.count(Namespace.NEW_NAMESPACE)
        mixed = namespace_map.count(Namespace.MIXED) > 0 or (
            old > 0 and new > 0
        )
        affected_ratio = (
            affected_files / scanned_files if scanned_files else 0.0
        )
        score = weighted_risk(
            affected_ratio, mixed, blocker_pressure(len(report.blockers))
        )
        volume = min(1.0, affected_files / FILE_VOLUME_SATURATION)
        score = max(report.risk.score, score, volume * 0.5)

        factors = list(report.risk.risk_factors)
        for phase in phases:
            factors.extend(
                f for f in phase.risk_factors if f not in factors
            )
        mitigations = [
            *report.risk.mitigations,
            "Create checkpoints so each phase can be rolled back",
            "Run the test suite after every phase",
        ]
        return RiskAssessment(
            score=min(1.0, score),
            risk_factors=factors,
            mitigations=mitigations,
        )

    def _prerequisites(
        self, report: DependencyAnalysisReport
    ) -> list[str]:
        prerequisites = [
            "Commit or stash local changes so the tree starts clean",
            f"Target runtime and build tooling support the "
            f"{self._new_root} namespace",
        ]
        prerequisites.extend(
            f"Resolve blocker: {b.artifact.coordinate}"
            for b in report.blockers
        )
        return prerequisites
