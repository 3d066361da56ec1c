"""In-memory MigrationStore for tests and storage-free runs.

No SQLAlchemy, no I/O. Saves are appended; "latest" is the newest
``created_at``, ties resolved by save order.
"""

from __future__ import annotations

import uuid

from nsmigrate.dependency.schemas import DependencyAnalysisReport
from nsmigrate.refactoring.schemas import MigrationPlan


class InMemoryMigrationStore:
    """List-backed MigrationStore."""

    def __init__(self) -> None:
        self._reports: list[DependencyAnalysisReport] = []
        self._plans: list[MigrationPlan] = []

    async def save_report(self, report: DependencyAnalysisReport) -> str:
        self._reports.append(report)
        return str(uuid.uuid4())

    async def save_plan(self, plan: MigrationPlan) -> str:
        self._plans.append(plan)
        return str(uuid.uuid4())

    async def latest_report(
        self, project_path: str
    ) -> DependencyAnalysisReport | None:
        matches = [r for r in self._reports if r.project_path == project_path]
        return max(
            reversed(matches), key=lambda r: r.created_at, default=None
        )

    async def latest_plan(self, project_path: str) -> MigrationPlan | None:
        matches = [p for p in self._plans if p.project_path == project_path]
        return max(
            reversed(matches), key=lambda p: p.created_at, default=None
        )

    async def list_reports(
        self, project_path: str | None = None
    ) -> list[DependencyAnalysisReport]:
        reports = [
            r
            for r in self._reports
            if project_path is None or r.project_path == project_path
        ]
        return sorted(reports, key=lambda r: r.created_at, reverse=True)
