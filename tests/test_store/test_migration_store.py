"""Tests for report and plan persistence (SQL and in-memory)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nsmigrate.dependency.analyzer import DependencyAnalyzer
from nsmigrate.dependency.schemas import (
    Artifact,
    DependencyAnalysisReport,
    DependencyGraph,
    RiskAssessment,
)
from nsmigrate.refactoring.schemas import MigrationPlan, RefactoringPhase
from nsmigrate.store.fakes import InMemoryMigrationStore
from nsmigrate.store.migration_store import MigrationStore, SqlMigrationStore

T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _report(project: str, minutes: int = 0) -> DependencyAnalysisReport:
    graph = DependencyGraph()
    graph.add_node(
        Artifact(group="javax.servlet", name="servlet-api", version="2.5")
    )
    report = DependencyAnalyzer().analyze(graph, project)
    return report.model_copy(
        update={"created_at": T0 + timedelta(minutes=minutes)}
    )


def _plan(project: str, minutes: int = 0, phase: str = "A") -> MigrationPlan:
    return MigrationPlan(
        phases=[RefactoringPhase(phase_number=1, description=phase)],
        overall_risk=RiskAssessment(score=0.2),
        project_path=project,
        created_at=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture(params=["sql", "memory"])
def store(
    request: pytest.FixtureRequest,
    session_factory: async_sessionmaker[AsyncSession],
) -> MigrationStore:
    if request.param == "sql":
        return SqlMigrationStore(session_factory)
    return InMemoryMigrationStore()


class TestReports:
    async def test_latest_report_round_trips(
        self, store: MigrationStore
    ) -> None:
        report = _report("/p")
        saved_id = await store.save_report(report)

        loaded = await store.latest_report("/p")

        assert saved_id
        assert loaded is not None
        assert loaded.project_path == "/p"
        assert loaded.graph.node_count == 1
        assert loaded.recommendations == report.recommendations
        assert loaded.risk.score == pytest.approx(report.risk.score)

    async def test_latest_is_newest(self, store: MigrationStore) -> None:
        await store.save_report(_report("/p", minutes=5))
        await store.save_report(_report("/p", minutes=10))
        await store.save_report(_report("/p", minutes=1))

        loaded = await store.latest_report("/p")

        assert loaded is not None
        assert loaded.created_at.replace(tzinfo=UTC) == (
            T0 + timedelta(minutes=10)
        )

    async def test_unknown_project(self, store: MigrationStore) -> None:
        await store.save_report(_report("/p"))
        assert await store.latest_report("/q") is None

    async def test_list_reports_filter_and_order(
        self, store: MigrationStore
    ) -> None:
        await store.save_report(_report("/p", minutes=1))
        await store.save_report(_report("/q", minutes=2))
        await store.save_report(_report("/p", minutes=3))

        everything = await store.list_reports()
        only_p = await store.list_reports("/p")

        assert [r.project_path for r in everything] == ["/p", "/q", "/p"]
        assert len(only_p) == 2
        assert only_p[0].created_at > only_p[1].created_at


class TestPlans:
    async def test_latest_plan(self, store: MigrationStore) -> None:
        await store.save_plan(_plan("/p", minutes=1, phase="old"))
        await store.save_plan(_plan("/p", minutes=2, phase="new"))
        await store.save_plan(_plan("/q", minutes=3, phase="other"))

        loaded = await store.latest_plan("/p")

        assert loaded is not None
        assert loaded.phases[0].description == "new"

    async def test_missing_plan(self, store: MigrationStore) -> None:
        assert await store.latest_plan("/p") is None
