"""Persistence for analysis reports and migration plans.

One row per save, keyed by project path and timestamp; "latest" means
the most recent save. Payloads are stored as pydantic JSON and
re-validated on load.
"""

from __future__ import annotations

import logging
import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from nsmigrate.constants import Namespace
from nsmigrate.dependency.schemas import DependencyAnalysisReport
from nsmigrate.refactoring.schemas import MigrationPlan
from nsmigrate.store.models import (
    AnalysisReportRecord,
    Base,
    MigrationPlanRecord,
)

logger = logging.getLogger(__name__)


class MigrationStore(Protocol):
    async def save_report(self, report: DependencyAnalysisReport) -> str: ...
    async def save_plan(self, plan: MigrationPlan) -> str: ...
    async def latest_report(
        self, project_path: str
    ) -> DependencyAnalysisReport | None: ...
    async def latest_plan(self, project_path: str) -> MigrationPlan | None: ...
    async def list_reports(
        self, project_path: str | None = None
    ) -> list[DependencyAnalysisReport]: ...


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _report_record(report: DependencyAnalysisReport) -> AnalysisReportRecord:
    ns = report.namespace_map
    return AnalysisReportRecord(
        id=str(uuid.uuid4()),
        project_path=report.project_path,
        artifact_count=report.graph.node_count,
        old_namespace_count=ns.count(Namespace.OLD_NAMESPACE),
        new_namespace_count=ns.count(Namespace.NEW_NAMESPACE),
        mixed_count=ns.count(Namespace.MIXED),
        blocker_count=len(report.blockers),
        readiness_score=report.readiness.score,
        risk_level=report.risk.level,
        report_json=report.model_dump_json(),
        created_at=report.created_at,
    )


class SqlMigrationStore:
    """MigrationStore that owns short-lived sessions per operation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._session_factory = session_factory

    async def save_report(self, report: DependencyAnalysisReport) -> str:
        record = _report_record(report)
        record_id = record.id
        async with self._session_factory() as session, session.begin():
            session.add(record)
        logger.info(
            "event=report_saved project=%s id=%s risk=%s",
            report.project_path,
            record_id,
            report.risk.level,
        )
        return record_id

    async def save_plan(self, plan: MigrationPlan) -> str:
        record = MigrationPlanRecord(
            id=str(uuid.uuid4()),
            project_path=plan.project_path,
            phase_count=plan.phase_count,
            file_count=plan.total_file_count,
            risk_score=plan.overall_risk.score,
            plan_json=plan.model_dump_json(),
            created_at=plan.created_at,
        )
        record_id = record.id
        async with self._session_factory() as session, session.begin():
            session.add(record)
        logger.info(
            "event=plan_saved project=%s id=%s phases=%d",
            plan.project_path,
            record_id,
            plan.phase_count,
        )
        return record_id

    async def latest_report(
        self, project_path: str
    ) -> DependencyAnalysisReport | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AnalysisReportRecord.report_json)
                .where(AnalysisReportRecord.project_path == project_path)
                .order_by(AnalysisReportRecord.created_at.desc())
                .limit(1)
            )
            payload = result.scalar_one_or_none()
        if payload is None:
            return None
        return DependencyAnalysisReport.model_validate_json(payload)

    async def latest_plan(self, project_path: str) -> MigrationPlan | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MigrationPlanRecord.plan_json)
                .where(MigrationPlanRecord.project_path == project_path)
                .order_by(MigrationPlanRecord.created_at.desc())
                .limit(1)
            )
            payload = result.scalar_one_or_none()
        if payload is None:
            return None
        return MigrationPlan.model_validate_json(payload)

    async def list_reports(
        self, project_path: str | None = None
    ) -> list[DependencyAnalysisReport]:
        """Newest first, optionally filtered to one project."""
        stmt = select(AnalysisReportRecord.report_json).order_by(
            AnalysisReportRecord.created_at.desc()
        )
        if project_path is not None:
            stmt = stmt.where(
                AnalysisReportRecord.project_path == project_path
            )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            payloads = list(result.scalars().all())
        return [
            DependencyAnalysisReport.model_validate_json(p) for p in payloads
        ]
