"""SQLAlchemy ORM rows for persisted analysis reports and plans."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Float, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class AnalysisReportRecord(Base):
    __tablename__ = "analysis_reports"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_path: Mapped[str] = mapped_column(String(1000), index=True)
    artifact_count: Mapped[int] = mapped_column(Integer, default=0)
    old_namespace_count: Mapped[int] = mapped_column(Integer, default=0)
    new_namespace_count: Mapped[int] = mapped_column(Integer, default=0)
    mixed_count: Mapped[int] = mapped_column(Integer, default=0)
    blocker_count: Mapped[int] = mapped_column(Integer, default=0)
    readiness_score: Mapped[float] = mapped_column(Float)
    risk_level: Mapped[str] = mapped_column(String(20))
    report_json: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        index=True,
    )


class MigrationPlanRecord(Base):
    __tablename__ = "migration_plans"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_path: Mapped[str] = mapped_column(String(1000), index=True)
    phase_count: Mapped[int] = mapped_column(Integer)
    file_count: Mapped[int] = mapped_column(Integer)
    risk_score: Mapped[float] = mapped_column(Float)
    plan_json: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        index=True,
    )
