"""End-to-end tests for the MigrationService facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from nsmigrate.config import Settings
from nsmigrate.constants import MigrationState, Namespace
from nsmigrate.services.migration_service import MigrationService
from nsmigrate.store.fakes import InMemoryMigrationStore


@pytest.fixture
def store() -> InMemoryMigrationStore:
    return InMemoryMigrationStore()


@pytest.fixture
def service(store: InMemoryMigrationStore) -> MigrationService:
    settings = Settings(metadata_search_enabled=False, batch_max_concurrency=2)
    return MigrationService.from_settings(settings, store=store)


class TestAnalysisAndPlanning:
    async def test_analyze_saves_report(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        report = await service.analyze_project(str(legacy_project))

        latest = await service.latest_report(str(legacy_project))
        assert latest is not None
        assert latest.created_at == report.created_at
        assert len(report.recommendations) == 2

    async def test_plan_starts_progress(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        project = str(legacy_project)
        plan = await service.create_migration_plan(project)

        progress = service.get_progress(project)
        assert progress is not None
        assert progress.current_state == MigrationState.NOT_STARTED
        assert progress.statistics.total_files == plan.total_file_count
        assert await service.latest_plan(project) == plan

    async def test_without_store_history_is_empty(
        self, legacy_project: Path
    ) -> None:
        service = MigrationService.from_settings(
            Settings(metadata_search_enabled=False)
        )
        await service.analyze_project(str(legacy_project))
        assert await service.latest_report(str(legacy_project)) is None
        assert await service.latest_plan(str(legacy_project)) is None


class TestRefactoring:
    async def test_full_migration_completes(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        project = str(legacy_project)
        plan = await service.create_migration_plan(project)
        options = service.default_options(project)

        for phase in plan.phases:
            service.set_current_phase(project, phase.phase_number)
            result = await service.refactor_batch(
                phase.files, phase.recipes, options
            )
            assert result.is_successful, result.failures

        progress = service.get_progress(project)
        assert progress is not None
        assert progress.current_state == MigrationState.COMPLETE
        assert progress.statistics.pending_files == 0
        assert progress.current_phase == plan.phases[-1].phase_number
        assert len(progress.checkpoints) == plan.total_file_count

        source = legacy_project / "src/main/java/com/acme/shop"
        servlet = (source / "CartServlet.java").read_text()
        assert "import jakarta.servlet.http.HttpServlet;" in servlet
        assert "import javax.annotation.processing.Processor;" in servlet
        pom = (legacy_project / "pom.xml").read_text()
        assert "<artifactId>jakarta.servlet-api</artifactId>" in pom
        persistence = (
            legacy_project / "src/main/resources/META-INF/persistence.xml"
        ).read_text()
        assert 'version="3.0"' in persistence
        # build output untouched
        stale = (legacy_project / "target/classes/Stale.java").read_text()
        assert "javax.servlet" in stale

        reanalysed = await service.analyze_project(project)
        entries = reanalysed.namespace_map.entries
        assert entries["jakarta.servlet:jakarta.servlet-api:6.0.0"] == (
            Namespace.NEW_NAMESPACE
        )
        assert entries[
            "jakarta.persistence:jakarta.persistence-api:3.1.0"
        ] == Namespace.NEW_NAMESPACE
        assert Namespace.OLD_NAMESPACE not in entries.values()
        assert Namespace.MIXED not in entries.values()
        assert reanalysed.recommendations == []

    async def test_second_pass_changes_nothing(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        project = str(legacy_project)
        plan = await service.create_migration_plan(project)
        options = service.default_options(project)
        for phase in plan.phases:
            await service.refactor_batch(phase.files, phase.recipes, options)

        for phase in plan.phases:
            again = await service.refactor_batch(
                phase.files, phase.recipes, options
            )
            assert again.is_successful, again.failures
            assert again.statistics.total_changes == 0
            assert again.statistics.successful_files == len(phase.files)

    async def test_dry_run_records_nothing(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        project = str(legacy_project)
        plan = await service.create_migration_plan(project)
        source_phase = plan.phases[1]
        before = [Path(f).read_text() for f in source_phase.files]

        result = await service.refactor_batch(
            source_phase.files,
            source_phase.recipes,
            service.default_options(project, dry_run=True),
        )

        assert result.dry_run
        assert result.statistics.total_changes > 0
        assert [Path(f).read_text() for f in source_phase.files] == before
        progress = service.get_progress(project)
        assert progress is not None
        assert progress.statistics.refactored_files == 0

    async def test_rollback_restores_batch(
        self, service: MigrationService, legacy_project: Path
    ) -> None:
        project = str(legacy_project)
        plan = await service.create_migration_plan(project)
        source_phase = plan.phases[1]
        before = [Path(f).read_text() for f in source_phase.files]

        result = await service.refactor_batch(
            source_phase.files,
            source_phase.recipes,
            service.default_options(project),
        )
        assert result.checkpoint_id is not None
        rollback = service.rollback(result.checkpoint_id)

        assert all(r.success for r in rollback)
        assert [Path(f).read_text() for f in source_phase.files] == before

    async def test_batch_without_plan_starts_tracking(
        self, service: MigrationService, tmp_path: Path
    ) -> None:
        path = tmp_path / "A.java"
        path.write_text("import javax.inject.Inject;\n")

        await service.refactor_batch(
            [str(path)],
            ["AddJakartaNamespace"],
            service.default_options(str(tmp_path)),
        )

        progress = service.get_progress(str(tmp_path))
        assert progress is not None
        assert progress.current_state == MigrationState.COMPLETE
        assert service.validate_refactoring(str(path)).is_valid
