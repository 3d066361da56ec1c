"""CLI entry point: ``nsmigrate analyze|plan|refactor|verify``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from nsmigrate import __version__
from nsmigrate.config import Settings, create_store_engine
from nsmigrate.dependency.graph_builder import DependencyGraphError
from nsmigrate.logging_config import setup_logging
from nsmigrate.refactoring.planner import PlanningError
from nsmigrate.refactoring.recipes import RecipeLibrary
from nsmigrate.refactoring.schemas import RefactoringResult
from nsmigrate.services.migration_service import MigrationService
from nsmigrate.store.migration_store import SqlMigrationStore, create_schema
from nsmigrate.verification.runner import RuntimeVerifier
from nsmigrate.verification.schemas import VerificationOptions


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"nsmigrate {__version__}")
        return

    settings = Settings()
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    if args.command == "analyze":
        _run_analyze(args, settings)
    elif args.command == "plan":
        _run_plan(args, settings)
    elif args.command == "refactor":
        _run_refactor(args, settings)
    elif args.command == "verify":
        _run_verify(args, settings)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nsmigrate",
        description=(
            "Plan and apply API namespace migrations across a project."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log at DEBUG level",
    )

    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser(
        "analyze", help="Analyze a project's dependencies"
    )
    analyze.add_argument("project_path", help="Path to the project root")
    analyze.add_argument(
        "--no-search",
        action="store_true",
        help="Skip the remote metadata search",
    )
    analyze.add_argument(
        "--save",
        action="store_true",
        help="Persist the report to the configured database",
    )

    plan = sub.add_parser("plan", help="Create a phased migration plan")
    plan.add_argument("project_path", help="Path to the project root")
    plan.add_argument(
        "--no-search",
        action="store_true",
        help="Skip the remote metadata search",
    )
    plan.add_argument(
        "--save",
        action="store_true",
        help="Persist the report and plan to the configured database",
    )

    refactor = sub.add_parser(
        "refactor",
        help="Apply recipes to planned (or explicitly listed) files",
    )
    refactor.add_argument("project_path", help="Path to the project root")
    refactor.add_argument(
        "files",
        nargs="*",
        help="Files to refactor (default: every file in the plan)",
    )
    refactor.add_argument(
        "--recipes",
        "-r",
        default=None,
        help=(
            "Comma-separated recipe names for explicit files "
            f"(available: {', '.join(RecipeLibrary().names())})"
        ),
    )
    refactor.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    refactor.add_argument(
        "--rollback-on-failure",
        action="store_true",
        help="Restore the batch checkpoint if any file fails",
    )
    refactor.add_argument(
        "--no-search",
        action="store_true",
        help="Skip the remote metadata search while planning",
    )

    verify = sub.add_parser(
        "verify", help="Run a built archive and classify runtime errors"
    )
    verify.add_argument("archive", help="Path to the executable jar")
    verify.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before the process is killed",
    )
    verify.add_argument(
        "--max-memory-mb",
        type=int,
        default=None,
        help="JVM heap limit in MB",
    )
    verify.add_argument(
        "--jvm-arg",
        action="append",
        default=[],
        help="Extra JVM argument (repeatable)",
    )
    verify.add_argument(
        "--java",
        default="java",
        help="Java executable (default: java)",
    )
    return parser


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _require_dir(project_path: str) -> str:
    path = Path(project_path).resolve()
    if not path.is_dir():
        _fail(f"{path} is not a directory")
    return str(path)


def _service_settings(
    settings: Settings, args: argparse.Namespace
) -> Settings:
    if getattr(args, "no_search", False):
        return settings.model_copy(update={"metadata_search_enabled": False})
    return settings


async def _open_store(
    settings: Settings,
) -> tuple[AsyncEngine, SqlMigrationStore]:
    if settings.database_url.startswith("sqlite:///"):
        db_file = Path(settings.database_url[len("sqlite:///"):])
        db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = create_store_engine(settings.database_url)
    await create_schema(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine, SqlMigrationStore(session_factory)


def _run_analyze(args: argparse.Namespace, settings: Settings) -> None:
    """Execute the analyze command."""
    project_path = _require_dir(args.project_path)

    async def run() -> str:
        engine = None
        store = None
        if args.save:
            engine, store = await _open_store(settings)
        service = MigrationService.from_settings(
            _service_settings(settings, args), store=store
        )
        try:
            report = await service.analyze_project(project_path)
        finally:
            service.close()
            if engine is not None:
                await engine.dispose()
        return report.model_dump_json(indent=2)

    try:
        print(asyncio.run(run()))
    except DependencyGraphError as exc:
        _fail(str(exc))


def _run_plan(args: argparse.Namespace, settings: Settings) -> None:
    """Execute the plan command."""
    project_path = _require_dir(args.project_path)

    async def run() -> str:
        engine = None
        store = None
        if args.save:
            engine, store = await _open_store(settings)
        service = MigrationService.from_settings(
            _service_settings(settings, args), store=store
        )
        try:
            plan = await service.create_migration_plan(project_path)
        finally:
            service.close()
            if engine is not None:
                await engine.dispose()
        return plan.model_dump_json(indent=2)

    try:
        print(asyncio.run(run()))
    except (DependencyGraphError, PlanningError) as exc:
        _fail(str(exc))


def _run_refactor(args: argparse.Namespace, settings: Settings) -> None:
    """Execute the refactor command, phase by phase unless files given."""
    project_path = _require_dir(args.project_path)
    if args.files and not args.recipes:
        _fail("--recipes is required when files are listed")
    if args.recipes:
        requested = [r.strip() for r in args.recipes.split(",") if r.strip()]
        unknown = [r for r in requested if RecipeLibrary().get(r) is None]
        if unknown:
            _fail(f"unknown recipe(s): {', '.join(unknown)}")
    else:
        requested = []

    async def run() -> list[RefactoringResult]:
        service = MigrationService.from_settings(
            _service_settings(settings, args)
        )
        options = service.default_options(
            project_path, dry_run=args.dry_run
        )
        results: list[RefactoringResult] = []
        try:
            if args.files:
                files = [str(Path(f).resolve()) for f in args.files]
                results.append(
                    await service.refactor_batch(files, requested, options)
                )
            else:
                plan = await service.create_migration_plan(project_path)
                for phase in plan.phases:
                    if not phase.files:
                        continue
                    service.set_current_phase(
                        project_path, phase.phase_number
                    )
                    results.append(
                        await service.refactor_batch(
                            phase.files, phase.recipes, options
                        )
                    )
            if args.rollback_on_failure and any(
                r.has_failures for r in results
            ):
                for result in reversed(results):
                    if result.checkpoint_id is not None:
                        service.rollback(result.checkpoint_id)
        finally:
            service.close()
        return results

    try:
        results = asyncio.run(run())
    except (DependencyGraphError, PlanningError) as exc:
        _fail(str(exc))
        return
    print(
        json.dumps(
            [r.model_dump(mode="json") for r in results], indent=2
        )
    )
    if any(r.has_failures for r in results):
        sys.exit(1)


def _run_verify(args: argparse.Namespace, settings: Settings) -> None:
    """Execute the verify command."""
    options = VerificationOptions(
        timeout_seconds=args.timeout or settings.verification_timeout_seconds,
        max_memory_mb=(
            args.max_memory_mb or settings.verification_max_memory_mb
        ),
        jvm_args=args.jvm_arg,
    )
    verifier = RuntimeVerifier(
        args.java, old_root=settings.old_root, new_root=settings.new_root
    )
    result = asyncio.run(verifier.verify(args.archive, options))
    print(result.model_dump_json(indent=2))
    if not result.passed:
        sys.exit(1)
