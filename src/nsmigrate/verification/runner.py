"""Run a built archive in an isolated JVM and classify what went wrong."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from pathlib import Path

from nsmigrate.constants import NEW_ROOT, OLD_ROOT, VerificationStatus
from nsmigrate.verification.errors import analyze_output
from nsmigrate.verification.schemas import (
    ExecutionMetrics,
    VerificationOptions,
    VerificationResult,
)

logger = logging.getLogger(__name__)


def _status_for(
    exit_code: int | None, error_count: int
) -> VerificationStatus:
    if exit_code is None:
        return VerificationStatus.UNKNOWN
    if exit_code != 0:
        return VerificationStatus.FAILED
    if error_count:
        return VerificationStatus.PARTIAL
    return VerificationStatus.PASSED


class RuntimeVerifier:
    def __init__(
        self,
        java_executable: str = "java",
        *,
        old_root: str = OLD_ROOT,
        new_root: str = NEW_ROOT,
    ) -> None:
        self._java = java_executable
        self._old_root = old_root
        self._new_root = new_root

    def build_command(
        self, archive: Path, options: VerificationOptions
    ) -> list[str]:
        return [
            self._java,
            f"-Xmx{options.max_memory_mb}m",
            *options.jvm_args,
            "-jar",
            str(archive),
            *options.program_args,
        ]

    async def verify(
        self,
        archive: str | Path,
        options: VerificationOptions | None = None,
    ) -> VerificationResult:
        """Never raises for process-level failures; they become a status."""
        options = options or VerificationOptions()
        path = Path(archive)
        if not path.is_file():
            return VerificationResult(
                archive_path=str(path),
                status=VerificationStatus.UNKNOWN,
                warnings=[f"Archive not found: {path}"],
            )

        cmd = self.build_command(path, options)
        stdout_target = (
            asyncio.subprocess.PIPE
            if options.capture_stdout
            else asyncio.subprocess.DEVNULL
        )
        stderr_target = (
            asyncio.subprocess.PIPE
            if options.capture_stderr
            else asyncio.subprocess.DEVNULL
        )
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd, stdout=stdout_target, stderr=stderr_target
            )
        except OSError as exc:
            logger.warning(
                "event=verify_spawn_failed archive=%s error=%s", path, exc
            )
            return VerificationResult(
                archive_path=str(path),
                status=VerificationStatus.UNKNOWN,
                warnings=[f"Could not start {self._java}: {exc}"],
            )

        try:
            out, err = await asyncio.wait_for(
                proc.communicate(), timeout=options.timeout_seconds
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            elapsed = timedelta(seconds=time.monotonic() - started)
            logger.warning(
                "event=verify_timeout archive=%s timeout=%s",
                path,
                options.timeout_seconds,
            )
            return VerificationResult(
                archive_path=str(path),
                status=VerificationStatus.TIMEOUT,
                warnings=[
                    f"Process killed after {options.timeout_seconds}s"
                ],
                metrics=ExecutionMetrics(
                    execution_time=elapsed,
                    exit_code=proc.returncode,
                    timed_out=True,
                ),
            )

        elapsed = timedelta(seconds=time.monotonic() - started)
        stdout = (out or b"").decode(errors="replace")
        stderr = (err or b"").decode(errors="replace")
        errors = analyze_output(
            f"{stderr}\n{stdout}",
            old_root=self._old_root,
            new_root=self._new_root,
        )
        status = _status_for(proc.returncode, len(errors))
        logger.info(
            "event=verify_done archive=%s status=%s exit=%s errors=%d "
            "elapsed_s=%.2f",
            path,
            status,
            proc.returncode,
            len(errors),
            elapsed.total_seconds(),
        )
        return VerificationResult(
            archive_path=str(path),
            status=status,
            errors=errors,
            metrics=ExecutionMetrics(
                execution_time=elapsed, exit_code=proc.returncode
            ),
            stdout=stdout,
            stderr=stderr,
        )
