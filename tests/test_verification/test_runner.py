"""Tests for archive verification with a mocked JVM process."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from nsmigrate.constants import ErrorCategory, VerificationStatus
from nsmigrate.verification.runner import RuntimeVerifier, _status_for
from nsmigrate.verification.schemas import VerificationOptions

SPAWN = "nsmigrate.verification.runner.asyncio.create_subprocess_exec"


class _FakeProcess:
    def __init__(
        self,
        returncode: int,
        stdout: bytes = b"",
        stderr: bytes = b"",
        hang: bool = False,
    ) -> None:
        self._final = returncode
        self.returncode: int | None = None if hang else returncode
        self._stdout = stdout
        self._stderr = stderr
        self._hang = hang
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        if self._hang:
            await asyncio.sleep(10)
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode if self.returncode is not None else self._final


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    path = tmp_path / "app.jar"
    path.write_bytes(b"PK\x03\x04")
    return path


@pytest.mark.parametrize(
    ("exit_code", "errors", "status"),
    [
        (None, 0, VerificationStatus.UNKNOWN),
        (1, 0, VerificationStatus.FAILED),
        (0, 2, VerificationStatus.PARTIAL),
        (0, 0, VerificationStatus.PASSED),
    ],
)
def test_status_for(
    exit_code: int | None, errors: int, status: VerificationStatus
) -> None:
    assert _status_for(exit_code, errors) == status


def test_build_command(archive: Path) -> None:
    options = VerificationOptions(
        max_memory_mb=512,
        jvm_args=["-Dspring.profiles.active=test"],
        program_args=["--dry"],
    )
    cmd = RuntimeVerifier("/opt/jdk/bin/java").build_command(archive, options)
    assert cmd == [
        "/opt/jdk/bin/java",
        "-Xmx512m",
        "-Dspring.profiles.active=test",
        "-jar",
        str(archive),
        "--dry",
    ]


class TestVerify:
    async def test_clean_run_passes(self, archive: Path) -> None:
        proc = _FakeProcess(0, stdout=b"Started in 1.2s\n")
        with patch(SPAWN, AsyncMock(return_value=proc)) as spawn:
            result = await RuntimeVerifier().verify(archive)

        assert result.passed
        assert result.metrics.exit_code == 0
        assert result.stdout == "Started in 1.2s\n"
        args: Any = spawn.call_args.args
        assert args[0] == "java"
        assert "-Xmx2048m" in args

    async def test_migration_error_fails(self, archive: Path) -> None:
        stderr = (
            b"Exception in thread \"main\" java.lang.NoClassDefFoundError: "
            b"javax/servlet/Filter\n\tat com.acme.Main.main(Main.java:5)\n"
        )
        proc = _FakeProcess(1, stderr=stderr)
        with patch(SPAWN, AsyncMock(return_value=proc)):
            result = await RuntimeVerifier().verify(archive)

        assert result.status == VerificationStatus.FAILED
        assert len(result.errors) == 1
        assert result.errors[0].category == (
            ErrorCategory.NAMESPACE_MIGRATION
        )
        assert result.migration_errors == result.errors

    async def test_errors_with_zero_exit_are_partial(
        self, archive: Path
    ) -> None:
        proc = _FakeProcess(
            0, stderr=b"java.lang.ClassCastException: a.B cannot be cast\n"
        )
        with patch(SPAWN, AsyncMock(return_value=proc)):
            result = await RuntimeVerifier().verify(archive)
        assert result.status == VerificationStatus.PARTIAL

    async def test_timeout_kills_process(self, archive: Path) -> None:
        proc = _FakeProcess(0, hang=True)
        options = VerificationOptions(timeout_seconds=0.05)
        with patch(SPAWN, AsyncMock(return_value=proc)):
            result = await RuntimeVerifier().verify(archive, options)

        assert result.status == VerificationStatus.TIMEOUT
        assert result.metrics.timed_out
        assert proc.killed
        assert not result.passed

    async def test_missing_java_is_unknown(self, archive: Path) -> None:
        spawn = AsyncMock(side_effect=FileNotFoundError("java"))
        with patch(SPAWN, spawn):
            result = await RuntimeVerifier().verify(archive)
        assert result.status == VerificationStatus.UNKNOWN
        assert "Could not start java" in result.warnings[0]

    async def test_missing_archive_is_unknown(self, tmp_path: Path) -> None:
        spawn = AsyncMock()
        with patch(SPAWN, spawn):
            result = await RuntimeVerifier().verify(tmp_path / "none.jar")
        assert result.status == VerificationStatus.UNKNOWN
        spawn.assert_not_called()
