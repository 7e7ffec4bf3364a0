from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from evergreen_installer.application.exceptions import ExecutionError
from evergreen_installer.infrastructure.executor import (
    MSIEXEC,
    SubprocessInstallExecutor,
    build_argv,
)


def test_msi_packages_are_installed_through_msiexec():
    argv = build_argv(Path("work/Vendor.MSI"), ["/qn", "/norestart"])

    assert argv == [MSIEXEC, "/i", str(Path("work/Vendor.MSI")), "/qn", "/norestart"]


def test_executables_are_launched_directly():
    assert build_argv(Path("setup.exe"), ("/S",)) == ["setup.exe", "/S"]


def test_run_returns_the_exit_code_without_raising():
    executor = SubprocessInstallExecutor()

    exit_code = asyncio.run(
        executor.run(Path(sys.executable), ["-c", "import sys; sys.exit(3)"])
    )

    assert exit_code == 3


def test_run_waits_for_the_child_to_finish(tmp_path: Path):
    marker = tmp_path / "done"
    script = f"import pathlib, time; time.sleep(0.2); pathlib.Path({str(marker)!r}).touch()"

    exit_code = asyncio.run(
        SubprocessInstallExecutor().run(Path(sys.executable), ["-c", script])
    )

    assert exit_code == 0
    assert marker.exists()


def test_missing_binary_raises_execution_error(tmp_path: Path):
    with pytest.raises(ExecutionError, match="Could not start"):
        asyncio.run(
            SubprocessInstallExecutor().run(tmp_path / "missing.exe", ["/quiet"])
        )
