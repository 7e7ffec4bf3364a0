"""Child-process implementation of the InstallExecutor port."""

import asyncio
import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from ..application.domain import InstallExecutor
from ..application.exceptions import ExecutionError

MSIEXEC = "msiexec.exe"


def build_argv(executable_path: Path, arguments: Sequence[str]) -> List[str]:
    """
    The command line for an installer.

    Windows Installer packages are not executables and are handed to msiexec;
    anything else is launched directly.
    """
    path = str(executable_path)
    if Path(path).suffix.lower() == ".msi":
        return [MSIEXEC, "/i", path, *arguments]
    return [path, *arguments]


class SubprocessInstallExecutor(InstallExecutor):
    """Runs installers as child processes and waits for them to exit."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    async def run(self, executable_path: Path, arguments: Sequence[str]) -> int:
        """
        Launch the installer and block until it exits.

        The installer inherits this process's console; silent-install flags
        come from the task's arguments.

        Args:
            executable_path: A verified installer in the workspace.
            arguments: The installer's own silent-install arguments.

        Returns:
            The installer's exit code, zero or not.

        Raises:
            ExecutionError: If the process cannot be started or awaited.
        """

        argv = build_argv(executable_path, arguments)
        self.logger.info(f"CMD {subprocess.list2cmdline(argv)}")

        try:
            process = await asyncio.create_subprocess_exec(*argv)
        except OSError as e:
            raise ExecutionError(f"Could not start {argv[0]}: {e}") from e

        try:
            exit_code = await process.wait()
        except OSError as e:
            raise ExecutionError(
                f"Could not wait for {argv[0]} (pid {process.pid}): {e}"
            ) from e

        self.logger.info(f"{Path(argv[0]).name} exited with code {exit_code}")
        return exit_code
