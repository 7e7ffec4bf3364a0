"""
The core application service and pipeline, containing pure business logic.

This module defines the main orchestrator (ProvisioningService) for a
provisioning run and the pipeline (InstallPipeline) that moves a single
install task through download, verification and execution. Failures are
recorded on the task's TaskOutcome and never escape a task.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .domain import *
from .exceptions import ConfigurationError, InstallerError

logger = logging.getLogger(__name__)


class InstallPipeline:
    """Encapsulates the full download, verify, install pipeline for one task."""

    def __init__(
        self,
        downloader: Downloader,
        verifier: TrustVerifier,
        executor: InstallExecutor,
        verify_only: bool = False,
    ):
        """Initializes the pipeline with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.downloader = downloader
        self.verifier = verifier
        self.executor = executor
        self.verify_only = verify_only

    async def _download(
        self, task: InstallTask, outcome: TaskOutcome, workspace_dir: Path
    ) -> TaskOutcome:
        result = await self.downloader.fetch(
            task.source_url, workspace_dir, task.local_file_name
        )

        # The downloader's success is re-checked against the filesystem.
        path = Path(result.local_path)
        if not path.is_file() or path.stat().st_size == 0:
            return outcome.fail(
                Stage.DOWNLOAD, f"{path.name} is missing or empty after download"
            )

        self.logger.info(
            f"[{task.name}] Downloaded {path.name} ({result.byte_size} bytes)"
        )
        return outcome.advance(TaskState.DOWNLOADED, download=result)

    async def _verify(self, task: InstallTask, outcome: TaskOutcome) -> TaskOutcome:
        decision = await self.verifier.verify(
            outcome.download.local_path,
            task.expected_signer_subject_pattern,
            task.pinned_root,
        )
        if not decision.accepted:
            return outcome.fail(
                Stage.VERIFY, f"{decision.reason.value}: {decision.detail}"
            )

        self.logger.info(f"[{task.name}] Verified: {decision.detail}")
        return outcome.advance(TaskState.VERIFIED)

    async def _execute(self, task: InstallTask, outcome: TaskOutcome) -> TaskOutcome:
        exit_code = await self.executor.run(
            outcome.download.local_path, task.install_args
        )

        if exit_code != 0:
            self.logger.warning(
                f"[{task.name}] Installer exited with code {exit_code}"
            )
        else:
            self.logger.info(f"[{task.name}] Installer completed")

        return outcome.advance(TaskState.INSTALLED, exit_code=exit_code)

    async def run(self, task: InstallTask, workspace_dir: Path) -> TaskOutcome:
        """Executes the sequential steps for one task.

        Each step only runs if the previous one succeeded. Any error raised
        by a step is recorded as a failure of that step and never reaches
        the other tasks.

        Args:
            task: The application to install.
            workspace_dir: The run's shared workspace directory.

        Returns:
            The final TaskOutcome of the task.
        """

        outcome = TaskOutcome(task_name=task.name)
        self.logger.info(f"[{task.name}] Starting pipeline for {task.source_url}")

        steps = [
            (Stage.DOWNLOAD, lambda o: self._download(task, o, workspace_dir)),
            (Stage.VERIFY, lambda o: self._verify(task, o)),
        ]
        if not self.verify_only:
            steps.append((Stage.EXECUTE, lambda o: self._execute(task, o)))

        for stage, step in steps:
            try:
                outcome = await step(outcome)
            except InstallerError as e:
                outcome = outcome.fail(stage, str(e))
            except Exception as e:
                self.logger.exception(
                    f"[{task.name}] Unexpected error at {stage.value}"
                )
                outcome = outcome.fail(
                    stage, f"unexpected {type(e).__name__}: {e}"
                )
            if outcome.failed:
                self.logger.error(
                    f"[{task.name}] Failed at {stage.value}: {outcome.reason}"
                )
                break

        return outcome


class ProvisioningService:
    """Orchestrates one provisioning run over a fixed list of install tasks."""

    def __init__(
        self,
        pipeline: InstallPipeline,
        workspace: Workspace,
        tasks: Sequence[InstallTask],
        show_progress: bool = True,
    ):
        """Initializes the service with its pipeline, workspace and tasks."""
        self.pipeline = pipeline
        self.workspace = workspace
        self.tasks = tuple(tasks)
        self.show_progress = show_progress

    async def run(self, only: Optional[Sequence[str]] = None) -> RunReport:
        """
        Runs every task (or the named subset) one after the other.

        The workspace is purged before the first task and removed after the
        last, whatever the task outcomes were.

        Args:
            only: Names of the tasks to run; all tasks when None.

        Returns:
            A RunReport with one outcome per task, in order.
        """

        tasks = self.tasks
        if only is not None:
            unknown = set(only) - {t.name for t in self.tasks}
            if unknown:
                raise ConfigurationError(
                    f"Unknown install task(s): {', '.join(sorted(unknown))}"
                )
            tasks = tuple(t for t in self.tasks if t.name in set(only))

        logger.info(f"Starting provisioning run with {len(tasks)} task(s)")

        outcomes = []
        with self.workspace as workspace_dir, logging_redirect_tqdm():
            for task in tqdm(
                tasks, desc="Install tasks", unit="task",
                disable=not self.show_progress,
            ):
                outcomes.append(await self.pipeline.run(task, workspace_dir))

        report = RunReport(outcomes=tuple(outcomes))
        for outcome in report.outcomes:
            log = logger.error if outcome.failed else logger.info
            log(str(outcome))

        logger.info(
            f"Provisioning run finished: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed."
        )
        return report
