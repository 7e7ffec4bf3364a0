"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the application's business logic operates on, together with
the ports (interfaces) implemented by the infrastructure adapters.
"""

import dataclasses
import enum
import re
from pathlib import Path

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from .exceptions import VerificationReject


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class PinnedRoot:
    """The single root certificate authority an artifact must chain to."""

    subject: str
    thumbprint: str

    def __post_init__(self):
        object.__setattr__(self, "thumbprint", normalize_thumbprint(self.thumbprint))


@dataclasses.dataclass(frozen=True)
class InstallTask:
    """One application to download, verify and install."""

    name: str
    source_url: str
    local_file_name: str
    install_args: Tuple[str, ...]
    expected_signer_subject_pattern: str
    pinned_root: Optional[PinnedRoot] = None


@dataclasses.dataclass(frozen=True)
class DownloadResult:
    """A downloaded artifact on disk, owned by the task that fetched it."""

    local_path: Path
    byte_size: int


@dataclasses.dataclass(frozen=True)
class CertificateInfo:
    """The identity fields of a single X.509 certificate."""

    subject: str
    issuer: str
    thumbprint: str

    def __post_init__(self):
        object.__setattr__(self, "thumbprint", normalize_thumbprint(self.thumbprint))

    @property
    def is_self_signed(self) -> bool:
        return self.subject == self.issuer


@dataclasses.dataclass(frozen=True)
class SignatureInfo:
    """
    What the operating system reports about a file's digital signature.

    `certificates` is the pool available for chain building: the certificates
    embedded in the signature plus any the OS could resolve for it.
    """

    status: str
    status_message: str = ""
    signer: Optional[CertificateInfo] = None
    certificates: Tuple[CertificateInfo, ...] = ()

    @property
    def is_signed(self) -> bool:
        return self.signer is not None and self.status != "NotSigned"

    @property
    def is_valid(self) -> bool:
        return self.status == "Valid"


class RejectReason(enum.Enum):
    """Why a trust decision was reached. TRUSTED is the only accepting one."""

    TRUSTED = "trusted"
    INSPECTION_FAILED = "signature could not be inspected"
    UNSIGNED = "unsigned"
    INVALID_SIGNATURE = "invalid signature"
    SIGNER_MISMATCH = "signer mismatch"
    PINNED_ROOT_NOT_IN_CHAIN = "chain does not reach pinned root"
    ROOT_NOT_TRUSTED = "root not locally trusted"


@dataclasses.dataclass(frozen=True)
class TrustDecision:
    """The outcome of verifying one artifact."""

    accepted: bool
    reason: RejectReason
    detail: str = ""

    @classmethod
    def accept(cls, detail: str = "") -> "TrustDecision":
        return cls(accepted=True, reason=RejectReason.TRUSTED, detail=detail)

    @classmethod
    def reject(cls, reason: RejectReason, detail: str = "") -> "TrustDecision":
        return cls(accepted=False, reason=reason, detail=detail)

    def raise_for_reject(self):
        """Raise VerificationReject unless the artifact was accepted."""
        if not self.accepted:
            raise VerificationReject(self)


class TaskState(enum.Enum):
    PENDING = "pending"
    DOWNLOADED = "downloaded"
    VERIFIED = "verified"
    INSTALLED = "installed"
    FAILED = "failed"


class Stage(enum.Enum):
    DOWNLOAD = "download"
    VERIFY = "verify"
    EXECUTE = "execute"


@dataclasses.dataclass(frozen=True)
class TaskOutcome:
    """
    The state of one task as it moves through the pipeline.

    Each stage returns a new outcome; a FAILED outcome is terminal and records
    the stage it failed in and why.
    """

    task_name: str
    state: TaskState = TaskState.PENDING
    failed_stage: Optional[Stage] = None
    reason: Optional[str] = None
    exit_code: Optional[int] = None
    download: Optional[DownloadResult] = None

    @property
    def failed(self) -> bool:
        return self.state is TaskState.FAILED

    def advance(self, state: TaskState, **changes) -> "TaskOutcome":
        if self.failed:
            raise ValueError(f"Task {self.task_name} already failed")
        return dataclasses.replace(self, state=state, **changes)

    def fail(self, stage: Stage, reason: str) -> "TaskOutcome":
        return dataclasses.replace(
            self, state=TaskState.FAILED, failed_stage=stage, reason=reason
        )

    def __str__(self) -> str:
        if self.failed:
            return f"{self.task_name}: failed at {self.failed_stage.value} ({self.reason})"
        if self.exit_code is not None:
            return f"{self.task_name}: {self.state.value} (exit code {self.exit_code})"
        return f"{self.task_name}: {self.state.value}"


@dataclasses.dataclass(frozen=True)
class RunReport:
    """All task outcomes of one run, in execution order."""

    outcomes: Tuple[TaskOutcome, ...]

    @property
    def succeeded(self) -> Tuple[TaskOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.failed)

    @property
    def failed(self) -> Tuple[TaskOutcome, ...]:
        return tuple(o for o in self.outcomes if o.failed)


THUMBPRINT_RE = re.compile(r"^[0-9A-F]{40}$|^[0-9A-F]{64}$")


def normalize_thumbprint(value: str) -> str:
    """Upper-case a hex thumbprint and strip spaces and colons."""
    return "".join(ch for ch in value if ch not in " :").upper()


# --- Ports (Interfaces) ---

class Downloader(ABC):
    """A port for any file downloader."""

    @abstractmethod
    async def fetch(
        self, url: str, destination_dir: Path, file_name: str
    ) -> DownloadResult:
        """Downloads a resource to destination_dir/file_name."""
        pass


class SignatureInspector(ABC):
    """A port for querying the OS about signatures and trusted roots."""

    @abstractmethod
    async def read_signature(self, file_path: Path) -> SignatureInfo:
        """
        Reports the signature status, signer and certificate pool of a file.
        Raises InspectionError if the OS could not be queried.
        """
        pass

    @abstractmethod
    async def is_trusted_root(self, thumbprint: str) -> bool:
        """
        Whether a certificate with this thumbprint is in the machine's
        trusted-root store. Raises InspectionError if the store cannot be read.
        """
        pass


class TrustVerifier(ABC):
    """A port for deciding whether a downloaded artifact may be executed."""

    @abstractmethod
    async def verify(
        self,
        file_path: Path,
        expected_signer_subject_pattern: str,
        pinned_root: Optional[PinnedRoot] = None,
    ) -> TrustDecision:
        """Never raises for a trust failure; returns a rejecting decision."""
        pass


class InstallExecutor(ABC):
    """A port for running an installer to completion."""

    @abstractmethod
    async def run(self, executable_path: Path, arguments: Sequence[str]) -> int:
        """
        Runs the installer and returns its exit code.
        Raises ExecutionError if it cannot be started or awaited.
        """
        pass


class Workspace(ABC):
    """
    A port for the scoped directory shared by the tasks of one run.

    Used as a context manager: entering prepares a fresh, empty directory and
    exiting removes it, whatever happened in between.
    """

    @abstractmethod
    def prepare(self) -> Path:
        """
        Purges leftovers and (re)creates the directory.
        Raises WorkspaceError if it cannot be created.
        """
        pass

    @abstractmethod
    def remove(self):
        """Deletes the directory. Best effort; never raises."""
        pass

    def __enter__(self) -> Path:
        return self.prepare()

    def __exit__(self, exc_type, exc_value, traceback):
        self.remove()
        return False
