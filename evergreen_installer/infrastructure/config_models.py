"""
Pydantic models for validating the `installer` section of the settings.

Dynaconf only loads values; these models are the contract for what a valid
configuration looks like, and map the install task records onto the domain
models the application core works with.
"""

from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from ..application.domain import (
    THUMBPRINT_RE,
    InstallTask,
    PinnedRoot,
    normalize_thumbprint,
)
from ..application.exceptions import ConfigurationError


class PinnedRootConfig(BaseModel):
    """The root CA installers must chain to."""

    subject: str
    thumbprint: str

    @field_validator("thumbprint")
    @classmethod
    def _hex_thumbprint(cls, value: str) -> str:
        value = normalize_thumbprint(value)
        if not THUMBPRINT_RE.match(value):
            raise ValueError(f"not a SHA-1 or SHA-256 hex thumbprint: {value!r}")
        return value

    def to_domain(self) -> PinnedRoot:
        return PinnedRoot(subject=self.subject, thumbprint=self.thumbprint)


class InstallTaskConfig(BaseModel):
    """One install task record."""

    name: str
    source_url: str
    local_file_name: str
    install_args: List[str] = []
    expected_signer_subject_pattern: str
    pinned_root: Optional[PinnedRootConfig] = None

    @field_validator("local_file_name")
    @classmethod
    def _plain_file_name(cls, value: str) -> str:
        if not value or Path(value).name != value or value in (".", ".."):
            raise ValueError(f"must be a bare file name: {value!r}")
        return value

    @field_validator("expected_signer_subject_pattern")
    @classmethod
    def _non_empty_pattern(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    def to_domain(self) -> InstallTask:
        return InstallTask(
            name=self.name,
            source_url=self.source_url,
            local_file_name=self.local_file_name,
            install_args=tuple(self.install_args),
            expected_signer_subject_pattern=self.expected_signer_subject_pattern,
            pinned_root=self.pinned_root.to_domain() if self.pinned_root else None,
        )


class DownloadConfig(BaseModel):
    chunk_size: int = 65536
    timeout: Optional[float] = None
    user_agent: str = "evergreen-installer"
    show_progress: bool = True


class VerifierConfig(BaseModel):
    powershell_path: Optional[str] = None
    pinned_root: PinnedRootConfig


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[Path] = None


class InstallerConfig(BaseModel):
    """The validated `installer` settings section."""

    workspace_dir: Optional[Path] = None
    download: DownloadConfig = DownloadConfig()
    verifier: VerifierConfig
    logging: LoggingConfig = LoggingConfig()
    tasks: List[InstallTaskConfig]

    @model_validator(mode="after")
    def _unique_task_names(self) -> "InstallerConfig":
        names = [t.name for t in self.tasks]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate task names: {', '.join(duplicates)}")
        return self

    def install_tasks(self) -> List[InstallTask]:
        return [t.to_domain() for t in self.tasks]


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases top-level keys; the models use lower case."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def load_installer_config(settings) -> InstallerConfig:
    """
    Validate the `installer` section of a settings object.

    Args:
        settings: A Dynaconf settings object, or a plain mapping.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If the section is missing or invalid.
    """

    section = settings.get("installer") if hasattr(settings, "get") else None
    if section is None:
        raise ConfigurationError("The 'installer' settings section is missing.")

    if hasattr(section, "to_dict"):
        section = section.to_dict()

    try:
        return InstallerConfig.model_validate(_lower_keys(section))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid installer configuration: {e}") from e
