"""
Core business exceptions for the evergreen installer.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Per-task errors are
caught by the orchestrator and turned into failed task outcomes; only
run-level errors (such as configuration problems) reach the entry point.
"""


class InstallerError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(InstallerError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(InstallerError):
    """Base class for errors related to external systems (network, OS, etc.)."""
    pass


class DownloadError(InfrastructureError):
    """Raised when a file download fails."""
    pass


class InspectionError(InfrastructureError):
    """Raised when the OS cannot be asked about a file's signature."""
    pass


class ExecutionError(InfrastructureError):
    """Raised when an installer cannot be launched or awaited."""
    pass


class WorkspaceError(InfrastructureError):
    """Raised when the shared workspace directory cannot be prepared."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(InstallerError):
    """Base class for errors related to business logic failures."""
    pass


class VerificationReject(DomainError):
    """Raised when a trust decision rejects an artifact."""

    def __init__(self, decision):
        super().__init__(f"{decision.reason.value}: {decision.detail}")
        self.decision = decision
