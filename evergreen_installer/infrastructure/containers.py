"""
Dependency Injection container for the evergreen installer.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's validated configuration.
"""

from dependency_injector import containers, providers
import httpx

from ..application.domain import *
from ..application.service import InstallPipeline, ProvisioningService
from ..application.verifier import PinnedRootVerifier
from ..settings import settings as default_settings

from .authenticode import PowerShellSignatureInspector
from .config_models import load_installer_config
from .downloader import HttpDownloader
from .executor import SubprocessInstallExecutor
from .workspace import TempWorkspace


def _http_client(user_agent: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(headers={"User-Agent": user_agent})


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    settings = providers.Object(default_settings)

    config = providers.Singleton(load_installer_config, settings)

    http_client = providers.Singleton(
        _http_client,
        user_agent=config.provided.download.user_agent,
    )

    downloader: providers.Factory[Downloader] = providers.Factory(
        HttpDownloader,
        client=http_client,
        chunk_size=config.provided.download.chunk_size,
        timeout=config.provided.download.timeout,
        show_progress=config.provided.download.show_progress,
    )

    inspector: providers.Factory[SignatureInspector] = providers.Factory(
        PowerShellSignatureInspector,
        powershell_path=config.provided.verifier.powershell_path,
    )

    verifier: providers.Factory[TrustVerifier] = providers.Factory(
        PinnedRootVerifier,
        inspector=inspector,
        pinned_root=config.provided.verifier.pinned_root.to_domain.call(),
    )

    executor: providers.Factory[InstallExecutor] = providers.Factory(
        SubprocessInstallExecutor,
    )

    workspace: providers.Factory[Workspace] = providers.Factory(
        TempWorkspace,
        path=config.provided.workspace_dir,
    )

    pipeline = providers.Factory(
        InstallPipeline,
        downloader=downloader,
        verifier=verifier,
        executor=executor,
        verify_only=cli_args.verify_only.as_(bool),
    )

    provisioning_service = providers.Factory(
        ProvisioningService,
        pipeline=pipeline,
        workspace=workspace,
        tasks=config.provided.install_tasks.call(),
        show_progress=config.provided.download.show_progress,
    )
