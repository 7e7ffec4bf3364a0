"""In-memory fakes for the application ports and canned certificates."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from evergreen_installer.application.domain import (
    CertificateInfo,
    Downloader,
    DownloadResult,
    InstallExecutor,
    InstallTask,
    PinnedRoot,
    SignatureInfo,
    SignatureInspector,
)
from evergreen_installer.application.exceptions import (
    DownloadError,
    ExecutionError,
    InspectionError,
)

ROOT_THUMBPRINT = "A" * 40
INTERMEDIATE_THUMBPRINT = "B" * 40
LEAF_THUMBPRINT = "C" * 40

ROOT = CertificateInfo(
    subject="CN=Vendor Root CA, O=Vendor",
    issuer="CN=Vendor Root CA, O=Vendor",
    thumbprint=ROOT_THUMBPRINT,
)
INTERMEDIATE = CertificateInfo(
    subject="CN=Vendor Code Signing CA, O=Vendor",
    issuer="CN=Vendor Root CA, O=Vendor",
    thumbprint=INTERMEDIATE_THUMBPRINT,
)
LEAF = CertificateInfo(
    subject="CN=Vendor Installer, O=Vendor, C=US",
    issuer="CN=Vendor Code Signing CA, O=Vendor",
    thumbprint=LEAF_THUMBPRINT,
)

PINNED_ROOT = PinnedRoot(subject="CN=Vendor Root CA", thumbprint=ROOT_THUMBPRINT)

VALID_SIGNATURE = SignatureInfo(
    status="Valid",
    status_message="Signature verified.",
    signer=LEAF,
    certificates=(LEAF, INTERMEDIATE, ROOT),
)
UNSIGNED = SignatureInfo(
    status="NotSigned",
    status_message="The file is not digitally signed.",
)


def make_task(name: str, file_name: Optional[str] = None, **changes) -> InstallTask:
    fields = dict(
        name=name,
        source_url=f"https://downloads.example.com/{name}",
        local_file_name=file_name or f"{name}.exe",
        install_args=("/quiet", "/norestart"),
        expected_signer_subject_pattern="O=Vendor",
    )
    fields.update(changes)
    return InstallTask(**fields)


class FakeDownloader(Downloader):
    """Writes canned bytes for each URL; URLs listed in `failing` raise."""

    def __init__(self, payloads: Optional[Dict[str, bytes]] = None):
        self.payloads = payloads or {}
        self.failing: Dict[str, str] = {}
        self.calls: List[Tuple[str, Path, str]] = []

    async def fetch(self, url, destination_dir, file_name):
        self.calls.append((url, Path(destination_dir), file_name))
        if url in self.failing:
            raise DownloadError(self.failing[url])
        destination = Path(destination_dir) / file_name
        data = self.payloads.get(url, b"MZ installer bytes")
        destination.write_bytes(data)
        return DownloadResult(local_path=destination, byte_size=len(data))


class FakeInspector(SignatureInspector):
    """Reports signatures by file name and a fixed set of trusted roots."""

    def __init__(
        self,
        signatures: Optional[Dict[str, SignatureInfo]] = None,
        trusted_roots: Sequence[str] = (ROOT_THUMBPRINT,),
    ):
        self.signatures = signatures or {}
        self.default = VALID_SIGNATURE
        self.trusted_roots = set(trusted_roots)
        self.store_error: Optional[str] = None
        self.root_lookups: List[str] = []

    async def read_signature(self, file_path):
        signature = self.signatures.get(Path(file_path).name, self.default)
        if isinstance(signature, Exception):
            raise signature
        return signature

    async def is_trusted_root(self, thumbprint):
        self.root_lookups.append(thumbprint)
        if self.store_error:
            raise InspectionError(self.store_error)
        return thumbprint in self.trusted_roots


class FakeExecutor(InstallExecutor):
    """Records every launch and returns configured exit codes."""

    def __init__(self, exit_codes: Optional[Dict[str, int]] = None):
        self.exit_codes = exit_codes or {}
        self.unlaunchable: Dict[str, str] = {}
        self.calls: List[Tuple[Path, Tuple[str, ...]]] = []

    async def run(self, executable_path, arguments):
        name = Path(executable_path).name
        if name in self.unlaunchable:
            raise ExecutionError(self.unlaunchable[name])
        self.calls.append((Path(executable_path), tuple(arguments)))
        return self.exit_codes.get(name, 0)


