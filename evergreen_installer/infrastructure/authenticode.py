"""
Windows implementation of the SignatureInspector port.

Signatures are read with PowerShell's Get-AuthenticodeSignature, the signer's
chain is built with X509Chain, and the trusted-root lookup goes straight to
the machine's Cert:\\LocalMachine\\Root store. Every probe prints a single
JSON object, validated by the models in signature_models.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..application.domain import (
    THUMBPRINT_RE,
    SignatureInfo,
    SignatureInspector,
    normalize_thumbprint,
)
from ..application.exceptions import InspectionError

from .signature_models import RootStoreReport, SignatureReport

_SIGNATURE_SCRIPT = """
$ErrorActionPreference = 'Stop'
$sig = Get-AuthenticodeSignature -LiteralPath '{path}'
function Describe($c) {{
    [pscustomobject]@{{ Subject = $c.Subject; Issuer = $c.Issuer; Thumbprint = $c.Thumbprint }}
}}
$signer = $null
$certs = @()
if ($sig.SignerCertificate) {{
    $signer = Describe $sig.SignerCertificate
    $chain = New-Object System.Security.Cryptography.X509Certificates.X509Chain
    $chain.ChainPolicy.RevocationMode = 'NoCheck'
    [void]$chain.Build($sig.SignerCertificate)
    $certs = @($chain.ChainElements | ForEach-Object {{ Describe $_.Certificate }})
}}
[pscustomobject]@{{
    Status = [string]$sig.Status
    StatusMessage = [string]$sig.StatusMessage
    Signer = $signer
    Certificates = $certs
}} | ConvertTo-Json -Compress -Depth 4
"""

_ROOT_STORE_SCRIPT = """
$ErrorActionPreference = 'Stop'
[pscustomobject]@{{
    Present = [bool](Test-Path -LiteralPath 'Cert:\\LocalMachine\\Root\\{thumbprint}')
}} | ConvertTo-Json -Compress
"""


def default_powershell_path() -> str:
    """The system PowerShell, by absolute path so PATH cannot redirect it."""
    windir = os.environ.get("WINDIR", r"C:\Windows")
    candidate = os.path.join(
        windir, "System32", "WindowsPowerShell", "v1.0", "powershell.exe"
    )
    return candidate if os.path.isfile(candidate) else "powershell.exe"


def _quote(value: str) -> str:
    """Escape a value for use inside a single-quoted PowerShell string."""
    return value.replace("'", "''")


class PowerShellSignatureInspector(SignatureInspector):
    """Answers signature and root-store questions by running PowerShell."""

    def __init__(self, powershell_path: Optional[str] = None):
        """Initializes the inspector with the PowerShell executable to use."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.powershell_path = powershell_path or default_powershell_path()

    async def _run_script(self, script: str) -> str:
        """Runs a script non-interactively and returns its standard output."""
        argv = [
            self.powershell_path, "-NoProfile", "-NonInteractive",
            "-ExecutionPolicy", "Bypass", "-Command", script,
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise InspectionError(
                f"Could not run {self.powershell_path}: {e}"
            ) from e

        out = stdout.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            raise InspectionError(
                f"PowerShell exited with code {process.returncode}: "
                f"{err or out or 'no output'}"
            )
        return out

    async def _probe(self, script: str, model):
        output = await self._run_script(script)
        try:
            return model.model_validate(json.loads(output))
        except (json.JSONDecodeError, ValidationError) as e:
            raise InspectionError(
                f"Unexpected PowerShell output {output[:200]!r}: {e}"
            ) from e

    async def read_signature(self, file_path: Path) -> SignatureInfo:
        """
        Reports the Authenticode status, signer and chain of a file.

        Args:
            file_path: The file to inspect.

        Returns:
            The signature as a domain SignatureInfo. Unsigned files are
            reported with status 'NotSigned' and no signer, not as an error.

        Raises:
            InspectionError: If PowerShell fails or prints something else
                             than the expected JSON object.
        """

        path = str(Path(file_path).resolve())
        self.logger.debug(f"Reading Authenticode signature of {path}")
        report = await self._probe(
            _SIGNATURE_SCRIPT.format(path=_quote(path)), SignatureReport
        )
        signature = report.to_domain()

        self.logger.info(
            f"Signature of {Path(path).name}: {signature.status}"
            + (f", signer '{signature.signer.subject}'" if signature.signer else "")
        )
        return signature

    async def is_trusted_root(self, thumbprint: str) -> bool:
        """Looks the thumbprint up in the LocalMachine trusted-root store."""

        thumbprint = normalize_thumbprint(thumbprint)
        if not THUMBPRINT_RE.match(thumbprint):
            raise InspectionError(f"Not a certificate thumbprint: {thumbprint!r}")

        report = await self._probe(
            _ROOT_STORE_SCRIPT.format(thumbprint=thumbprint), RootStoreReport
        )
        self.logger.info(
            f"Root {thumbprint} "
            f"{'is' if report.Present else 'is not'} in the trusted-root store"
        )
        return report.Present
