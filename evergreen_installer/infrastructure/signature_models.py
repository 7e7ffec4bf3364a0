"""
Pydantic models for validating the JSON printed by the PowerShell signature
probes.

These models serve as a strict contract for the expected output, so that a
change in what PowerShell emits is caught at the infrastructure layer before
anything reaches the trust decision.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, field_validator

from ..application.domain import CertificateInfo, SignatureInfo


class CertificateDetails(BaseModel):
    """Identity fields of one certificate as reported by PowerShell."""

    Subject: str
    Issuer: str
    Thumbprint: str

    def to_domain(self) -> CertificateInfo:
        return CertificateInfo(
            subject=self.Subject, issuer=self.Issuer, thumbprint=self.Thumbprint
        )


class SignatureReport(BaseModel):
    """
    Output of the Get-AuthenticodeSignature probe.

    `Certificates` holds the elements of the chain Windows built for the
    signer. ConvertTo-Json collapses a one-element array into a bare object,
    and an empty one into null, so both are normalised to a list.
    """

    Status: str
    StatusMessage: Optional[str] = None
    Signer: Optional[CertificateDetails] = None
    Certificates: List[CertificateDetails] = []

    @field_validator("Certificates", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value

    def to_domain(self) -> SignatureInfo:
        return SignatureInfo(
            status=self.Status,
            status_message=self.StatusMessage or "",
            signer=self.Signer.to_domain() if self.Signer else None,
            certificates=tuple(c.to_domain() for c in self.Certificates),
        )


class RootStoreReport(BaseModel):
    """Output of the trusted-root store lookup."""

    Present: bool
