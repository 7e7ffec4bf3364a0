"""
Certificate trust decisions for downloaded installers.

Trust is pinned to one root certificate authority: a valid signature from the
expected vendor is not enough on its own, the signer's chain must also reach
the pinned root, and that root must be present in the machine's own
trusted-root store. Each failed check yields a rejecting TrustDecision with a
distinct reason instead of an exception.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .domain import (
    CertificateInfo,
    PinnedRoot,
    RejectReason,
    SignatureInfo,
    SignatureInspector,
    TrustDecision,
    TrustVerifier,
)
from .exceptions import InspectionError

_MAX_CHAIN_DEPTH = 10


def subject_matches(subject: str, pattern: str) -> bool:
    """Case-insensitive substring match of a certificate subject."""
    return bool(pattern) and pattern.casefold() in subject.casefold()


def build_chain(
    leaf: CertificateInfo, pool: List[CertificateInfo]
) -> List[CertificateInfo]:
    """
    Builds the chain from a leaf certificate towards its self-signed root.

    Each step resolves the current certificate's issuer by subject among the
    pool. Building stops at a self-signed certificate, at an issuer that is
    not in the pool, or when a certificate would repeat.

    Args:
        leaf: The signing certificate.
        pool: Candidate issuer certificates.

    Returns:
        The chain, leaf first. Every element's issuer is the subject of the
        element after it.
    """

    by_subject: Dict[str, List[CertificateInfo]] = {}
    for cert in pool:
        by_subject.setdefault(cert.subject, []).append(cert)

    chain = [leaf]
    seen = {leaf.thumbprint}
    current = leaf

    while not current.is_self_signed and len(chain) < _MAX_CHAIN_DEPTH:
        candidates = [
            c for c in by_subject.get(current.issuer, []) if c.thumbprint not in seen
        ]
        if not candidates:
            break
        # Prefer a self-signed issuer so the walk terminates at a root.
        candidates.sort(key=lambda c: not c.is_self_signed)
        current = candidates[0]
        chain.append(current)
        seen.add(current.thumbprint)

    return chain


def find_pinned_root(
    chain: List[CertificateInfo], pinned_root: PinnedRoot
) -> Optional[CertificateInfo]:
    """Returns the chain element matching the pinned root, if any."""
    for cert in chain[1:]:
        if (
            subject_matches(cert.subject, pinned_root.subject)
            and cert.thumbprint == pinned_root.thumbprint
        ):
            return cert
    return None


class PinnedRootVerifier(TrustVerifier):
    """Accepts only artifacts signed by the expected vendor under the pinned root."""

    def __init__(self, inspector: SignatureInspector, pinned_root: PinnedRoot):
        """Initializes the verifier with its inspector and default pinned root."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.inspector = inspector
        self.pinned_root = pinned_root

    def _check_signer(
        self, signature: SignatureInfo, expected_signer_subject_pattern: str
    ) -> Optional[TrustDecision]:
        """Returns a rejecting decision if the signature or its signer is wrong."""

        if not signature.is_signed:
            return TrustDecision.reject(
                RejectReason.UNSIGNED, f"signature status {signature.status}"
            )

        if not signature.is_valid:
            detail = signature.status_message or signature.status
            return TrustDecision.reject(
                RejectReason.INVALID_SIGNATURE,
                f"status {signature.status}: {detail}",
            )

        if not subject_matches(
            signature.signer.subject, expected_signer_subject_pattern
        ):
            return TrustDecision.reject(
                RejectReason.SIGNER_MISMATCH,
                f"signer '{signature.signer.subject}' does not match "
                f"'{expected_signer_subject_pattern}'",
            )

        return None

    async def _check_root_trusted(self, root: CertificateInfo) -> bool:
        try:
            return await self.inspector.is_trusted_root(root.thumbprint)
        except InspectionError as e:
            self.logger.error(f"Could not read the trusted-root store: {e}")
            return False

    async def verify(
        self,
        file_path: Path,
        expected_signer_subject_pattern: str,
        pinned_root: Optional[PinnedRoot] = None,
    ) -> TrustDecision:
        """
        Decides whether the file at file_path may be executed.

        Args:
            file_path: The downloaded artifact.
            expected_signer_subject_pattern: Text the signing certificate's
                subject must contain, e.g. "O=Vendor".
            pinned_root: Overrides the verifier's default pinned root.

        Returns:
            A TrustDecision; rejections carry the failing step as reason.
        """

        file_path = Path(file_path)
        pinned_root = pinned_root or self.pinned_root
        decision = await self._decide(
            file_path, expected_signer_subject_pattern, pinned_root
        )

        if decision.accepted:
            self.logger.info(f"Accepted {file_path.name}: {decision.detail}")
        else:
            self.logger.warning(
                f"Rejected {file_path.name}: {decision.reason.value} "
                f"({decision.detail})"
            )

        return decision

    async def _decide(
        self,
        file_path: Path,
        expected_signer_subject_pattern: str,
        pinned_root: PinnedRoot,
    ) -> TrustDecision:
        try:
            signature = await self.inspector.read_signature(file_path)
        except InspectionError as e:
            return TrustDecision.reject(RejectReason.INSPECTION_FAILED, str(e))

        rejection = self._check_signer(signature, expected_signer_subject_pattern)
        if rejection is not None:
            return rejection

        chain = build_chain(signature.signer, list(signature.certificates))
        self.logger.debug(
            "Built chain: " + " -> ".join(c.subject for c in chain)
        )

        root = find_pinned_root(chain, pinned_root)
        if root is None:
            return TrustDecision.reject(
                RejectReason.PINNED_ROOT_NOT_IN_CHAIN,
                f"no '{pinned_root.subject}' ({pinned_root.thumbprint}) among "
                f"{len(chain)} chain certificates",
            )

        if not await self._check_root_trusted(root):
            return TrustDecision.reject(
                RejectReason.ROOT_NOT_TRUSTED,
                f"{root.thumbprint} is not in the local trusted-root store",
            )

        return TrustDecision.accept(
            f"signed by '{signature.signer.subject}' under '{root.subject}'"
        )
