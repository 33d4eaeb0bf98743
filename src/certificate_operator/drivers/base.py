"""Driver interfaces for certificate issuance and cloud distribution."""

from __future__ import annotations

from typing import Protocol

from ..models import (
    CertificateMaterial,
    CertificateRequestSpec,
    IssuanceResult,
    IssuerSpec,
    KeyMaterialBundle,
    Readiness,
    UploadOutcome,
)
from ..utils.context import ReconcileContext


class CloudProvider(Protocol):
    """Protocol defining a certificate distribution target."""

    # Whether the driver may fall back to an ambient credential chain
    # (environment, instance identity) when no credentials secret is configured.
    allows_ambient_credentials: bool

    def name(self) -> str:
        """Stable provider identifier used in status fields and logs."""
        ...

    def upload(self, ctx: ReconcileContext, material: CertificateMaterial) -> UploadOutcome:
        """Upload a certificate, replacing ``material.existing_id`` on renewal.

        Raises:
            UploadFailed: On any backend error
        """
        ...

    def delete(self, ctx: ReconcileContext, identifier: str) -> None:
        """Delete a previously uploaded certificate.

        Raises:
            DeleteFailed: On any backend error
        """
        ...

    def close(self) -> None:
        """Release connections held by the driver."""
        ...


class CertIssuer(Protocol):
    """Protocol defining the certificate issuance collaborator."""

    def ensure_issuer(self, ctx: ReconcileContext, spec: IssuerSpec) -> IssuanceResult:
        """Create or update the issuance authority."""
        ...

    def ensure_certificate(self, ctx: ReconcileContext, spec: CertificateRequestSpec) -> IssuanceResult:
        """Create or update the certificate request."""
        ...

    def get_key_material(
        self,
        ctx: ReconcileContext,
        secret_name: str,
        namespace: str,
    ) -> KeyMaterialBundle | None:
        """Read the issued key pair; None while the secret is still empty."""
        ...

    def check_readiness(self, ctx: ReconcileContext, ref: IssuanceResult) -> Readiness:
        """Report whether an issuance object is Ready."""
        ...
