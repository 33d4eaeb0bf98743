"""Models for Certificate resources and the values passed between drivers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    API_GROUP_VERSION,
    CM_CERTIFICATE_SUFFIX,
    KIND_CERTIFICATE,
    PROVIDER_AWS,
    PROVIDER_CLOUDFLARE,
    TLS_SECRET_SUFFIX,
)

# Status attributes holding each provider's uploaded flag and external identifier
PROVIDER_STATUS_FIELDS: dict[str, tuple[str, str]] = {
    PROVIDER_AWS: ("aws_uploaded", "aws_certificate_arn"),
    PROVIDER_CLOUDFLARE: ("cloudflare_uploaded", "cloudflare_certificate_id"),
}


@dataclass
class CertificateSpec:
    """Desired state of a Certificate, as written by its owner."""

    domain: str
    email: str = ""
    issuer_name: str = ""
    ingress_class_name: str = ""
    cloudflare_secret_ref: str = ""
    cloudflare_zone_id: str = ""
    cloudflare_enabled: bool | None = None
    aws_secret_ref: str = ""
    aws_enabled: bool | None = None

    @classmethod
    def from_dict(cls, spec: dict[str, Any]) -> CertificateSpec:
        return cls(
            domain=spec.get("domain", ""),
            email=spec.get("email", ""),
            issuer_name=spec.get("issuerName") or "",
            ingress_class_name=spec.get("ingressClassName") or "",
            cloudflare_secret_ref=spec.get("cloudflareSecretRef") or "",
            cloudflare_zone_id=spec.get("cloudflareZoneID") or "",
            cloudflare_enabled=spec.get("cloudflareEnabled"),
            aws_secret_ref=spec.get("awsSecretRef") or "",
            aws_enabled=spec.get("awsEnabled"),
        )


@dataclass
class CertificateStatus:
    """Observed state of a Certificate, written only by the reconciler."""

    issuer_ref: str = ""
    certificate_ref: str = ""
    cloudflare_uploaded: bool = False
    cloudflare_certificate_id: str = ""
    aws_uploaded: bool = False
    aws_certificate_arn: str = ""
    last_uploaded_cert_hash: str = ""
    last_uploaded_time: str | None = None
    conditions: list[dict[str, Any]] = field(default_factory=list)
    observed_generation: int = 0

    @classmethod
    def from_dict(cls, status: dict[str, Any] | None) -> CertificateStatus:
        status = status or {}
        return cls(
            issuer_ref=status.get("issuerRef") or "",
            certificate_ref=status.get("certificateRef") or "",
            cloudflare_uploaded=bool(status.get("cloudflareUploaded", False)),
            cloudflare_certificate_id=status.get("cloudflareCertificateID") or "",
            aws_uploaded=bool(status.get("awsUploaded", False)),
            aws_certificate_arn=status.get("awsCertificateARN") or "",
            last_uploaded_cert_hash=status.get("lastUploadedCertHash") or "",
            last_uploaded_time=status.get("lastUploadedTime"),
            conditions=copy.deepcopy(list(status.get("conditions") or [])),
            observed_generation=int(status.get("observedGeneration") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation stored under ``.status``."""
        return {
            "issuerRef": self.issuer_ref,
            "certificateRef": self.certificate_ref,
            "cloudflareUploaded": self.cloudflare_uploaded,
            "cloudflareCertificateID": self.cloudflare_certificate_id,
            "awsUploaded": self.aws_uploaded,
            "awsCertificateARN": self.aws_certificate_arn,
            "lastUploadedCertHash": self.last_uploaded_cert_hash,
            "lastUploadedTime": self.last_uploaded_time,
            "conditions": self.conditions,
            "observedGeneration": self.observed_generation,
        }

    def copy(self) -> CertificateStatus:
        return copy.deepcopy(self)

    def is_uploaded(self, provider: str) -> bool:
        uploaded_attr, _ = PROVIDER_STATUS_FIELDS[provider]
        return getattr(self, uploaded_attr)

    def identifier(self, provider: str) -> str:
        _, id_attr = PROVIDER_STATUS_FIELDS[provider]
        return getattr(self, id_attr)

    def record_upload(self, provider: str, identifier: str) -> None:
        uploaded_attr, id_attr = PROVIDER_STATUS_FIELDS[provider]
        setattr(self, uploaded_attr, True)
        setattr(self, id_attr, identifier)

    def mark_stale(self, provider: str) -> None:
        """Flag a provider as not holding the current certificate, keeping its identifier."""
        uploaded_attr, _ = PROVIDER_STATUS_FIELDS[provider]
        setattr(self, uploaded_attr, False)

    def recorded_identifiers(self) -> dict[str, str]:
        """Return provider -> external identifier for every non-empty identifier."""
        return {
            provider: self.identifier(provider)
            for provider in PROVIDER_STATUS_FIELDS
            if self.identifier(provider)
        }


@dataclass
class CertificateResource:
    """A Certificate custom resource."""

    name: str
    namespace: str
    spec: CertificateSpec
    status: CertificateStatus = field(default_factory=CertificateStatus)
    uid: str = ""
    generation: int = 0
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None

    @classmethod
    def from_kopf(
        cls,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any] | None,
    ) -> CertificateResource:
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", ""),
            generation=int(meta.get("generation") or 0),
            finalizers=list(meta.get("finalizers") or []),
            deletion_timestamp=meta.get("deletionTimestamp"),
            spec=CertificateSpec.from_dict(spec or {}),
            status=CertificateStatus.from_dict(status),
        )

    @property
    def being_deleted(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def certificate_request_name(self) -> str:
        return f"{self.name}{CM_CERTIFICATE_SUFFIX}"

    @property
    def tls_secret_name(self) -> str:
        return f"{self.name}{TLS_SECRET_SUFFIX}"

    def owner_reference(self, controller: bool = True) -> dict[str, Any]:
        """Owner reference so owned objects are garbage collected with us.

        Objects shared between Certificates, such as the default Issuer, take
        a non-controller reference and are only collected once every owner is gone.
        """
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_CERTIFICATE,
            "name": self.name,
            "uid": self.uid,
            "controller": controller,
            "blockOwnerDeletion": True,
        }


@dataclass
class CertificateMaterial:
    """Certificate and key handed to a cloud provider for one upload."""

    domain: str
    certificate: bytes
    private_key: bytes
    existing_id: str | None = None


@dataclass
class UploadOutcome:
    """Result of a successful upload."""

    identifier: str


@dataclass
class IssuerSpec:
    """Parameters for the ACME Issuer managed on behalf of a Certificate."""

    name: str
    namespace: str
    email: str
    ingress_class_name: str
    owner_references: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class CertificateRequestSpec:
    """Parameters for the cert-manager Certificate that fills the TLS secret."""

    name: str
    namespace: str
    domain: str
    issuer_name: str
    secret_name: str
    owner_references: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class IssuanceResult:
    """Reference to an issuance object after it has been upserted."""

    kind: str
    name: str
    namespace: str
    obj: dict[str, Any] = field(default_factory=dict)


@dataclass
class KeyMaterialBundle:
    """Certificate and private key read from the TLS secret."""

    certificate: bytes
    private_key: bytes
    secret: Any = None


@dataclass
class Readiness:
    """Whether an issuance object reports Ready, and when to look again if not."""

    ready: bool
    requeue_after: float | None = None
    message: str = ""


@dataclass
class ProcessResult:
    """Outcome of one CertificateManager pass."""

    status: CertificateStatus
    changed: bool = False
    requeue_after: float | None = None
    message: str = ""
    uploaded: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def waiting(self) -> bool:
        return self.requeue_after is not None


@dataclass
class TeardownResult:
    """Outcome of deleting a Certificate's cloud-side records."""

    deleted: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


@dataclass
class ReconcileResult:
    """What the controller asks of the scheduler after a pass."""

    requeue_after: float
    waiting: bool = False
    message: str = ""
