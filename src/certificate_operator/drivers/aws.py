"""AWS Certificate Manager (ACM) distribution driver."""

from __future__ import annotations

import re
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .. import metrics
from ..constants import FIELD_MANAGER, PROVIDER_AWS
from ..exceptions import DeleteFailed, UploadFailed
from ..models import CertificateMaterial, UploadOutcome
from ..utils.context import ReconcileContext
from ..utils.rate_limit import rate_limit_cloud

PEM_CERTIFICATE_PATTERN = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----",
    flags=re.DOTALL,
)


def split_pem_chain(bundle: bytes) -> tuple[bytes, bytes | None]:
    """Split a PEM bundle into the leaf certificate and the remaining chain.

    cert-manager writes leaf + intermediates into ``tls.crt``; ACM wants the
    leaf in ``Certificate`` and the intermediates in ``CertificateChain``.
    """
    blocks = PEM_CERTIFICATE_PATTERN.findall(bundle)
    if len(blocks) <= 1:
        return bundle, None
    return blocks[0] + b"\n", b"\n".join(blocks[1:]) + b"\n"


class ACMProvider:
    """Uploads certificates to AWS ACM.

    With no explicit keys the boto3 default credential chain is used
    (environment, IRSA web identity, instance profile).
    """

    allows_ambient_credentials = True

    def __init__(
        self,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
    ) -> None:
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region or None
        self._acm = None

    def name(self) -> str:
        return PROVIDER_AWS

    @property
    def uses_ambient_credentials(self) -> bool:
        return not self.access_key_id

    def _client(self) -> Any:
        if self._acm is None:
            kwargs: dict[str, Any] = {"region_name": self.region}
            if not self.uses_ambient_credentials:
                kwargs["aws_access_key_id"] = self.access_key_id
                kwargs["aws_secret_access_key"] = self.secret_access_key
            self._acm = boto3.client("acm", **kwargs)
        return self._acm

    def upload(self, ctx: ReconcileContext, material: CertificateMaterial) -> UploadOutcome:
        """Import the certificate, re-importing into the existing ARN on renewal."""
        leaf, chain = split_pem_chain(material.certificate)
        params: dict[str, Any] = {
            "Certificate": leaf,
            "PrivateKey": material.private_key,
        }
        if chain:
            params["CertificateChain"] = chain

        if material.existing_id:
            # ACM rejects tags on re-import; the original import carries them
            ctx.info("Re-importing certificate to existing ARN", reason="ReImport", arn=material.existing_id)
            params["CertificateArn"] = material.existing_id
        else:
            params["Tags"] = [
                {"Key": "ManagedBy", "Value": FIELD_MANAGER},
                {"Key": "Domain", "Value": material.domain},
            ]

        try:
            response = rate_limit_cloud(self._client().import_certificate)(**params)
        except (ClientError, BotoCoreError) as e:
            metrics.provider_operations_total.labels(provider=PROVIDER_AWS, operation="upload", result="failed").inc()
            raise UploadFailed(PROVIDER_AWS, e) from e

        metrics.provider_operations_total.labels(provider=PROVIDER_AWS, operation="upload", result="success").inc()
        return UploadOutcome(identifier=response["CertificateArn"])

    def delete(self, ctx: ReconcileContext, identifier: str) -> None:
        """Delete the certificate with the given ARN."""
        try:
            rate_limit_cloud(self._client().delete_certificate)(CertificateArn=identifier)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                ctx.info("Certificate already absent from ACM", reason="AlreadyDeleted", arn=identifier)
                return
            metrics.provider_operations_total.labels(provider=PROVIDER_AWS, operation="delete", result="failed").inc()
            raise DeleteFailed(PROVIDER_AWS, identifier, e) from e
        except BotoCoreError as e:
            metrics.provider_operations_total.labels(provider=PROVIDER_AWS, operation="delete", result="failed").inc()
            raise DeleteFailed(PROVIDER_AWS, identifier, e) from e

        metrics.provider_operations_total.labels(provider=PROVIDER_AWS, operation="delete", result="success").inc()

    def close(self) -> None:
        if self._acm is not None:
            self._acm.close()
            self._acm = None
