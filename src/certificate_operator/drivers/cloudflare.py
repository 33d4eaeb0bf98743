"""
Cloudflare custom SSL distribution driver.

See https://developers.cloudflare.com/api/resources/custom_certificates/.
"""

from __future__ import annotations

from typing import Any

import requests
import requests.auth

from .. import metrics
from ..constants import CLOUDFLARE_API_URL, CLOUDFLARE_REQUEST_TIMEOUT, PROVIDER_CLOUDFLARE
from ..exceptions import DeleteFailed, UploadFailed
from ..models import CertificateMaterial, UploadOutcome
from ..utils.context import ReconcileContext
from ..utils.errors import sanitize_dict
from ..utils.rate_limit import rate_limit_cloud


class BearerAuth(requests.auth.AuthBase):
    """Attaches an API token as a bearer Authorization header."""

    def __init__(self, token: str) -> None:
        self.token = token

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self.token}"
        return r


class CloudflareAPIError(Exception):
    """Raised when Cloudflare answers with an error envelope."""

    def __init__(self, status_code: int, errors: list[dict[str, Any]]):
        self.status_code = status_code
        self.errors = [sanitize_dict(e) if isinstance(e, dict) else {"message": str(e)} for e in errors]
        detail = "; ".join(f"{e.get('code')}: {e.get('message')}" for e in self.errors) or "unknown error"
        super().__init__(f"Cloudflare API error (HTTP {status_code}): {detail}")


class CloudflareProvider:
    """Uploads certificates to a Cloudflare zone as custom SSL certificates.

    Cloudflare has no in-place replacement keyed by our identifier, so a
    renewal deletes the previous certificate (best effort) and creates a new one.
    Credentials always come from an explicit secret.
    """

    allows_ambient_credentials = False

    def __init__(
        self,
        api_token: str,
        zone_id: str,
        api_url: str = CLOUDFLARE_API_URL,
        timeout: float = CLOUDFLARE_REQUEST_TIMEOUT,
    ) -> None:
        self.zone_id = zone_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.http = requests.Session()
        self.http.auth = BearerAuth(api_token)
        self.http.headers.update({"Content-Type": "application/json"})

    def name(self) -> str:
        return PROVIDER_CLOUDFLARE

    def _url(self, *parts: str) -> str:
        return "/".join([self.api_url, "zones", self.zone_id, "custom_certificates", *parts])

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = rate_limit_cloud(self.http.request)(method, url, timeout=self.timeout, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = {"success": False, "errors": [{"code": response.status_code, "message": response.text[:200]}]}

        if not response.ok or not payload.get("success", False):
            raise CloudflareAPIError(response.status_code, payload.get("errors") or [])
        return payload

    def upload(self, ctx: ReconcileContext, material: CertificateMaterial) -> UploadOutcome:
        """Create a custom certificate, removing the previous one on renewal."""
        if material.existing_id:
            ctx.info(
                "Deleting old certificate from Cloudflare before upload",
                reason="ReplaceCertificate",
                certificate_id=material.existing_id,
            )
            try:
                self.delete(ctx, material.existing_id)
            except DeleteFailed as e:
                # Upload proceeds; the stale record is left for manual cleanup
                ctx.error(
                    "Failed to delete old certificate from Cloudflare, continuing with upload",
                    error=e,
                    reason="ReplaceFailed",
                    certificate_id=material.existing_id,
                )

        try:
            payload = self._request(
                "POST",
                self._url(),
                json={
                    "certificate": material.certificate.decode("utf-8"),
                    "private_key": material.private_key.decode("utf-8"),
                    "bundle_method": "ubiquitous",
                },
            )
        except (requests.exceptions.RequestException, CloudflareAPIError, UnicodeDecodeError) as e:
            metrics.provider_operations_total.labels(
                provider=PROVIDER_CLOUDFLARE, operation="upload", result="failed"
            ).inc()
            raise UploadFailed(PROVIDER_CLOUDFLARE, e) from e

        identifier = (payload.get("result") or {}).get("id")
        if not identifier:
            metrics.provider_operations_total.labels(
                provider=PROVIDER_CLOUDFLARE, operation="upload", result="failed"
            ).inc()
            raise UploadFailed(PROVIDER_CLOUDFLARE, "response did not include a certificate id")

        metrics.provider_operations_total.labels(
            provider=PROVIDER_CLOUDFLARE, operation="upload", result="success"
        ).inc()
        return UploadOutcome(identifier=identifier)

    def delete(self, ctx: ReconcileContext, identifier: str) -> None:
        """Delete a custom certificate from the zone."""
        try:
            self._request("DELETE", self._url(identifier))
        except CloudflareAPIError as e:
            if e.status_code == 404:
                ctx.info("Certificate already absent from Cloudflare", reason="AlreadyDeleted", certificate_id=identifier)
                return
            metrics.provider_operations_total.labels(
                provider=PROVIDER_CLOUDFLARE, operation="delete", result="failed"
            ).inc()
            raise DeleteFailed(PROVIDER_CLOUDFLARE, identifier, e) from e
        except requests.exceptions.RequestException as e:
            metrics.provider_operations_total.labels(
                provider=PROVIDER_CLOUDFLARE, operation="delete", result="failed"
            ).inc()
            raise DeleteFailed(PROVIDER_CLOUDFLARE, identifier, e) from e

        metrics.provider_operations_total.labels(
            provider=PROVIDER_CLOUDFLARE, operation="delete", result="success"
        ).inc()

    def close(self) -> None:
        self.http.close()
