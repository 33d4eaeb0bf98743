"""cert-manager backed certificate issuance driver."""

from __future__ import annotations

import time
from typing import Any, Callable

from kubernetes import client

from .. import metrics
from ..constants import (
    ACCOUNT_KEY_SUFFIX,
    ACME_SERVER,
    CERT_MANAGER_API_VERSION,
    CERT_MANAGER_GROUP,
    CERT_MANAGER_VERSION,
    COND_READY,
    FIELD_MANAGER,
    KIND_CM_CERTIFICATE,
    KIND_ISSUER,
    LABEL_MANAGED_BY,
    PLURAL_CM_CERTIFICATES,
    PLURAL_ISSUERS,
    READINESS_POLL_SECONDS,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY,
)
from ..exceptions import LookupFailed, UpdateFailed
from ..models import (
    CertificateRequestSpec,
    IssuanceResult,
    IssuerSpec,
    KeyMaterialBundle,
    Readiness,
)
from ..utils.conditions import get_condition
from ..utils.context import ReconcileContext
from ..utils.rate_limit import rate_limit_k8s
from ..utils.secrets import decode_secret_data, read_secret

PLURALS = {
    KIND_ISSUER: PLURAL_ISSUERS,
    KIND_CM_CERTIFICATE: PLURAL_CM_CERTIFICATES,
}


def build_issuer_body(spec: IssuerSpec, acme_server: str = ACME_SERVER) -> dict[str, Any]:
    """Build an ACME Issuer solving HTTP-01 challenges through an ingress class."""
    return {
        "apiVersion": CERT_MANAGER_API_VERSION,
        "kind": KIND_ISSUER,
        "metadata": {
            "name": spec.name,
            "namespace": spec.namespace,
            "labels": {LABEL_MANAGED_BY: FIELD_MANAGER},
            "ownerReferences": spec.owner_references,
        },
        "spec": {
            "acme": {
                "email": spec.email,
                "server": acme_server,
                "privateKeySecretRef": {"name": f"{spec.name}{ACCOUNT_KEY_SUFFIX}"},
                "solvers": [
                    {"http01": {"ingress": {"ingressClassName": spec.ingress_class_name}}},
                ],
            },
        },
    }


def build_certificate_body(spec: CertificateRequestSpec) -> dict[str, Any]:
    """Build a cert-manager Certificate writing its key pair to ``spec.secret_name``."""
    return {
        "apiVersion": CERT_MANAGER_API_VERSION,
        "kind": KIND_CM_CERTIFICATE,
        "metadata": {
            "name": spec.name,
            "namespace": spec.namespace,
            "labels": {LABEL_MANAGED_BY: FIELD_MANAGER},
            "ownerReferences": spec.owner_references,
        },
        "spec": {
            "dnsNames": [spec.domain],
            "secretName": spec.secret_name,
            "issuerRef": {
                "name": spec.issuer_name,
                "kind": KIND_ISSUER,
                "group": CERT_MANAGER_GROUP,
            },
        },
    }


def is_subset(desired: Any, actual: Any) -> bool:
    """Return True when every value in ``desired`` is present in ``actual``.

    Fields defaulted by the API server or cert-manager's webhook are ignored.
    """
    if isinstance(desired, dict):
        if not isinstance(actual, dict):
            return False
        return all(key in actual and is_subset(value, actual[key]) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(actual, list) or len(desired) != len(actual):
            return False
        return all(is_subset(d, a) for d, a in zip(desired, actual))
    return desired == actual


def merge_owner_references(
    existing: list[dict[str, Any]] | None,
    desired: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Add the desired owner references to the existing ones, keyed by owner uid.

    Existing references are kept as they are, so Certificates sharing an
    Issuer never take ownership away from each other.
    """
    merged = [dict(ref) for ref in existing or []]
    known = {ref.get("uid") for ref in merged}
    for ref in desired:
        if ref.get("uid") not in known:
            merged.append(dict(ref))
            known.add(ref.get("uid"))
    return merged


class CertManagerDriver:
    """Issues certificates through cert-manager Issuer and Certificate objects."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        core_api: client.CoreV1Api,
        acme_server: str = ACME_SERVER,
        poll_interval: float = READINESS_POLL_SECONDS,
    ) -> None:
        self.custom_api = custom_api
        self.core_api = core_api
        self.acme_server = acme_server
        self.poll_interval = poll_interval

    def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = rate_limit_k8s(func)(**kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except Exception:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def _get(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        try:
            return self._call(
                f"get_{kind.lower()}",
                self.custom_api.get_namespaced_custom_object,
                group=CERT_MANAGER_GROUP,
                version=CERT_MANAGER_VERSION,
                namespace=namespace,
                plural=PLURALS[kind],
                name=name,
            )
        except client.exceptions.ApiException as e:
            raise LookupFailed(kind, name, namespace, e) from e

    @staticmethod
    def _needs_patch(body: dict[str, Any], existing: dict[str, Any]) -> bool:
        current_refs = (existing.get("metadata") or {}).get("ownerReferences") or []
        owners = {ref.get("uid") for ref in current_refs}
        if any(ref.get("uid") not in owners for ref in body["metadata"]["ownerReferences"]):
            return True
        return not is_subset({"metadata": {"labels": body["metadata"]["labels"]}, "spec": body["spec"]}, existing)

    def _upsert(self, ctx: ReconcileContext, kind: str, body: dict[str, Any]) -> IssuanceResult:
        name = body["metadata"]["name"]
        namespace = body["metadata"]["namespace"]
        plural = PLURALS[kind]

        try:
            existing = self._get(kind, name, namespace)
        except LookupFailed as e:
            if not (isinstance(e.cause, client.exceptions.ApiException) and e.cause.status == 404):
                raise
            existing = None

        try:
            if existing is None:
                ctx.info(f"Creating {kind} {name}", reason=f"{kind}Created", object_name=name)
                obj = self._call(
                    f"create_{kind.lower()}",
                    self.custom_api.create_namespaced_custom_object,
                    group=CERT_MANAGER_GROUP,
                    version=CERT_MANAGER_VERSION,
                    namespace=namespace,
                    plural=plural,
                    body=body,
                    field_manager=FIELD_MANAGER,
                )
            elif self._needs_patch(body, existing):
                current = existing.get("metadata") or {}
                patch_meta = {
                    "labels": body["metadata"]["labels"],
                    "ownerReferences": merge_owner_references(
                        current.get("ownerReferences"), body["metadata"]["ownerReferences"]
                    ),
                }
                # A concurrent owner change fails with 409 and is retried on the next pass
                if current.get("resourceVersion"):
                    patch_meta["resourceVersion"] = current["resourceVersion"]
                ctx.info(f"Updating {kind} {name}", reason=f"{kind}Updated", object_name=name)
                obj = self._call(
                    f"patch_{kind.lower()}",
                    self.custom_api.patch_namespaced_custom_object,
                    group=CERT_MANAGER_GROUP,
                    version=CERT_MANAGER_VERSION,
                    namespace=namespace,
                    plural=plural,
                    name=name,
                    body={"metadata": patch_meta, "spec": body["spec"]},
                    field_manager=FIELD_MANAGER,
                )
            else:
                obj = existing
        except client.exceptions.ApiException as e:
            raise UpdateFailed(kind, name, namespace, e) from e

        return IssuanceResult(kind=kind, name=name, namespace=namespace, obj=obj or {})

    def ensure_issuer(self, ctx: ReconcileContext, spec: IssuerSpec) -> IssuanceResult:
        """Create or update the ACME Issuer.

        Raises:
            LookupFailed: If the existing Issuer cannot be read
            UpdateFailed: If the Issuer cannot be created or patched
        """
        return self._upsert(ctx, KIND_ISSUER, build_issuer_body(spec, self.acme_server))

    def ensure_certificate(self, ctx: ReconcileContext, spec: CertificateRequestSpec) -> IssuanceResult:
        """Create or update the cert-manager Certificate.

        Raises:
            LookupFailed: If the existing Certificate cannot be read
            UpdateFailed: If the Certificate cannot be created or patched
        """
        return self._upsert(ctx, KIND_CM_CERTIFICATE, build_certificate_body(spec))

    def get_key_material(
        self,
        ctx: ReconcileContext,
        secret_name: str,
        namespace: str,
    ) -> KeyMaterialBundle | None:
        """Read the TLS secret written by cert-manager.

        Returns:
            The key pair, or None when the secret exists but is not populated yet

        Raises:
            LookupFailed: If the secret does not exist or cannot be read
        """
        secret = read_secret(self.core_api, namespace, secret_name)
        data = decode_secret_data(secret)

        certificate = data.get(TLS_CERT_KEY, b"")
        private_key = data.get(TLS_PRIVATE_KEY, b"")
        if not certificate or not private_key:
            ctx.info("TLS secret is empty, waiting", reason="SecretEmpty", secret=secret_name)
            return None

        return KeyMaterialBundle(certificate=certificate, private_key=private_key, secret=secret)

    def check_readiness(self, ctx: ReconcileContext, ref: IssuanceResult) -> Readiness:
        """Inspect the Ready condition of an Issuer or Certificate.

        A pending object is an expected state and yields a Readiness with a
        fixed requeue interval rather than an error.

        Raises:
            LookupFailed: If the object cannot be read
        """
        obj = ref.obj or self._get(ref.kind, ref.name, ref.namespace)
        conditions = (obj.get("status") or {}).get("conditions") or []
        ready = get_condition(conditions, COND_READY)

        if ready is not None and ready.get("status") == "True":
            return Readiness(ready=True, message=f"{ref.kind} {ref.name} is ready")

        detail = (ready or {}).get("message") or "no Ready condition reported yet"
        message = f"Waiting for {ref.kind} {ref.name} to be ready: {detail}"
        ctx.info(message, reason="WaitingForReadiness", object_kind=ref.kind, object_name=ref.name)
        return Readiness(ready=False, requeue_after=self.poll_interval, message=message)
