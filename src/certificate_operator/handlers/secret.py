"""Watch for TLS secrets written by cert-manager.

A renewed key pair lands in ``{name}-tls`` without touching the owning
Certificate, so the change is relayed by stamping the secret's
resourceVersion onto the owner. kopf then sees an annotation change and runs
the update handler without waiting for the periodic timer.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import kopf
from kubernetes import client

from .. import metrics
from ..constants import (
    ANNOTATION_CM_CERTIFICATE_NAME,
    ANNOTATION_TLS_SECRET_VERSION,
    API_GROUP,
    API_VERSION,
    CM_CERTIFICATE_SUFFIX,
    FIELD_MANAGER,
    KIND_CERTIFICATE,
    PLURAL_CERTIFICATES,
    TLS_SECRET_SUFFIX,
)
from ..exceptions import UpdateFailed
from ..utils.rate_limit import rate_limit_k8s
from .shared import get_k8s_clients

logger = logging.getLogger(__name__)


def tls_secret_name(certificate_name: str) -> str:
    """Name of the secret cert-manager fills for a Certificate."""
    return f"{certificate_name}{TLS_SECRET_SUFFIX}"


def certificate_name_for_secret(secret_name: str) -> str | None:
    """Map a TLS secret name back to its Certificate, or None if it is not one of ours."""
    if not secret_name.endswith(TLS_SECRET_SUFFIX) or secret_name == TLS_SECRET_SUFFIX:
        return None
    return secret_name[: -len(TLS_SECRET_SUFFIX)]


def is_managed_secret(meta: dict[str, Any]) -> bool:
    """True when the secret was issued for a cert-manager Certificate we created."""
    owner = certificate_name_for_secret(meta.get("name", ""))
    if owner is None:
        return False
    annotations = meta.get("annotations") or {}
    return annotations.get(ANNOTATION_CM_CERTIFICATE_NAME) == f"{owner}{CM_CERTIFICATE_SUFFIX}"


def notify_owner(api: client.CustomObjectsApi, namespace: str, certificate_name: str, version: str) -> bool:
    """Stamp the secret version onto the owning Certificate.

    Returns:
        False when the Certificate no longer exists

    Raises:
        UpdateFailed: If the patch is rejected for any other reason
    """
    start_time = time.time()
    try:
        rate_limit_k8s(api.patch_namespaced_custom_object)(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURAL_CERTIFICATES,
            name=certificate_name,
            body={"metadata": {"annotations": {ANNOTATION_TLS_SECRET_VERSION: version}}},
            field_manager=FIELD_MANAGER,
        )
        metrics.api_call_total.labels(api_type="k8s", operation="annotate_certificate", result="success").inc()
        return True
    except client.exceptions.ApiException as e:
        if e.status == 404:
            metrics.api_call_total.labels(api_type="k8s", operation="annotate_certificate", result="not_found").inc()
            return False
        metrics.api_call_total.labels(api_type="k8s", operation="annotate_certificate", result="error").inc()
        raise UpdateFailed(KIND_CERTIFICATE, certificate_name, namespace, e) from e
    finally:
        duration = time.time() - start_time
        metrics.api_call_duration_seconds.labels(api_type="k8s", operation="annotate_certificate").observe(duration)


@kopf.on.event("", "v1", "secrets", annotations={ANNOTATION_CM_CERTIFICATE_NAME: kopf.PRESENT})
def handle_tls_secret_event(
    event: dict[str, Any],
    meta: dict[str, Any],
    **kwargs: Any,
) -> None:
    """Relay TLS secret changes to the owning Certificate."""
    if event.get("type") == "DELETED" or not is_managed_secret(meta):
        return

    owner = certificate_name_for_secret(meta.get("name", ""))
    namespace = meta.get("namespace", "default")
    version = str(meta.get("resourceVersion", ""))

    custom_api, _ = get_k8s_clients()
    if notify_owner(custom_api, namespace, owner, version):
        logger.debug(f"Relayed TLS secret {namespace}/{meta.get('name')} version {version} to {owner}")
