"""Handler for Certificate CRD."""

from __future__ import annotations

import threading
from typing import Any, Callable

import kopf

from ..constants import (
    ACME_SERVER,
    API_GROUP,
    API_VERSION,
    FINALIZER,
    KIND_CERTIFICATE,
    PLURAL_CERTIFICATES,
    READINESS_POLL_SECONDS,
    RECONCILE_INTERVAL_SECONDS,
)
from ..drivers.issuance import CertManagerDriver
from ..manager import CertificateManager
from ..models import CertificateResource, ReconcileResult
from ..tracing import trace_span
from ..utils.context import ReconcileContext
from ..utils.events import (
    emit_certificate_deleted,
    emit_certificate_uploaded,
    emit_delete_failed,
    emit_finalized,
    emit_upload_failed,
    emit_waiting_for_issuance,
)
from .base import BaseHandler
from .shared import get_k8s_clients

MEMO_LOCK_KEY = "reconcile_lock"


def build_manager() -> CertificateManager:
    """Create a manager wired to the cluster's cert-manager and core APIs."""
    custom_api, core_api = get_k8s_clients()
    driver = CertManagerDriver(
        custom_api,
        core_api,
        acme_server=ACME_SERVER,
        poll_interval=READINESS_POLL_SECONDS,
    )
    return CertificateManager(driver, core_api)


class CertificateHandler(BaseHandler):
    """Handler for Certificate resources."""

    def __init__(self, manager_factory: Callable[[], CertificateManager] = build_manager):
        """Initialize certificate handler.

        Args:
            manager_factory: Builds the manager on first use, so importing
                this module does not require cluster credentials
        """
        super().__init__(KIND_CERTIFICATE)
        self._manager_factory = manager_factory
        self._manager: CertificateManager | None = None
        self._manager_lock = threading.Lock()

    @property
    def manager(self) -> CertificateManager:
        with self._manager_lock:
            if self._manager is None:
                self._manager = self._manager_factory()
            return self._manager

    def reconcile(
        self,
        ctx: ReconcileContext,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> ReconcileResult:
        """Reconcile a Certificate resource.

        Returns:
            When the resource should be looked at again
        """
        resource = CertificateResource.from_kopf(spec, meta, status)

        with trace_span("reconcile_certificate", kind=KIND_CERTIFICATE, attributes={"certificate.name": resource.name}):
            if resource.being_deleted:
                return self.finalize(ctx, resource, meta, patch)

            # The finalizer is persisted on its own before any cloud-side record can exist
            if self.ensure_finalizer(meta, patch):
                ctx.info("Added finalizer", reason="FinalizerAdded")
                return ReconcileResult(requeue_after=0.0, waiting=True, message="Finalizer added, distribution follows")

            result = self.manager.process(ctx, resource)

            if result.changed:
                patch.status.update(result.status.to_dict())

            for provider, identifier in sorted(result.uploaded.items()):
                emit_certificate_uploaded(meta, provider, identifier)
            for provider, message in sorted(result.failures.items()):
                emit_upload_failed(meta, provider, message)

            if result.waiting:
                emit_waiting_for_issuance(meta, result.message)
                return ReconcileResult(
                    requeue_after=result.requeue_after or READINESS_POLL_SECONDS,
                    waiting=True,
                    message=result.message,
                )

            return ReconcileResult(requeue_after=RECONCILE_INTERVAL_SECONDS, message=result.message)

    def finalize(
        self,
        ctx: ReconcileContext,
        resource: CertificateResource,
        meta: dict[str, Any],
        patch: kopf.Patch,
    ) -> ReconcileResult:
        """Delete cloud-side certificates, then release the finalizer.

        Delete failures are reported as Warning events and never hold the
        finalizer; the external record may then need manual cleanup.
        """
        # Recorded identifiers are deleted even if our marker never made it onto the object
        if FINALIZER not in resource.finalizers and not resource.status.recorded_identifiers():
            ctx.debug("Finalizer already removed", reason="Finalized")
            return ReconcileResult(requeue_after=0.0, message="Already finalized")

        ctx.info("Certificate is being deleted", reason="Deletion")
        teardown = self.manager.teardown(ctx, resource)

        for provider, identifier in sorted(teardown.deleted.items()):
            emit_certificate_deleted(meta, provider, identifier)
        for provider, message in sorted(teardown.failures.items()):
            emit_delete_failed(meta, provider, message)

        self.remove_finalizer(meta, patch)
        emit_finalized(meta)
        ctx.info("Removed finalizer", reason="Finalized", failed_providers=sorted(teardown.failures))
        return ReconcileResult(requeue_after=0.0, message="Finalized")


def _object_lock(memo: kopf.Memo) -> threading.Lock:
    """Per-object lock shared by the event, delete and timer handlers."""
    return memo.setdefault(MEMO_LOCK_KEY, threading.Lock())


# Global handler instance
_handler = CertificateHandler()


def _run(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    memo: kopf.Memo,
    kwargs: dict[str, Any],
) -> ReconcileResult:
    ctx = ReconcileContext.from_meta(meta, logger=kwargs.get("logger"), stopped=kwargs.get("stopped"))
    with _object_lock(memo):
        return _handler.reconcile_with_metrics(
            ctx,
            meta,
            lambda: _handler.reconcile(ctx, spec, meta, status, patch),
        )


@kopf.on.create(API_GROUP, API_VERSION, PLURAL_CERTIFICATES)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_CERTIFICATES)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_CERTIFICATES)
def handle_certificate(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Handle Certificate resource reconciliation."""
    result = _run(spec, meta, status, patch, memo, kwargs)
    if result.waiting:
        raise kopf.TemporaryError(result.message, delay=result.requeue_after)


@kopf.on.delete(API_GROUP, API_VERSION, PLURAL_CERTIFICATES)
def handle_certificate_delete(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Handle Certificate resource deletion."""
    _run(spec, meta, status, patch, memo, kwargs)


@kopf.timer(API_GROUP, API_VERSION, PLURAL_CERTIFICATES, interval=RECONCILE_INTERVAL_SECONDS, initial_delay=RECONCILE_INTERVAL_SECONDS)
def periodic_certificate_reconcile(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Re-run the forward pass so renewed certificates are redistributed."""
    if meta.get("deletionTimestamp"):
        return
    _run(spec, meta, status, patch, memo, kwargs)
