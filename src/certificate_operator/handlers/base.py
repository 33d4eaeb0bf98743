"""Base handler class with common functionality for CRD handlers."""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

import kopf

from .. import metrics
from ..constants import FINALIZER
from ..exceptions import ReconcileCancelled
from ..utils.context import ReconcileContext
from ..utils.errors import sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_reconcile_started

_T = TypeVar("_T")


class BaseHandler:
    """Base class for CRD handlers with finalizer and metrics plumbing."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "Certificate")
        """
        self.kind = kind

    def ensure_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> bool:
        """Ensure finalizer is present in metadata.

        Returns:
            True if the finalizer had to be added
        """
        if FINALIZER in (meta.get("finalizers") or []):
            return False
        finalizers = self._staged_finalizers(meta, patch)
        if FINALIZER not in finalizers:
            finalizers.append(FINALIZER)
        patch.metadata["finalizers"] = finalizers
        return True

    def remove_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Remove finalizer from metadata."""
        finalizers = self._staged_finalizers(meta, patch)
        if FINALIZER in finalizers:
            finalizers.remove(FINALIZER)
            patch.metadata["finalizers"] = finalizers if finalizers else None

    @staticmethod
    def _staged_finalizers(meta: dict[str, Any], patch: kopf.Patch) -> list[str]:
        """Finalizer list to edit, starting from any list already staged in the patch.

        kopf stages its own marker changes in the same patch, so edits made
        here and by kopf during one cycle are applied together.
        """
        staged = patch.metadata.get("finalizers")
        if staged is not None:
            return list(staged)
        return list(meta.get("finalizers") or [])

    def reconcile_with_metrics(
        self,
        ctx: ReconcileContext,
        meta: dict[str, Any],
        reconcile_fn: Callable[[], _T],
    ) -> _T:
        """Execute reconciliation with metrics, events and error logging.

        Errors are re-raised so kopf can retry the handler.

        Args:
            ctx: Context of the current pass
            meta: Kubernetes resource metadata
            reconcile_fn: Function to execute for reconciliation

        Returns:
            Whatever ``reconcile_fn`` returns
        """
        emit_reconcile_started(meta)
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()
        ctx.debug("Reconciliation started", reason="ReconcileStarted")

        start_time = time.time()
        try:
            result = reconcile_fn()
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            return result
        except ReconcileCancelled:
            ctx.info("Reconciliation cancelled", reason="ReconcileCancelled")
            metrics.reconcile_total.labels(kind=self.kind, result="cancelled").inc()
            raise
        except Exception as e:
            sanitized_error = sanitize_exception(e)
            error_type = type(e).__name__
            metrics.error_total.labels(kind=self.kind, error_type=error_type).inc()
            ctx.error("Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(meta, f"Reconciliation failed: {sanitized_error}")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)
