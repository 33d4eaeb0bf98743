"""Per-pass reconciliation context threaded through every driver call."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..constants import KIND_CERTIFICATE
from ..exceptions import ReconcileCancelled
from ..logging import log_resource_event


class StopFlag(Protocol):
    """Anything with ``is_set()``: threading.Event, kopf's DaemonStopped, ..."""

    def is_set(self) -> bool:
        ...


def new_correlation_id() -> str:
    """Generate a correlation ID for one reconciliation pass."""
    return uuid.uuid4().hex[:16]


@dataclass
class ReconcileContext:
    """Logger, identity and cancellation for a single reconciliation pass.

    Every manager and driver call receives the context explicitly, so there is
    no module-level logger or correlation state shared between passes.
    """

    name: str
    namespace: str
    uid: str = ""
    kind: str = KIND_CERTIFICATE
    logger: logging.Logger | logging.LoggerAdapter = field(
        default_factory=lambda: logging.getLogger("certificate_operator")
    )
    correlation_id: str = field(default_factory=new_correlation_id)
    stopped: StopFlag | None = None

    @classmethod
    def from_meta(
        cls,
        meta: dict[str, Any],
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        stopped: StopFlag | None = None,
    ) -> ReconcileContext:
        return cls(
            name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", "unknown"),
            logger=logger or logging.getLogger("certificate_operator"),
            stopped=stopped,
        )

    @property
    def cancelled(self) -> bool:
        return self.stopped is not None and self.stopped.is_set()

    def check_cancelled(self) -> None:
        """Raise ReconcileCancelled if the pass has been asked to stop."""
        if self.cancelled:
            raise ReconcileCancelled(f"Reconciliation of {self.namespace}/{self.name} cancelled")

    def get_context_dict(self, additional: dict[str, Any] | None = None) -> dict[str, Any]:
        """Get a dictionary of context values for structured logs."""
        ctx = {"correlation_id": self.correlation_id}
        if additional:
            ctx.update(additional)
        return ctx

    def _log(self, level: int, message: str, event: str, reason: str, **kwargs: Any) -> None:
        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=self.name,
            namespace=self.namespace,
            uid=self.uid,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **self.get_context_dict(kwargs),
        )

    def debug(self, message: str, reason: str = "Debug", **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, "debug", reason, **kwargs)

    def info(self, message: str, reason: str = "Info", **kwargs: Any) -> None:
        self._log(logging.INFO, message, "info", reason, **kwargs)

    def warning(self, message: str, reason: str = "Warning", **kwargs: Any) -> None:
        self._log(logging.WARNING, message, "warning", reason, **kwargs)

    def error(
        self,
        message: str,
        error: Exception | None = None,
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        if error is not None:
            from .errors import sanitize_exception

            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, message, "error", reason, **kwargs)
