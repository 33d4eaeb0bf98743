"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CERTIFICATE_DELETED,
    EVENT_REASON_CERTIFICATE_UPLOADED,
    EVENT_REASON_DELETE_FAILED,
    EVENT_REASON_FINALIZED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_UPLOAD_FAILED,
    EVENT_REASON_WAITING_FOR_ISSUANCE,
)


def emit_event(
    meta: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        meta: Resource metadata
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        meta,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(meta: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(meta, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(meta: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(meta, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_waiting_for_issuance(meta: dict[str, Any], message: str) -> None:
    """Emit waiting-for-issuance event."""
    emit_event(meta, EVENT_REASON_WAITING_FOR_ISSUANCE, message)


def emit_certificate_uploaded(meta: dict[str, Any], provider: str, identifier: str) -> None:
    """Emit certificate uploaded event."""
    emit_event(
        meta,
        EVENT_REASON_CERTIFICATE_UPLOADED,
        f"Certificate uploaded to {provider} ({identifier})",
    )


def emit_upload_failed(meta: dict[str, Any], provider: str, message: str) -> None:
    """Emit upload failed event."""
    emit_event(
        meta,
        EVENT_REASON_UPLOAD_FAILED,
        f"Upload to {provider} failed: {message}",
        type_="Warning",
    )


def emit_certificate_deleted(meta: dict[str, Any], provider: str, identifier: str) -> None:
    """Emit certificate deleted event."""
    emit_event(
        meta,
        EVENT_REASON_CERTIFICATE_DELETED,
        f"Certificate {identifier} deleted from {provider}",
    )


def emit_delete_failed(meta: dict[str, Any], provider: str, message: str) -> None:
    """Emit delete failed event; the record may need manual cleanup."""
    emit_event(
        meta,
        EVENT_REASON_DELETE_FAILED,
        f"Delete from {provider} failed, manual cleanup may be required: {message}",
        type_="Warning",
    )


def emit_finalized(meta: dict[str, Any]) -> None:
    """Emit finalized event."""
    emit_event(meta, EVENT_REASON_FINALIZED, "Cloud certificates cleaned up, finalizer removed")
