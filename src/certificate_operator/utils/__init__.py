"""Utility functions for the Certificate Operator."""

from .conditions import (
    get_condition,
    is_condition_true,
    set_distributed_condition,
    set_issued_condition,
    set_ready_condition,
    update_condition,
)
from .context import ReconcileContext, new_correlation_id
from .errors import sanitize_dict, sanitize_error_message, sanitize_exception
from .events import emit_event
from .rate_limit import rate_limit_cloud, rate_limit_k8s
from .secrets import decode_secret_data, read_secret, read_secret_data, read_secret_strings

__all__ = [
    "update_condition",
    "get_condition",
    "is_condition_true",
    "set_ready_condition",
    "set_issued_condition",
    "set_distributed_condition",
    "ReconcileContext",
    "new_correlation_id",
    "sanitize_error_message",
    "sanitize_exception",
    "sanitize_dict",
    "emit_event",
    "rate_limit_k8s",
    "rate_limit_cloud",
    "decode_secret_data",
    "read_secret",
    "read_secret_data",
    "read_secret_strings",
]
