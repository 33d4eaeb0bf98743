"""Utilities for reading Kubernetes secrets."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from kubernetes import client

from ..exceptions import LookupFailed
from .rate_limit import rate_limit_k8s


def decode_secret_data(secret: Any) -> dict[str, bytes]:
    """Decode the ``data`` map of a V1Secret into raw bytes.

    Args:
        secret: V1Secret returned by CoreV1Api

    Returns:
        Dictionary of key -> decoded bytes
    """
    result: dict[str, bytes] = {}
    for key, value in (secret.data or {}).items():
        if value is None:
            result[key] = b""
        elif isinstance(value, str):
            # Normal case: the API returns base64 text
            try:
                result[key] = base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                result[key] = value.encode("utf-8")
        else:
            result[key] = bytes(value)
    return result


def read_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> Any:
    """Read a secret object.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret

    Returns:
        V1Secret

    Raises:
        LookupFailed: If the secret does not exist or cannot be read
    """
    try:
        return rate_limit_k8s(api.read_namespaced_secret)(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        raise LookupFailed("Secret", secret_name, namespace, e) from e


def read_secret_data(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> dict[str, bytes]:
    """Read all data from a Kubernetes secret as bytes.

    Raises:
        LookupFailed: If the secret does not exist or cannot be read
    """
    return decode_secret_data(read_secret(api, namespace, secret_name))


def read_secret_strings(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> dict[str, str]:
    """Read a credentials secret, decoding values as stripped UTF-8 text."""
    return {
        key: value.decode("utf-8").strip()
        for key, value in read_secret_data(api, namespace, secret_name).items()
    }


def is_not_found(error: LookupFailed) -> bool:
    """Return True when a LookupFailed was caused by a 404."""
    cause = error.cause
    return isinstance(cause, client.exceptions.ApiException) and cause.status == 404
