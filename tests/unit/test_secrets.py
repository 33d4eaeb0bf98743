"""Tests for Kubernetes secrets utilities."""

from __future__ import annotations

import base64
from unittest.mock import Mock

import pytest
from kubernetes.client.exceptions import ApiException

from certificate_operator.exceptions import LookupFailed
from certificate_operator.utils.secrets import (
    decode_secret_data,
    is_not_found,
    read_secret,
    read_secret_data,
    read_secret_strings,
)


class TestDecodeSecretData:
    """Test cases for decode_secret_data function."""

    def test_base64_values(self):
        """Test that base64 values are decoded."""
        secret = Mock()
        secret.data = {"tls.crt": base64.b64encode(b"cert").decode()}

        assert decode_secret_data(secret) == {"tls.crt": b"cert"}

    def test_empty_and_none(self):
        """Test empty and missing values decode to empty bytes."""
        secret = Mock()
        secret.data = {"tls.crt": "", "tls.key": None}

        assert decode_secret_data(secret) == {"tls.crt": b"", "tls.key": b""}

    def test_no_data(self):
        """Test a secret without data."""
        secret = Mock()
        secret.data = None

        assert decode_secret_data(secret) == {}


class TestReadSecret:
    """Test cases for secret reads."""

    def test_read_secret_data(self):
        """Test successfully reading a secret."""
        api = Mock()
        api.read_namespaced_secret.return_value.data = {"api-token": base64.b64encode(b"tok").decode()}

        assert read_secret_data(api, "default", "cf-creds") == {"api-token": b"tok"}
        api.read_namespaced_secret.assert_called_once_with(name="cf-creds", namespace="default")

    def test_read_secret_strings(self):
        """Test values are decoded and stripped."""
        api = Mock()
        api.read_namespaced_secret.return_value.data = {"region": base64.b64encode(b" us-east-1\n").decode()}

        assert read_secret_strings(api, "default", "aws-creds") == {"region": "us-east-1"}

    def test_not_found(self):
        """Test a 404 becomes LookupFailed flagged as not found."""
        api = Mock()
        api.read_namespaced_secret.side_effect = ApiException(status=404)

        with pytest.raises(LookupFailed) as exc_info:
            read_secret(api, "default", "missing")

        assert is_not_found(exc_info.value)
        assert exc_info.value.kind == "Secret"

    def test_forbidden(self):
        """Test other errors are not reported as not found."""
        api = Mock()
        api.read_namespaced_secret.side_effect = ApiException(status=403)

        with pytest.raises(LookupFailed) as exc_info:
            read_secret(api, "default", "locked")

        assert not is_not_found(exc_info.value)
