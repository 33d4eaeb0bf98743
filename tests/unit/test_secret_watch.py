"""Tests for the TLS secret watch."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.exceptions import ApiException

from certificate_operator.constants import ANNOTATION_CM_CERTIFICATE_NAME, ANNOTATION_TLS_SECRET_VERSION
from certificate_operator.exceptions import UpdateFailed
from certificate_operator.handlers.secret import (
    certificate_name_for_secret,
    handle_tls_secret_event,
    is_managed_secret,
    notify_owner,
    tls_secret_name,
)


class TestSecretNames:
    """Test cases for secret name mapping."""

    def test_tls_secret_name(self):
        """Test the TLS secret name is derived from the Certificate name."""
        assert tls_secret_name("example") == "example-tls"

    def test_round_trip(self):
        """Test the secret maps back to its Certificate."""
        assert certificate_name_for_secret(tls_secret_name("web-app")) == "web-app"

    def test_foreign_secret(self):
        """Test secrets without the suffix are not ours."""
        assert certificate_name_for_secret("db-password") is None
        assert certificate_name_for_secret("-tls") is None

    def test_managed_secret_requires_matching_annotation(self):
        """Test only secrets issued for our cert-manager Certificate count."""
        meta = {"name": "example-tls", "annotations": {ANNOTATION_CM_CERTIFICATE_NAME: "example-cert"}}
        assert is_managed_secret(meta)

        meta["annotations"][ANNOTATION_CM_CERTIFICATE_NAME] = "someone-else"
        assert not is_managed_secret(meta)


class TestNotifyOwner:
    """Test cases for notify_owner."""

    def test_patches_annotation(self):
        """Test the resourceVersion is stamped on the owner."""
        api = MagicMock()

        assert notify_owner(api, "default", "example", "42")

        body = api.patch_namespaced_custom_object.call_args.kwargs["body"]
        assert body == {"metadata": {"annotations": {ANNOTATION_TLS_SECRET_VERSION: "42"}}}
        assert api.patch_namespaced_custom_object.call_args.kwargs["name"] == "example"

    def test_owner_gone(self):
        """Test a missing owner is not an error."""
        api = MagicMock()
        api.patch_namespaced_custom_object.side_effect = ApiException(status=404)

        assert notify_owner(api, "default", "example", "42") is False

    def test_other_error_raises(self):
        """Test other API errors are surfaced."""
        api = MagicMock()
        api.patch_namespaced_custom_object.side_effect = ApiException(status=500)

        with pytest.raises(UpdateFailed):
            notify_owner(api, "default", "example", "42")


class TestHandleTlsSecretEvent:
    """Test cases for the kopf event handler."""

    @patch("certificate_operator.handlers.secret.get_k8s_clients")
    def test_relays_modification(self, mock_clients):
        """Test a modified TLS secret notifies the owner."""
        api = MagicMock()
        mock_clients.return_value = (api, MagicMock())
        meta = {
            "name": "example-tls",
            "namespace": "apps",
            "resourceVersion": "1001",
            "annotations": {ANNOTATION_CM_CERTIFICATE_NAME: "example-cert"},
        }

        handle_tls_secret_event(event={"type": "MODIFIED"}, meta=meta)

        kwargs = api.patch_namespaced_custom_object.call_args.kwargs
        assert kwargs["namespace"] == "apps"
        assert kwargs["name"] == "example"

    @patch("certificate_operator.handlers.secret.get_k8s_clients")
    def test_ignores_deletion(self, mock_clients):
        """Test secret deletion is not relayed."""
        meta = {"name": "example-tls", "annotations": {ANNOTATION_CM_CERTIFICATE_NAME: "example-cert"}}

        handle_tls_secret_event(event={"type": "DELETED"}, meta=meta)

        mock_clients.assert_not_called()
