"""Tests for Prometheus metrics."""

from __future__ import annotations

from certificate_operator.metrics import (
    api_call_duration_seconds,
    api_call_total,
    certificate_uploads_total,
    error_total,
    provider_operations_total,
    rate_limit_hits_total,
    reconcile_duration_seconds,
    reconcile_total,
)


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    def test_reconcile_total_exists(self):
        """Test reconcile_total counter exists."""
        # Prometheus counters don't include "_total" in their _name attribute
        assert reconcile_total._name == "certificate_operator_reconcile"

    def test_reconcile_duration_exists(self):
        """Test reconcile_duration_seconds histogram exists."""
        assert reconcile_duration_seconds._name == "certificate_operator_reconcile_duration_seconds"

    def test_provider_operations_total_exists(self):
        """Test provider_operations_total counter exists."""
        assert provider_operations_total._name == "certificate_operator_provider_operations"

    def test_certificate_uploads_total_exists(self):
        """Test certificate_uploads_total counter exists."""
        assert certificate_uploads_total._name == "certificate_operator_certificate_uploads"

    def test_remaining_metrics_exist(self):
        """Test API and error metrics exist."""
        assert error_total._name == "certificate_operator_error"
        assert api_call_total._name == "certificate_operator_api_call"
        assert api_call_duration_seconds._name == "certificate_operator_api_call_duration_seconds"
        assert rate_limit_hits_total._name == "certificate_operator_rate_limit_hits"


class TestMetricsLabels:
    """Test that metrics accept their labels."""

    def test_provider_operation_labels(self):
        """Test provider operations are labelled by provider, operation and result."""
        before = provider_operations_total.labels(provider="aws", operation="upload", result="success")._value.get()

        provider_operations_total.labels(provider="aws", operation="upload", result="success").inc()

        after = provider_operations_total.labels(provider="aws", operation="upload", result="success")._value.get()
        assert after == before + 1

    def test_upload_reason_label(self):
        """Test uploads are labelled by reason."""
        certificate_uploads_total.labels(reason="renewal").inc()
