"""Tests for rate limiting utilities."""

from __future__ import annotations

from unittest.mock import patch

from certificate_operator.utils.rate_limit import _Throttle, rate_limit_cloud, rate_limit_k8s


class TestRateLimitDecorators:
    """Test cases for the rate limiting decorators."""

    def test_rate_limit_k8s_passes_through(self):
        """Test that k8s rate limiting keeps arguments and return value."""
        @rate_limit_k8s
        def test_func(a, b, c=None):
            return f"{a}-{b}-{c}"

        assert test_func("x", "y", c="z") == "x-y-z"

    def test_rate_limit_cloud_passes_through(self):
        """Test that cloud rate limiting keeps the return value."""
        @rate_limit_cloud
        def test_func():
            return "success"

        assert test_func() == "success"

    def test_preserves_name(self):
        """Test that the wrapper keeps the function name."""
        @rate_limit_k8s
        def named_function():
            return None

        assert named_function.__name__ == "named_function"


class TestThrottle:
    """Test cases for _Throttle."""

    @patch("certificate_operator.utils.rate_limit.time.sleep")
    @patch("certificate_operator.utils.rate_limit.metrics")
    def test_second_call_waits(self, mock_metrics, mock_sleep):
        """Test back-to-back calls sleep and count a hit."""
        throttle = _Throttle("test", per_second=1.0)

        throttle.wait()
        throttle.wait()

        mock_sleep.assert_called_once()
        assert 0 < mock_sleep.call_args.args[0] <= 1.0
        mock_metrics.rate_limit_hits_total.labels.assert_called_once_with(api_type="test")

    @patch("certificate_operator.utils.rate_limit.time.sleep")
    def test_unlimited(self, mock_sleep):
        """Test a zero rate disables throttling."""
        throttle = _Throttle("test", per_second=0)

        throttle.wait()
        throttle.wait()

        mock_sleep.assert_not_called()
