"""Unit tests for condition utilities."""

from __future__ import annotations

from certificate_operator.utils.conditions import (
    get_condition,
    is_condition_true,
    set_distributed_condition,
    set_issued_condition,
    set_ready_condition,
    update_condition,
)


class TestConditions:
    """Test condition utilities."""

    def test_update_condition_new(self) -> None:
        """Test adding a new condition."""
        result = update_condition([], "TestCondition", "True", "TestReason", "Test message", observed_generation=1)

        assert len(result) == 1
        assert result[0]["type"] == "TestCondition"
        assert result[0]["status"] == "True"
        assert result[0]["reason"] == "TestReason"
        assert result[0]["observedGeneration"] == 1
        assert "lastTransitionTime" in result[0]

    def test_update_condition_transition(self) -> None:
        """Test a status change moves lastTransitionTime."""
        conditions = [{
            "type": "TestCondition",
            "status": "False",
            "reason": "OldReason",
            "message": "Old message",
            "lastTransitionTime": "2023-01-01T00:00:00Z",
        }]

        result = update_condition(conditions, "TestCondition", "True", "NewReason", "New message", 2)

        assert len(result) == 1
        assert result[0]["reason"] == "NewReason"
        assert result[0]["lastTransitionTime"] != "2023-01-01T00:00:00Z"

    def test_update_condition_same_status_keeps_time(self) -> None:
        """Test an unchanged status keeps the original transition time."""
        conditions = [{
            "type": "TestCondition",
            "status": "True",
            "reason": "R",
            "message": "M",
            "lastTransitionTime": "2023-01-01T00:00:00Z",
        }]

        result = update_condition(conditions, "TestCondition", "True", "R", "M")

        assert result[0]["lastTransitionTime"] == "2023-01-01T00:00:00Z"

    def test_get_condition(self) -> None:
        """Test looking up a condition by type."""
        conditions = set_ready_condition([], True, "ok")

        assert get_condition(conditions, "Ready")["status"] == "True"
        assert get_condition(conditions, "Issued") is None
        assert is_condition_true(conditions, "Ready")
        assert not is_condition_true(None, "Ready")

    def test_set_issued_condition(self) -> None:
        """Test Issued reasons."""
        assert set_issued_condition([], True, "m")[0]["reason"] == "Issued"
        assert set_issued_condition([], False, "m")[0]["reason"] == "AwaitingIssuance"

    def test_set_distributed_condition(self) -> None:
        """Test Distributed reasons."""
        assert set_distributed_condition([], True, "m")[0]["reason"] == "Distributed"
        failed = set_distributed_condition([], False, "Upload failed for: aws")[0]
        assert failed["status"] == "False"
        assert failed["reason"] == "UploadFailed"
