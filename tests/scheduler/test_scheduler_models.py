"""
Test cases for scheduler models and data structures.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from scheduler.models import (
    CheckOutcome, CycleResult, ResourceEvent, ResourceEventType,
    SchedulerConfig, SchedulerState
)


class TestEnums:
    """Test cases for scheduler enums."""

    def test_check_outcome_values(self):
        assert CheckOutcome.UNCHANGED == "unchanged"
        assert CheckOutcome.BASELINE == "baseline"
        assert CheckOutcome.CHANGED == "changed"
        assert CheckOutcome.FETCH_FAILED == "fetch_failed"

    def test_scheduler_state_values(self):
        assert {state.value for state in SchedulerState} == {"idle", "cycle_in_flight", "waiting"}

    def test_invalid_outcome(self):
        with pytest.raises(ValueError):
            CheckOutcome("invalid")


class TestCycleResult:
    """Test cases for CycleResult model."""

    def test_empty_result(self):
        result = CycleResult(cycle_id="c1")

        assert result.any_change is False
        assert result.resources_checked == 0
        assert result.duration_seconds == 0.0
        assert result.changed_ids() == []

    def test_counts(self):
        result = CycleResult(
            cycle_id="c1",
            outcomes={
                "a": CheckOutcome.CHANGED,
                "b": CheckOutcome.UNCHANGED,
                "c": CheckOutcome.FETCH_FAILED,
                "d": CheckOutcome.CHANGED,
            }
        )

        assert result.any_change is True
        assert result.resources_checked == 4
        assert result.count(CheckOutcome.CHANGED) == 2
        assert result.count(CheckOutcome.BASELINE) == 0
        assert result.changed_ids() == ["a", "d"]

    def test_duration(self):
        result = CycleResult(cycle_id="c1")
        result.completed_at = result.started_at + timedelta(seconds=2.5)

        assert result.duration_seconds == 2.5

    def test_serialization(self):
        result = CycleResult(cycle_id="c1", outcomes={"a": CheckOutcome.BASELINE})

        data = result.model_dump(mode="json")

        assert data["outcomes"] == {"a": "baseline"}
        assert data["completed_at"] is None


class TestSchedulerConfig:
    """Test cases for SchedulerConfig model."""

    def test_defaults(self):
        config = SchedulerConfig()

        assert config.refresh_interval_minutes == 10
        assert config.timezone == "UTC"
        assert config.max_concurrent_fetches == 5

    def test_interval_bounds(self):
        with pytest.raises(ValidationError):
            SchedulerConfig(refresh_interval_minutes=0)

        with pytest.raises(ValidationError):
            SchedulerConfig(refresh_interval_minutes=10081)


class TestResourceEvent:
    """Test cases for ResourceEvent model."""

    def test_event(self):
        event = ResourceEvent(event_type=ResourceEventType.ADDED, record_id="r1")

        assert event.event_type == ResourceEventType.ADDED
        assert event.occurred_at.tzinfo is not None

    def test_cycle_events_have_no_record(self):
        assert ResourceEvent(event_type=ResourceEventType.REFRESH_STARTED).record_id is None
