"""
Tests for overtime aggregation and pricing.

Covers:
- Only approved, in-period intervals count
- Per-interval hour rounding
- Reversed intervals (zero hours, MALFORMED_OVERTIME_INTERVAL anomaly)
- compute_overtime_pay rounding and argument checks
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from payroll_engines.overtime import aggregate_overtime, compute_overtime_pay
from payroll_kernel.domain.types import (
    AnomalyCode,
    ApprovalState,
    OvertimeInterval,
    PayPeriod,
)

PERIOD = PayPeriod("2024-01-A", date(2024, 1, 1), date(2024, 1, 15))


def _interval(
    start: str,
    end: str,
    state: ApprovalState = ApprovalState.APPROVED,
    interval_id: str | None = None,
) -> OvertimeInterval:
    return OvertimeInterval(
        start=datetime.fromisoformat(start),
        end=datetime.fromisoformat(end),
        approval_state=state,
        interval_id=interval_id,
    )


class TestAggregateOvertime:

    def test_single_approved_interval(self):
        summary = aggregate_overtime(
            [_interval("2024-01-02T17:00", "2024-01-02T21:00")], PERIOD,
        )

        assert summary.total_hours == Decimal("4.00")
        assert summary.approved_count == 1
        assert summary.skipped_count == 0

    def test_pending_and_rejected_are_ignored(self):
        intervals = [
            _interval("2024-01-02T17:00", "2024-01-02T21:00", ApprovalState.PENDING),
            _interval("2024-01-03T17:00", "2024-01-03T21:00", ApprovalState.REJECTED),
            _interval("2024-01-04T17:00", "2024-01-04T19:00"),
        ]

        summary = aggregate_overtime(intervals, PERIOD)

        assert summary.total_hours == Decimal("2.00")
        assert summary.approved_count == 1
        assert summary.skipped_count == 2

    def test_interval_starting_after_period_is_ignored(self):
        summary = aggregate_overtime(
            [_interval("2024-01-16T17:00", "2024-01-16T21:00")], PERIOD,
        )

        assert summary.total_hours == Decimal("0.00")
        assert summary.skipped_count == 1

    def test_interval_crossing_midnight_counts_fully(self):
        # Starts on the last period day, ends the next morning
        summary = aggregate_overtime(
            [_interval("2024-01-15T22:00", "2024-01-16T01:30")], PERIOD,
        )

        assert summary.total_hours == Decimal("3.50")

    def test_hours_rounded_per_interval(self):
        # Two 20-minute intervals: 0.33 + 0.33, not round(40/60) = 0.67
        intervals = [
            _interval("2024-01-02T17:00", "2024-01-02T17:20"),
            _interval("2024-01-03T17:00", "2024-01-03T17:20"),
        ]

        summary = aggregate_overtime(intervals, PERIOD)

        assert summary.total_hours == Decimal("0.66")

    def test_reversed_interval_is_anomaly(self, captured_logs):
        summary = aggregate_overtime(
            [_interval("2024-01-02T21:00", "2024-01-02T17:00", interval_id="OT-9")],
            PERIOD,
            employee_id="E1",
        )

        assert summary.total_hours == Decimal("0.00")
        assert len(summary.anomalies) == 1
        anomaly = summary.anomalies[0]
        assert anomaly.code is AnomalyCode.MALFORMED_OVERTIME_INTERVAL
        assert anomaly.reference == "OT-9"
        assert any(r["message"] == "overtime_malformed_interval" for r in captured_logs())

    def test_reversed_interval_without_id_references_start(self):
        summary = aggregate_overtime(
            [_interval("2024-01-02T21:00", "2024-01-02T17:00")], PERIOD,
        )

        assert summary.anomalies[0].reference == "2024-01-02T21:00:00"

    def test_no_intervals(self):
        summary = aggregate_overtime([], PERIOD)

        assert summary.total_hours == Decimal("0.00")
        assert summary.anomalies == ()


class TestComputeOvertimePay:

    def test_rate_times_multiplier(self):
        pay = compute_overtime_pay(Decimal("4.00"), Decimal("200.00"), Decimal("1.25"))

        assert pay == Decimal("1000.00")

    def test_rounds_half_up(self):
        # 1.33 * 113.64 * 1.25 = 188.9265 -> 188.93
        pay = compute_overtime_pay(Decimal("1.33"), Decimal("113.64"), Decimal("1.25"))

        assert pay == Decimal("188.93")

    def test_zero_hours(self):
        pay = compute_overtime_pay(Decimal("0.00"), Decimal("200.00"), Decimal("1.25"))

        assert pay == Decimal("0.00")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            compute_overtime_pay(Decimal("1.00"), Decimal("-1.00"), Decimal("1.25"))

    def test_negative_multiplier_rejected(self):
        with pytest.raises(ValueError):
            compute_overtime_pay(Decimal("1.00"), Decimal("100.00"), Decimal("-0.50"))
