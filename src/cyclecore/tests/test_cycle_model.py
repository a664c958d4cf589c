"""Tests for cycle statistics, phase classification and predictions."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.cyclecore.config_loader import CycleCoreConfig
from src.cyclecore.cycle.cycle_model import CycleModel
from src.models.tracking import CyclePhase, PeriodRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_period(start: date, period_id: str | None = None, length: int | None = 5) -> PeriodRecord:
    end = start + timedelta(days=length - 1) if length else None
    return PeriodRecord(id=period_id or f"p-{start.isoformat()}", start_date=start, end_date=end)


def build_periods(first: date, gaps: list[int]) -> list[PeriodRecord]:
    """Periods starting at ``first`` and then after each gap in turn."""
    starts = [first]
    for gap in gaps:
        starts.append(starts[-1] + timedelta(days=gap))
    return [make_period(s) for s in starts]


# ---------------------------------------------------------------------------
# Average cycle length
# ---------------------------------------------------------------------------


class TestAverageCycleLength:
    def test_default_with_no_periods(self, cycle_config: CycleCoreConfig) -> None:
        assert CycleModel([], cycle_config).average_cycle_length() == 28

    def test_default_with_single_period(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel([make_period(date(2024, 1, 1))], cycle_config)
        assert model.average_cycle_length() == 28

    def test_regular_history(self, cycle_config: CycleCoreConfig) -> None:
        periods = build_periods(date(2024, 1, 1), [28, 28])
        assert CycleModel(periods, cycle_config).average_cycle_length() == 28

    def test_mean_rounds_half_up(self, cycle_config: CycleCoreConfig) -> None:
        # gaps 30 + 31 → 30.5 → 31
        periods = build_periods(date(2024, 1, 1), [30, 31])
        assert CycleModel(periods, cycle_config).average_cycle_length() == 31

    def test_only_last_six_periods_count(self, cycle_config: CycleCoreConfig) -> None:
        # An old 60-day gap followed by five 28-day gaps: only the latter count
        periods = build_periods(date(2023, 1, 1), [60, 28, 28, 28, 28, 28])
        model = CycleModel(periods, cycle_config)
        assert model.cycle_lengths() == [28, 28, 28, 28, 28]
        assert model.average_cycle_length() == 28

    def test_input_order_does_not_matter(self, cycle_config: CycleCoreConfig) -> None:
        periods = build_periods(date(2024, 1, 1), [26, 30])
        shuffled = [periods[2], periods[0], periods[1]]
        assert CycleModel(shuffled, cycle_config).average_cycle_length() == 28
        assert CycleModel(shuffled, cycle_config).last_period == periods[2]


# ---------------------------------------------------------------------------
# Phase classification
# ---------------------------------------------------------------------------


class TestCurrentPhase:
    @pytest.mark.parametrize(
        "offset, phase",
        [
            (0, CyclePhase.menstrual),
            (5, CyclePhase.menstrual),
            (6, CyclePhase.follicular),
            (13, CyclePhase.follicular),
            (14, CyclePhase.ovulation),
            (16, CyclePhase.ovulation),
            (17, CyclePhase.luteal),
            (40, CyclePhase.luteal),
        ],
    )
    def test_breakpoints(self, cycle_config: CycleCoreConfig, offset: int, phase: CyclePhase) -> None:
        start = date(2024, 2, 1)
        model = CycleModel([make_period(start)], cycle_config)
        assert model.current_cycle_phase(start + timedelta(days=offset)) is phase

    def test_unknown_without_history(self, cycle_config: CycleCoreConfig) -> None:
        assert CycleModel([], cycle_config).current_cycle_phase(date(2024, 3, 1)) is CyclePhase.unknown

    def test_future_period_is_ignored(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel([make_period(date(2024, 3, 10))], cycle_config)
        assert model.current_cycle_phase(date(2024, 3, 1)) is CyclePhase.unknown

    def test_uses_most_recent_started_period(self, cycle_config: CycleCoreConfig) -> None:
        periods = build_periods(date(2024, 1, 1), [28])  # Jan 1, Jan 29
        model = CycleModel(periods, cycle_config)
        assert model.current_cycle_phase(date(2024, 1, 30)) is CyclePhase.menstrual
        assert model.current_cycle_day(date(2024, 1, 30)) == 2

    def test_open_period_counts(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel([make_period(date(2024, 3, 1), length=None)], cycle_config)
        assert model.current_cycle_phase(date(2024, 3, 2)) is CyclePhase.menstrual


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


class TestPredictions:
    def test_three_regular_periods(self, cycle_config: CycleCoreConfig) -> None:
        periods = [
            make_period(date(2024, 1, 1)),
            make_period(date(2024, 1, 29)),
            make_period(date(2024, 2, 26)),
        ]
        model = CycleModel(periods, cycle_config)
        assert model.average_cycle_length() == 28
        assert model.predicted_next_start() == date(2024, 3, 25)
        assert model.days_until_next_period(date(2024, 3, 2)) == 23

    def test_overdue_is_negative(self, cycle_config: CycleCoreConfig) -> None:
        periods = [
            make_period(date(2024, 1, 1)),
            make_period(date(2024, 1, 29)),
        ]
        model = CycleModel(periods, cycle_config)
        # Next predicted Feb 26; on Feb 28 the period is two days late
        assert model.days_until_next_period(date(2024, 2, 28)) == -2

    def test_no_prediction_without_history(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel([], cycle_config)
        assert model.days_until_next_period(date(2024, 3, 2)) is None
        assert model.predicted_ovulation_date() is None
        assert model.predicted_fertile_window() is None

    def test_single_period_uses_default_length(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel([make_period(date(2024, 3, 1))], cycle_config)
        assert model.days_until_next_period(date(2024, 3, 1)) == 28

    def test_ovulation_and_fertile_window(self, cycle_config: CycleCoreConfig) -> None:
        model = CycleModel(build_periods(date(2024, 1, 1), [28]), cycle_config)
        # next start Feb 26 → ovulation Feb 12 → window Feb 7 … Feb 13
        assert model.predicted_ovulation_date() == date(2024, 2, 12)
        window = model.predicted_fertile_window()
        assert window is not None
        assert window.start == date(2024, 2, 7)
        assert window.end == date(2024, 2, 13)
        assert window.contains(date(2024, 2, 12))
        assert not window.contains(date(2024, 2, 14))


class TestStats:
    def test_regular_stats(self, cycle_config: CycleCoreConfig) -> None:
        stats = CycleModel(build_periods(date(2024, 1, 1), [28, 29, 27]), cycle_config).stats()
        assert stats.average_cycle_length == 28
        assert stats.total_periods == 4
        assert stats.cycles_used == 3
        assert stats.cycle_length_std == 1.0
        assert not stats.is_irregular

    def test_irregular_stats(self, cycle_config: CycleCoreConfig) -> None:
        stats = CycleModel(build_periods(date(2024, 1, 1), [21, 45, 24]), cycle_config).stats()
        assert stats.is_irregular

    def test_empty_stats(self, cycle_config: CycleCoreConfig) -> None:
        stats = CycleModel([], cycle_config).stats()
        assert stats.average_cycle_length == 28
        assert stats.next_predicted_period is None
        assert stats.total_periods == 0
        assert stats.cycle_length_std is None
