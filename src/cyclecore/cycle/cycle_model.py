"""Menstrual cycle statistics and phase classification.

Works from the user's logged period start dates only:
- Rolling average cycle length (last 6 period starts, configurable)
- Current cycle day and phase
- Next period, ovulation and fertile window predictions

The phase breakpoints (day 5 / 13 / 16 after the period starts) are fixed
heuristics taken from cycle_config.yaml.  They are an approximation and are
NOT scaled to the user's own average cycle length.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.cyclecore.date_math import days_between, round_half_up
from src.models.tracking import CyclePhase, PeriodRecord

logger = logging.getLogger("cyclesync.cyclecore.cycle.cycle_model")


@dataclass
class CycleStats:
    """Summary of the user's period history.

    Attributes:
        average_cycle_length:  Rolling average in whole days (default if < 2 periods).
        next_predicted_period: Predicted next start date, None with no history.
        total_periods:         Number of logged periods.
        cycles_used:           Number of day-gaps that fed the average.
        cycle_length_std:      Standard deviation of those gaps (None if < 2 gaps).
        is_irregular:          True if the gaps vary by more than the configured std.
    """

    average_cycle_length: int
    next_predicted_period: date | None = None
    total_periods: int = 0
    cycles_used: int = 0
    cycle_length_std: float | None = None
    is_irregular: bool = False


@dataclass
class FertileWindow:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class CycleModel:
    """Derive cycle statistics from a period history.

    Pure: the model never reads the clock; "today" is always passed in.

    Usage::

        model = CycleModel(periods)
        model.average_cycle_length()          # 28
        model.current_cycle_phase(today)      # CyclePhase.follicular
        model.days_until_next_period(today)   # -2 (two days overdue)
    """

    def __init__(
        self,
        periods: Iterable[PeriodRecord],
        config: CycleCoreConfig | None = None,
    ) -> None:
        self._config = config or get_cycle_config()
        self._periods = sorted(periods, key=lambda p: p.start_date)

    @property
    def _cc(self):
        return self._config.cycle

    @property
    def periods(self) -> list[PeriodRecord]:
        """Periods in ascending start-date order."""
        return list(self._periods)

    @property
    def last_period(self) -> PeriodRecord | None:
        return self._periods[-1] if self._periods else None

    # ------------------------------------------------------------------
    # Cycle length
    # ------------------------------------------------------------------

    def cycle_lengths(self) -> list[int]:
        """Day gaps between consecutive starts of the most recent N periods."""
        recent = self._periods[-self._cc.rolling_average_periods:]
        return [
            days_between(prev.start_date, nxt.start_date)
            for prev, nxt in zip(recent, recent[1:])
        ]

    def average_cycle_length(self) -> int:
        """Mean of the recent cycle lengths, rounded to the nearest day.

        Returns the configured default (28) when fewer than 2 periods exist.
        """
        lengths = self.cycle_lengths()
        if not lengths:
            return self._cc.default_cycle_length
        return round_half_up(statistics.fmean(lengths))

    # ------------------------------------------------------------------
    # Current cycle
    # ------------------------------------------------------------------

    def period_on_or_before(self, today: date) -> PeriodRecord | None:
        """Most recent period that started on or before ``today``."""
        started = [p for p in self._periods if p.start_date <= today]
        return started[-1] if started else None

    def current_cycle_day(self, today: date) -> int | None:
        """Cycle day of ``today`` (day 1 = period start), None with no history."""
        period = self.period_on_or_before(today)
        if period is None:
            return None
        return days_between(period.start_date, today) + 1

    def current_cycle_phase(self, today: date) -> CyclePhase:
        """Classify ``today`` into a cycle phase.

        ``days_since_start`` is 0 on the first day of the period.  With no
        period on or before ``today`` the phase is ``unknown``.
        """
        period = self.period_on_or_before(today)
        if period is None:
            return CyclePhase.unknown

        days_since_start = days_between(period.start_date, today)
        if days_since_start <= self._cc.menstrual_max_day:
            return CyclePhase.menstrual
        if days_since_start <= self._cc.follicular_max_day:
            return CyclePhase.follicular
        if days_since_start <= self._cc.ovulation_max_day:
            return CyclePhase.ovulation
        return CyclePhase.luteal

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def predicted_next_start(self) -> date | None:
        """Last period start plus the average cycle length."""
        last = self.last_period
        if last is None:
            return None
        return last.start_date + timedelta(days=self.average_cycle_length())

    def days_until_next_period(self, today: date) -> int | None:
        """Days from ``today`` to the predicted next start.

        Negative when the period is overdue; None with no period history.
        """
        predicted = self.predicted_next_start()
        if predicted is None:
            return None
        return days_between(today, predicted)

    def predicted_ovulation_date(self) -> date | None:
        """Predicted next start minus the (fixed) luteal phase length."""
        predicted = self.predicted_next_start()
        if predicted is None:
            return None
        return predicted - timedelta(days=self._cc.luteal_phase_days)

    def predicted_fertile_window(self) -> FertileWindow | None:
        """Days before ovulation through the day after it."""
        ovulation = self.predicted_ovulation_date()
        if ovulation is None:
            return None
        return FertileWindow(
            start=ovulation - timedelta(days=self._cc.fertile_days_before_ovulation),
            end=ovulation + timedelta(days=self._cc.fertile_days_after_ovulation),
        )

    def stats(self) -> CycleStats:
        lengths = self.cycle_lengths()
        std = statistics.stdev(lengths) if len(lengths) > 1 else None
        result = CycleStats(
            average_cycle_length=self.average_cycle_length(),
            next_predicted_period=self.predicted_next_start(),
            total_periods=len(self._periods),
            cycles_used=len(lengths),
            cycle_length_std=round(std, 1) if std is not None else None,
            is_irregular=std is not None and std > self._cc.irregular_std_days,
        )
        logger.debug(
            "Cycle stats: avg=%d over %d gaps, next=%s",
            result.average_cycle_length, result.cycles_used, result.next_predicted_period,
        )
        return result
