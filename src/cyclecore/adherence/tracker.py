"""Birth-control adherence scoring.

Every day in the trailing window counts toward the denominator, whether or
not the user logged a decision for it.  Unlogged days are neither taken nor
missed, they simply never earn credit.

The window for ``window_days = N`` is the N calendar days ending on (and
including) ``today``: ``today - N + 1 … today``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable

from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.cyclecore.date_math import round_half_up
from src.cyclecore.reminders.ids import adherence_log_id
from src.models.tracking import AdherenceLogEntry

logger = logging.getLogger("cyclesync.cyclecore.adherence.tracker")


class AdherenceRating(str, Enum):
    excellent = "excellent"
    good = "good"
    fair = "fair"
    needs_improvement = "needs_improvement"


@dataclass
class AdherenceStats:
    """Adherence over a trailing window.

    Attributes:
        reminder_id:    Reminder the stats belong to.
        window_days:    Size of the trailing window.
        taken_count:    Days logged as taken.
        missed_count:   Days logged as not taken.
        unlogged_count: Days with no log at all.
        total_count:    Expected decisions (= window_days).
        adherence_rate: round(taken / total * 100), clamped to 0–100.
        rating:         Colour band for the rate.
        logs:           Logs inside the window, newest first.
    """

    reminder_id: str
    window_days: int
    taken_count: int
    missed_count: int
    unlogged_count: int
    total_count: int
    adherence_rate: int
    rating: AdherenceRating
    logs: list[AdherenceLogEntry] = field(default_factory=list)


class AdherenceTracker:
    """Compute adherence statistics and maintain the per-day log.

    Usage::

        tracker = AdherenceTracker()
        logs = tracker.log_adherence(logs, "r1", today, taken=True, now=clock.now())
        stats = tracker.stats("r1", logs, window_days=30, today=today)
        stats.adherence_rate, stats.rating
    """

    def __init__(self, config: CycleCoreConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def rating(self, adherence_rate: int) -> AdherenceRating:
        ac = self._config.adherence
        if adherence_rate >= ac.excellent_threshold:
            return AdherenceRating.excellent
        if adherence_rate >= ac.good_threshold:
            return AdherenceRating.good
        if adherence_rate >= ac.fair_threshold:
            return AdherenceRating.fair
        return AdherenceRating.needs_improvement

    def stats(
        self,
        reminder_id: str,
        logs: Iterable[AdherenceLogEntry],
        window_days: int,
        today: date,
    ) -> AdherenceStats:
        """Adherence for ``reminder_id`` over the ``window_days`` ending today.

        Raises:
            ValueError: If window_days is not positive.
        """
        if window_days <= 0:
            raise ValueError(f"window_days must be positive, got {window_days}")

        window_start = today - timedelta(days=window_days - 1)

        # One decision per day; if duplicates slipped in, the last one listed wins
        by_day: dict[date, AdherenceLogEntry] = {}
        for log in logs:
            if log.reminder_id == reminder_id and window_start <= log.date <= today:
                by_day[log.date] = log

        in_window = sorted(by_day.values(), key=lambda l: l.date, reverse=True)
        taken_count = sum(1 for l in in_window if l.taken)
        missed_count = len(in_window) - taken_count
        total_count = window_days
        rate = round_half_up(taken_count / total_count * 100)
        rate = max(0, min(100, rate))

        return AdherenceStats(
            reminder_id=reminder_id,
            window_days=window_days,
            taken_count=taken_count,
            missed_count=missed_count,
            unlogged_count=total_count - len(in_window),
            total_count=total_count,
            adherence_rate=rate,
            rating=self.rating(rate),
            logs=in_window,
        )

    def summary(
        self,
        reminder_id: str,
        logs: Iterable[AdherenceLogEntry],
        today: date,
    ) -> dict[int, AdherenceStats]:
        """Stats for every configured window (7 / 30 / 90 days by default)."""
        logs = list(logs)
        return {
            window: self.stats(reminder_id, logs, window, today)
            for window in self._config.adherence.windows
        }

    @staticmethod
    def log_for_date(
        logs: Iterable[AdherenceLogEntry], reminder_id: str, day: date
    ) -> AdherenceLogEntry | None:
        for log in logs:
            if log.reminder_id == reminder_id and log.date == day:
                return log
        return None

    @staticmethod
    def build_log(
        reminder_id: str,
        day: date,
        taken: bool,
        now: datetime,
        notes: str | None = None,
    ) -> AdherenceLogEntry:
        """Create the log entry for one (reminder, day) decision.

        The id is derived from the upsert key, so storing it replaces any
        earlier decision for the same day.
        """
        return AdherenceLogEntry(
            id=adherence_log_id(reminder_id, day),
            reminder_id=reminder_id,
            date=day,
            taken=taken,
            taken_at=now if taken else None,
            notes=notes,
        )

    def log_adherence(
        self,
        logs: Iterable[AdherenceLogEntry],
        reminder_id: str,
        day: date,
        taken: bool,
        now: datetime,
        notes: str | None = None,
    ) -> list[AdherenceLogEntry]:
        """Return ``logs`` with the (reminder, day) decision upserted.

        At most one entry per (reminder_id, day) survives; a second call for
        the same day overwrites ``taken`` / ``taken_at``.
        """
        entry = self.build_log(reminder_id, day, taken, now, notes)
        kept = [l for l in logs if not (l.reminder_id == reminder_id and l.date == day)]
        kept.append(entry)
        logger.debug("Logged adherence %s taken=%s", entry.id, taken)
        return kept
