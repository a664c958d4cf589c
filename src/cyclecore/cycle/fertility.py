"""Fertility signals from basal body temperature and cervical mucus.

Algorithm (symptothermal heuristics, deterministic):
1. Temperature trend: over the most recent 7 BBT readings, a reading more
   than 0.2°C above the mean of the 3 readings before it marks a thermal
   shift (``rising``).  Without a shift, a latest reading below the window
   mean is ``falling``; anything else is ``stable``.
2. Fertility score: a fixed lookup on the mucus consistency logged that day
   (egg-white 100 … dry 20).
3. Ovulation verdict: combines the thermal shift with fertile-quality mucus
   (egg-white or watery) in the last 5 mucus observations.

Not a medical device.  No statistical model is fitted to the user's data.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable

from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.models.tracking import BBTEntry, CervicalMucusEntry, CyclePhase, MucusConsistency

logger = logging.getLogger("cyclesync.cyclecore.cycle.fertility")


class TemperatureTrend(str, Enum):
    rising = "rising"
    falling = "falling"
    stable = "stable"


class OvulationVerdict(str, Enum):
    ovulation_likely_past_1_to_3_days = "ovulation_likely_past_1_to_3_days"
    approaching_ovulation_fertile_window = "approaching_ovulation_fertile_window"
    post_ovulation = "post_ovulation"
    insufficient_data = "insufficient_data"

    @property
    def message(self) -> str:
        return _VERDICT_MESSAGES[self]


_VERDICT_MESSAGES = {
    OvulationVerdict.ovulation_likely_past_1_to_3_days: "Ovulation likely occurred in the past 1-3 days",
    OvulationVerdict.approaching_ovulation_fertile_window: "Approaching ovulation - fertile window",
    OvulationVerdict.post_ovulation: "Post-ovulation phase",
    OvulationVerdict.insufficient_data: "Insufficient data for prediction",
}

# (temp_shift, has_fertile_mucus) → verdict
_DECISION_TABLE = {
    (True, True): OvulationVerdict.ovulation_likely_past_1_to_3_days,
    (False, True): OvulationVerdict.approaching_ovulation_fertile_window,
    (True, False): OvulationVerdict.post_ovulation,
    (False, False): OvulationVerdict.insufficient_data,
}


@dataclass
class OvulationPrediction:
    """Result of combining BBT and mucus signals.

    Attributes:
        verdict:           Decision-table outcome.
        temp_shift:        Whether the recent BBT window shows a thermal shift.
        has_fertile_mucus: Whether egg-white / watery mucus was seen recently.
        bbt_count:         Number of BBT entries available.
        mucus_count:       Number of mucus entries available.
    """

    verdict: OvulationVerdict
    temp_shift: bool = False
    has_fertile_mucus: bool = False
    bbt_count: int = 0
    mucus_count: int = 0

    @property
    def message(self) -> str:
        return self.verdict.message


@dataclass
class FertilityInsight:
    """Everything the fertility screen shows for one day."""

    date: date
    phase: CyclePhase
    fertility_score: int
    bbt_trend: TemperatureTrend
    ovulation_prediction: OvulationPrediction


class FertilitySignalAnalyzer:
    """Analyze BBT and cervical mucus logs.

    Inputs may arrive in any order; they are sorted by date internally.

    Usage::

        analyzer = FertilitySignalAnalyzer()
        analyzer.temperature_trend(bbt_entries)          # TemperatureTrend.rising
        analyzer.fertility_score("egg-white")            # 100
        analyzer.predict_ovulation(bbt_entries, mucus)   # OvulationPrediction(...)
    """

    def __init__(self, config: CycleCoreConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def _fc(self):
        return self._config.fertility

    # ------------------------------------------------------------------
    # Temperature
    # ------------------------------------------------------------------

    def temperature_trend(self, entries: Iterable[BBTEntry]) -> TemperatureTrend:
        """Classify the most recent BBT window as rising, falling or stable.

        Fewer than ``trend_baseline_days + 1`` readings (4 by default) cannot
        show a shift and are reported as stable.
        """
        fc = self._fc
        window = sorted(entries, key=lambda e: e.date)[-fc.trend_window:]
        baseline_days = fc.trend_baseline_days

        if len(window) <= baseline_days:
            return TemperatureTrend.stable

        temps = [e.temperature_celsius for e in window]
        if self._has_thermal_shift(temps):
            return TemperatureTrend.rising

        window_mean = round(statistics.fmean(temps), 3)
        if temps[-1] < window_mean:
            return TemperatureTrend.falling
        return TemperatureTrend.stable

    def _has_thermal_shift(self, temps: list[float]) -> bool:
        fc = self._fc
        baseline_days = fc.trend_baseline_days
        for i in range(baseline_days, len(temps)):
            baseline = statistics.fmean(temps[i - baseline_days:i])
            # Readings are logged to 0.01°C; round away float noise before comparing
            if round(temps[i] - baseline, 3) > fc.temp_shift_threshold_c:
                logger.debug(
                    "Thermal shift at window index %d: %.2f°C vs baseline %.3f°C",
                    i, temps[i], baseline,
                )
                return True
        return False

    # ------------------------------------------------------------------
    # Cervical mucus
    # ------------------------------------------------------------------

    def fertility_score(self, consistency: MucusConsistency | str | None) -> int:
        """Fixed 0–100 score for a single mucus observation."""
        key = consistency.value if isinstance(consistency, MucusConsistency) else consistency
        return self._fc.mucus_score(key)

    def fertility_score_for_date(self, entries: Iterable[CervicalMucusEntry], day: date) -> int:
        """Score of the mucus entry logged on ``day``; 0 if nothing was logged."""
        for entry in entries:
            if entry.date == day:
                return self.fertility_score(entry.consistency)
        return 0

    def has_fertile_mucus(self, entries: Iterable[CervicalMucusEntry]) -> bool:
        recent = sorted(entries, key=lambda e: e.date)[-self._fc.mucus_lookback:]
        fertile = set(self._fc.fertile_consistencies)
        return any(e.consistency.value in fertile for e in recent)

    # ------------------------------------------------------------------
    # Ovulation
    # ------------------------------------------------------------------

    def predict_ovulation(
        self,
        bbt_entries: Iterable[BBTEntry],
        mucus_entries: Iterable[CervicalMucusEntry],
    ) -> OvulationPrediction:
        """Combine thermal shift and mucus quality into an ovulation verdict.

        Needs at least 7 BBT and 3 mucus entries; otherwise the verdict is
        ``insufficient_data``.
        """
        fc = self._fc
        bbt = sorted(bbt_entries, key=lambda e: e.date)
        mucus = sorted(mucus_entries, key=lambda e: e.date)

        if len(bbt) < fc.ovulation_min_bbt_entries or len(mucus) < fc.ovulation_min_mucus_entries:
            return OvulationPrediction(
                verdict=OvulationVerdict.insufficient_data,
                bbt_count=len(bbt),
                mucus_count=len(mucus),
            )

        temp_shift = self.temperature_trend(bbt[-fc.trend_window:]) is TemperatureTrend.rising
        fertile_mucus = self.has_fertile_mucus(mucus)
        verdict = _DECISION_TABLE[(temp_shift, fertile_mucus)]

        logger.debug(
            "Ovulation verdict %s (temp_shift=%s, fertile_mucus=%s)",
            verdict.value, temp_shift, fertile_mucus,
        )
        return OvulationPrediction(
            verdict=verdict,
            temp_shift=temp_shift,
            has_fertile_mucus=fertile_mucus,
            bbt_count=len(bbt),
            mucus_count=len(mucus),
        )

    def insight(
        self,
        today: date,
        bbt_entries: Iterable[BBTEntry],
        mucus_entries: Iterable[CervicalMucusEntry],
        phase: CyclePhase = CyclePhase.unknown,
    ) -> FertilityInsight:
        """Assemble the day's fertility summary from entries logged up to ``today``."""
        bbt = [e for e in bbt_entries if e.date <= today]
        mucus = [e for e in mucus_entries if e.date <= today]
        return FertilityInsight(
            date=today,
            phase=phase,
            fertility_score=self.fertility_score_for_date(mucus, today),
            bbt_trend=self.temperature_trend(bbt),
            ovulation_prediction=self.predict_ovulation(bbt, mucus),
        )
