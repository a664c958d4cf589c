"""Tests for BBT trend detection, mucus scoring and the ovulation verdict."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.cyclecore.config_loader import CycleCoreConfig
from src.cyclecore.cycle.fertility import (
    FertilitySignalAnalyzer,
    OvulationVerdict,
    TemperatureTrend,
)
from src.models.tracking import BBTEntry, CervicalMucusEntry, CyclePhase, MucusConsistency


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

START = date(2024, 2, 1)


def make_bbt(temps: list[float], start: date = START) -> list[BBTEntry]:
    return [
        BBTEntry(
            id=f"bbt-{i}",
            date=start + timedelta(days=i),
            temperature_celsius=t,
            time_of_measurement="06:30",
        )
        for i, t in enumerate(temps)
    ]


def make_mucus(consistencies: list[str], start: date = START) -> list[CervicalMucusEntry]:
    return [
        CervicalMucusEntry(
            id=f"cm-{i}",
            date=start + timedelta(days=i),
            consistency=c,
            amount="light",
        )
        for i, c in enumerate(consistencies)
    ]


FLAT = [36.4] * 7
SHIFTED = [36.4, 36.4, 36.4, 36.4, 36.7, 36.75, 36.8]


@pytest.fixture
def analyzer(cycle_config: CycleCoreConfig) -> FertilitySignalAnalyzer:
    return FertilitySignalAnalyzer(cycle_config)


# ---------------------------------------------------------------------------
# Temperature trend
# ---------------------------------------------------------------------------


class TestTemperatureTrend:
    def test_flat_then_raised_is_rising(self, analyzer: FertilitySignalAnalyzer) -> None:
        entries = make_bbt([36.4, 36.4, 36.4, 36.4, 36.7, 36.7, 36.7])
        assert analyzer.temperature_trend(entries) is TemperatureTrend.rising

    def test_too_few_entries_is_stable(self, analyzer: FertilitySignalAnalyzer) -> None:
        assert analyzer.temperature_trend(make_bbt([36.2, 36.9, 37.1])) is TemperatureTrend.stable
        assert analyzer.temperature_trend([]) is TemperatureTrend.stable

    def test_flat_is_stable(self, analyzer: FertilitySignalAnalyzer) -> None:
        assert analyzer.temperature_trend(make_bbt([36.5] * 5)) is TemperatureTrend.stable

    def test_latest_below_mean_is_falling(self, analyzer: FertilitySignalAnalyzer) -> None:
        entries = make_bbt([36.6, 36.6, 36.6, 36.5])
        assert analyzer.temperature_trend(entries) is TemperatureTrend.falling

    def test_rise_of_exactly_threshold_is_not_a_shift(self, analyzer: FertilitySignalAnalyzer) -> None:
        entries = make_bbt([36.4, 36.4, 36.4, 36.6])
        assert analyzer.temperature_trend(entries) is TemperatureTrend.stable

    def test_only_last_seven_readings_count(self, analyzer: FertilitySignalAnalyzer) -> None:
        # The shift happens on day 4 and scrolls out of the 7-day window
        temps = [36.3, 36.3, 36.3, 36.8] + [36.8] * 7
        assert analyzer.temperature_trend(make_bbt(temps)) is TemperatureTrend.stable

    def test_unordered_input_is_sorted(self, analyzer: FertilitySignalAnalyzer) -> None:
        entries = make_bbt([36.4, 36.4, 36.4, 36.4, 36.7, 36.7, 36.7])
        assert analyzer.temperature_trend(list(reversed(entries))) is TemperatureTrend.rising


# ---------------------------------------------------------------------------
# Mucus scoring
# ---------------------------------------------------------------------------


class TestFertilityScore:
    @pytest.mark.parametrize(
        "consistency, score",
        [
            ("egg-white", 100),
            ("watery", 80),
            ("creamy", 60),
            ("sticky", 40),
            ("dry", 20),
            (MucusConsistency.egg_white, 100),
            ("unknown", 0),
            (None, 0),
        ],
    )
    def test_lookup(self, analyzer: FertilitySignalAnalyzer, consistency, score: int) -> None:
        assert analyzer.fertility_score(consistency) == score

    def test_score_for_date(self, analyzer: FertilitySignalAnalyzer) -> None:
        mucus = make_mucus(["dry", "creamy", "watery"])
        assert analyzer.fertility_score_for_date(mucus, START + timedelta(days=2)) == 80
        assert analyzer.fertility_score_for_date(mucus, START + timedelta(days=9)) == 0


# ---------------------------------------------------------------------------
# Ovulation verdict
# ---------------------------------------------------------------------------


class TestPredictOvulation:
    def test_no_fertile_mucus_and_no_shift(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(FLAT), make_mucus(["dry", "sticky", "creamy"]))
        assert result.verdict is OvulationVerdict.insufficient_data
        assert result.mucus_count == 3
        assert not result.temp_shift
        assert not result.has_fertile_mucus

    def test_shift_and_fertile_mucus(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(SHIFTED), make_mucus(["creamy", "watery", "egg-white"]))
        assert result.verdict is OvulationVerdict.ovulation_likely_past_1_to_3_days
        assert result.message == "Ovulation likely occurred in the past 1-3 days"

    def test_fertile_mucus_without_shift(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(FLAT), make_mucus(["dry", "creamy", "egg-white"]))
        assert result.verdict is OvulationVerdict.approaching_ovulation_fertile_window

    def test_shift_without_fertile_mucus(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(SHIFTED), make_mucus(["sticky", "dry", "dry"]))
        assert result.verdict is OvulationVerdict.post_ovulation

    def test_too_few_bbt_entries(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(SHIFTED[:6]), make_mucus(["egg-white"] * 5))
        assert result.verdict is OvulationVerdict.insufficient_data
        assert result.bbt_count == 6

    def test_too_few_mucus_entries(self, analyzer: FertilitySignalAnalyzer) -> None:
        result = analyzer.predict_ovulation(make_bbt(SHIFTED), make_mucus(["egg-white", "watery"]))
        assert result.verdict is OvulationVerdict.insufficient_data

    def test_fertile_mucus_outside_lookback_ignored(self, analyzer: FertilitySignalAnalyzer) -> None:
        mucus = make_mucus(["egg-white", "dry", "dry", "sticky", "dry", "creamy"])
        assert not analyzer.has_fertile_mucus(mucus)


class TestInsight:
    def test_combines_signals(self, analyzer: FertilitySignalAnalyzer) -> None:
        bbt = make_bbt(SHIFTED)
        mucus = make_mucus(["creamy", "watery", "egg-white"], start=START + timedelta(days=4))
        today = START + timedelta(days=6)
        insight = analyzer.insight(today, bbt, mucus, CyclePhase.ovulation)
        assert insight.date == today
        assert insight.phase is CyclePhase.ovulation
        assert insight.fertility_score == 100
        assert insight.bbt_trend is TemperatureTrend.rising
        assert insight.ovulation_prediction.verdict is OvulationVerdict.ovulation_likely_past_1_to_3_days

    def test_future_entries_excluded(self, analyzer: FertilitySignalAnalyzer) -> None:
        bbt = make_bbt(SHIFTED)
        insight = analyzer.insight(START + timedelta(days=3), bbt, [])
        assert insight.bbt_trend is TemperatureTrend.stable
        assert insight.ovulation_prediction.bbt_count == 4
        assert insight.phase is CyclePhase.unknown
