"""Menstrual cycle analytics.

Modules:
    cycle_model — Rolling cycle length, phase classification, predictions
    fertility   — BBT trend, mucus fertility score, ovulation verdict
"""

from src.cyclecore.cycle.cycle_model import CycleModel, CycleStats, FertileWindow
from src.cyclecore.cycle.fertility import (
    FertilityInsight,
    FertilitySignalAnalyzer,
    OvulationPrediction,
    OvulationVerdict,
    TemperatureTrend,
)

__all__ = [
    "CycleModel",
    "CycleStats",
    "FertileWindow",
    "FertilitySignalAnalyzer",
    "FertilityInsight",
    "OvulationPrediction",
    "OvulationVerdict",
    "TemperatureTrend",
]
