"""Birth-control adherence tracking."""

from src.cyclecore.adherence.tracker import AdherenceRating, AdherenceStats, AdherenceTracker

__all__ = ["AdherenceTracker", "AdherenceStats", "AdherenceRating"]
