"""CycleSync reproductive-health analytics core.

This package turns raw period, basal body temperature, cervical mucus and
birth-control logs into cycle-phase classification, ovulation and
fertile-window predictions, adherence scores and local reminders.  It has
no UI, storage engine or network surface: the clock, record store and
notification sink are injected.

Subpackages:
    cycle/     — Cycle statistics and fertility signal analysis
    adherence/ — Birth-control adherence scoring
    reminders/ — Deterministic notification ids and the reminder scheduler

Core modules:
    base          — Clock / RecordStore / NotificationSink interfaces
    config_loader — Load/validate/hot-reload cycle_config.yaml
    date_math     — Calendar-day arithmetic
    errors        — ValidationError, SchedulingFailure
    services      — Period, fertility and birth-control service objects
"""

from src.cyclecore.base import (
    Clock,
    FixedClock,
    InMemoryRecordStore,
    NotificationSink,
    RecordStore,
    SystemClock,
)
from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.cyclecore.errors import CycleCoreError, SchedulingFailure, ValidationError

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "RecordStore",
    "InMemoryRecordStore",
    "NotificationSink",
    "CycleCoreConfig",
    "get_cycle_config",
    "CycleCoreError",
    "ValidationError",
    "SchedulingFailure",
]
