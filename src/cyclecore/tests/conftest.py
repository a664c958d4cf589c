"""Shared fixtures and test doubles for the CycleSync core tests."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from src.cyclecore.base import FixedClock, InMemoryRecordStore, NotificationSink
from src.cyclecore.config_loader import CycleCoreConfig, load_cycle_config
from src.cyclecore.errors import SchedulingFailure
from src.cyclecore.reminders.scheduler import ReminderScheduler

# Canonical "now" for tests: a Saturday morning
TEST_NOW = datetime(2024, 3, 2, 8, 30, 0)
TEST_DATE = date(2024, 3, 2)


# ---------------------------------------------------------------------------
# Notification sink doubles
# ---------------------------------------------------------------------------


class RecordingSink(NotificationSink):
    """Accepts every request and remembers what is pending."""

    def __init__(self) -> None:
        self.pending: dict[str, tuple[str, str, datetime]] = {}
        self.cancelled: list[str] = []
        self.cancel_all_calls = 0

    async def schedule(self, notification_id: str, title: str, body: str, fire_at: datetime) -> str:
        self.pending[notification_id] = (title, body, fire_at)
        return f"handle-{notification_id}"

    async def cancel(self, notification_id: str) -> None:
        self.pending.pop(notification_id, None)
        self.cancelled.append(notification_id)

    async def cancel_all(self) -> None:
        self.pending.clear()
        self.cancel_all_calls += 1


class RejectingSink(RecordingSink):
    """Behaves like a device where notification permission was revoked."""

    async def schedule(self, notification_id: str, title: str, body: str, fire_at: datetime) -> str:
        raise SchedulingFailure(notification_id, "permission denied")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleCoreConfig:
    """Load the real bundled cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TEST_NOW)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scheduler(
    store: InMemoryRecordStore, sink: RecordingSink, clock: FixedClock, cycle_config: CycleCoreConfig
) -> ReminderScheduler:
    return ReminderScheduler(store=store, sink=sink, clock=clock, config=cycle_config)
