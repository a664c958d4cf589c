"""Collaborator interfaces for the CycleSync core.

The core never reads the system clock, the device's notification API or its
key-value storage directly.  Service objects receive these collaborators at
construction time:

    Clock             — ``now()``; injected so predictions are deterministic
    RecordStore       — key-value persistence of JSON-serializable records
    NotificationSink  — the platform's local notification scheduler

In-process implementations (``SystemClock``, ``FixedClock``,
``InMemoryRecordStore``) are provided for embedding and for tests.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Any

logger = logging.getLogger("cyclesync.cyclecore")


# ---------------------------------------------------------------------------
# Entity types understood by the record store
# ---------------------------------------------------------------------------

PERIODS = "periods"
BBT_ENTRIES = "bbt_entries"
MUCUS_ENTRIES = "cervical_mucus_entries"
REMINDERS = "birth_control_reminders"
ADHERENCE_LOGS = "birth_control_logs"
SCHEDULED_NOTIFICATIONS = "scheduled_notifications"
SETTINGS = "settings"

NOTIFICATION_SETTINGS_ID = "notifications"


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class Clock(ABC):
    """Source of the current local wall-clock time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local time (naive, device timezone)."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """A clock frozen at a given instant.  ``advance()`` moves it forward."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs: float) -> None:
        self._instant = self._instant + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class RecordStore(ABC):
    """Abstract key-value store keyed by (entity type, record id).

    Records are plain JSON-serializable dicts.  Every method is a single-shot
    request awaited by the caller.
    """

    @abstractmethod
    async def list(self, entity_type: str) -> list[dict[str, Any]]:
        """Return every record of an entity type (order unspecified)."""

    @abstractmethod
    async def get(self, entity_type: str, record_id: str) -> dict[str, Any] | None:
        """Return one record, or None if it does not exist."""

    @abstractmethod
    async def upsert(self, entity_type: str, record_id: str, record: dict[str, Any]) -> None:
        """Insert or replace a record."""

    @abstractmethod
    async def delete(self, entity_type: str, record_id: str) -> bool:
        """Delete a record.  Returns False if it did not exist."""


class InMemoryRecordStore(RecordStore):
    """Dict-backed RecordStore.

    Records are round-tripped through JSON on write so anything that would
    not survive a real key-value store fails here too.

    Usage::

        store = InMemoryRecordStore()
        await store.upsert("periods", "p1", {"id": "p1", "start_date": "2024-01-01"})
        await store.list("periods")
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def list(self, entity_type: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._data.get(entity_type, {}).values()]

    async def get(self, entity_type: str, record_id: str) -> dict[str, Any] | None:
        record = self._data.get(entity_type, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def upsert(self, entity_type: str, record_id: str, record: dict[str, Any]) -> None:
        try:
            stored = json.loads(json.dumps(record))
        except (TypeError, ValueError) as exc:
            raise TypeError(
                f"Record {entity_type}/{record_id} is not JSON-serializable: {exc}"
            ) from exc
        self._data.setdefault(entity_type, {})[record_id] = stored

    async def delete(self, entity_type: str, record_id: str) -> bool:
        return self._data.get(entity_type, {}).pop(record_id, None) is not None

    def count(self, entity_type: str) -> int:
        return len(self._data.get(entity_type, {}))


# ---------------------------------------------------------------------------
# Platform notifications
# ---------------------------------------------------------------------------


class NotificationSink(ABC):
    """Abstract platform notification scheduler.

    Implementations wrap the OS local-notification API.  ``schedule`` must
    replace any pending notification with the same id and raise
    ``SchedulingFailure`` when the platform refuses (e.g. permission revoked).
    """

    @abstractmethod
    async def schedule(self, notification_id: str, title: str, body: str, fire_at: datetime) -> str:
        """Schedule a local notification and return the platform handle."""

    @abstractmethod
    async def cancel(self, notification_id: str) -> None:
        """Cancel a pending notification.  Unknown ids are ignored."""

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every pending notification."""
