"""Deterministic record ids for notifications and adherence logs.

Ids are pure functions of the record's natural key, so writing the same
subject twice replaces the stored record instead of duplicating it:

    ScheduledNotification:  (type, subject)       e.g. "ovulation:2024-03-12"
    AdherenceLogEntry:      (reminder_id, date)   e.g. "r1:2024-03-12"
"""

from __future__ import annotations

import logging
from datetime import date

from src.models.tracking import NotificationType

logger = logging.getLogger("cyclesync.cyclecore.reminders.ids")


def notification_id(notification_type: NotificationType | str, subject: str | date) -> str:
    """Build the notification id for a (type, subject) pair.

    Args:
        notification_type: One of period / ovulation / fertile_window / birth_control.
        subject:           Period id, reminder id, or the calendar date keyed on.

    Returns:
        Colon-separated id string.
    """
    kind = NotificationType(notification_type)
    key = subject.isoformat() if isinstance(subject, date) else str(subject)
    if not key:
        raise ValueError("Notification subject must not be empty")
    return f"{kind.value}:{key}"


def period_notification_id(period_id: str) -> str:
    return notification_id(NotificationType.period, period_id)


def ovulation_notification_id(day: date) -> str:
    return notification_id(NotificationType.ovulation, day)


def fertile_window_notification_id(day: date) -> str:
    return notification_id(NotificationType.fertile_window, day)


def birth_control_notification_id(reminder_id: str) -> str:
    return notification_id(NotificationType.birth_control, reminder_id)


def parse_notification_id(value: str) -> tuple[NotificationType, str]:
    """Split an id back into (type, subject).

    Raises:
        ValueError: If the prefix is not a known notification type.
    """
    kind, sep, subject = value.partition(":")
    if not sep or not subject:
        raise ValueError(f"Malformed notification id: {value!r}")
    return NotificationType(kind), subject


def adherence_log_id(reminder_id: str, day: date) -> str:
    """Id of the single adherence decision for a reminder on a given day."""
    return f"{reminder_id}:{day.isoformat()}"
