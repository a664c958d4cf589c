"""Reminder scheduling for period, ovulation, fertile-window and birth-control
notifications.

Coordinates the scheduling workflow:
1. Check the user's notification settings for the notification type
2. Derive the deterministic notification id and the fire time
3. Ask the platform notification sink to schedule it
4. Persist the ScheduledNotification (replacing any record with that id)

Lifecycle per notification id:

    UNSCHEDULED → SCHEDULED → FIRED
                            → CANCELLED
                            → (rescheduled) → SCHEDULED

A sink rejection (``SchedulingFailure``) is not fatal: the record is kept
with ``is_active=False`` and reported as ``PENDING_PERMISSION``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from src.cyclecore.base import (
    NOTIFICATION_SETTINGS_ID,
    SCHEDULED_NOTIFICATIONS,
    SETTINGS,
    Clock,
    NotificationSink,
    RecordStore,
)
from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.cyclecore.date_math import at_time, next_daily_fire_time, to_iso
from src.cyclecore.errors import SchedulingFailure
from src.cyclecore.reminders.ids import (
    birth_control_notification_id,
    fertile_window_notification_id,
    ovulation_notification_id,
    period_notification_id,
)
from src.models.tracking import (
    NotificationSettings,
    NotificationType,
    PeriodRecord,
    ReminderDefinition,
    ScheduledNotification,
)

logger = logging.getLogger("cyclesync.cyclecore.reminders.scheduler")

# type → (title, body)
_MESSAGES: dict[NotificationType, tuple[str, str]] = {
    NotificationType.period: (
        "Period Reminder",
        "Your period is expected to start today. Don't forget to track it!",
    ),
    NotificationType.ovulation: (
        "Ovulation Day",
        "Today is your predicted ovulation day. Your fertility is at its peak!",
    ),
    NotificationType.fertile_window: (
        "Fertile Window Started",
        "Your fertile window has begun. This is the best time to conceive!",
    ),
    NotificationType.birth_control: (
        "Birth Control Reminder",
        "Time to take your {name}",
    ),
}


class NotificationState(str, Enum):
    unscheduled = "unscheduled"
    scheduled = "scheduled"
    pending_permission = "pending_permission"
    fired = "fired"
    cancelled = "cancelled"


@dataclass
class ScheduleResult:
    """Outcome of a single schedule request.

    Attributes:
        status:          'scheduled', 'pending_permission' or 'skipped'.
        notification:    The persisted record (None when skipped).
        platform_handle: Handle returned by the sink, if it accepted.
        warning:         Human-readable reason for a non-'scheduled' status.
    """

    status: str
    notification: ScheduledNotification | None = None
    platform_handle: str | None = None
    warning: str | None = None

    @property
    def scheduled(self) -> bool:
        return self.status == "scheduled"


class ReminderScheduler:
    """Schedule, replace and cancel local notifications.

    All state lives in the record store; the scheduler itself only remembers
    which ids it cancelled during its lifetime (for ``state()``).

    Usage::

        scheduler = ReminderScheduler(store=store, sink=sink, clock=clock)
        await scheduler.schedule_for_ovulation(date(2024, 3, 12))
        await scheduler.schedule_for_birth_control(reminder)
        await scheduler.cancel("ovulation:2024-03-12")
    """

    def __init__(
        self,
        store: RecordStore,
        sink: NotificationSink,
        clock: Clock,
        config: CycleCoreConfig | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._config = config or get_cycle_config()
        self._cancelled: set[str] = set()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _default_settings(self) -> NotificationSettings:
        nd = self._config.notifications
        return NotificationSettings(
            period_reminders=nd.period_reminders,
            ovulation_reminders=nd.ovulation_reminders,
            fertile_window_reminders=nd.fertile_window_reminders,
            birth_control_reminders=nd.birth_control_reminders,
            notification_time=nd.notification_time,
        )

    async def get_settings(self) -> NotificationSettings:
        """Stored notification settings, or the configured defaults."""
        record = await self._store.get(SETTINGS, NOTIFICATION_SETTINGS_ID)
        if record is None:
            return self._default_settings()
        return NotificationSettings.from_record(record)

    async def update_settings(self, **changes) -> NotificationSettings:
        """Merge ``changes`` into the stored settings and persist them.

        Switching a notification type off cancels every notification of
        that type that is already scheduled.

        Raises:
            ValueError: If a key is not a notification setting.
        """
        current = await self.get_settings()
        updated = NotificationSettings.model_validate({**current.model_dump(), **changes})
        await self._store.upsert(SETTINGS, NOTIFICATION_SETTINGS_ID, updated.to_record())
        logger.info("Notification settings updated: %s", sorted(changes))

        for notification_type in NotificationType:
            if current.enabled_for(notification_type) and not updated.enabled_for(notification_type):
                await self.retire_stale(notification_type, keep_id=None)
        return updated

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_for_period(
        self,
        period: PeriodRecord,
        predicted_start_date: date,
        notify_time: str | None = None,
    ) -> ScheduleResult:
        """Remind the user on the predicted start of the period after ``period``."""
        settings = await self.get_settings()
        if not settings.enabled_for(NotificationType.period):
            return self._skipped(NotificationType.period)
        title, body = _MESSAGES[NotificationType.period]
        return await self._schedule(
            notification_id=period_notification_id(period.id),
            notification_type=NotificationType.period,
            title=title,
            body=body,
            fire_at=at_time(predicted_start_date, notify_time or settings.notification_time),
            related_id=period.id,
        )

    async def schedule_for_ovulation(
        self, ovulation_date: date, notify_time: str | None = None
    ) -> ScheduleResult:
        settings = await self.get_settings()
        if not settings.enabled_for(NotificationType.ovulation):
            return self._skipped(NotificationType.ovulation)
        title, body = _MESSAGES[NotificationType.ovulation]
        return await self._schedule(
            notification_id=ovulation_notification_id(ovulation_date),
            notification_type=NotificationType.ovulation,
            title=title,
            body=body,
            fire_at=at_time(ovulation_date, notify_time or settings.notification_time),
            related_id=to_iso(ovulation_date),
        )

    async def schedule_for_fertile_window(
        self, window_start: date, notify_time: str | None = None
    ) -> ScheduleResult:
        settings = await self.get_settings()
        if not settings.enabled_for(NotificationType.fertile_window):
            return self._skipped(NotificationType.fertile_window)
        title, body = _MESSAGES[NotificationType.fertile_window]
        return await self._schedule(
            notification_id=fertile_window_notification_id(window_start),
            notification_type=NotificationType.fertile_window,
            title=title,
            body=body,
            fire_at=at_time(window_start, notify_time or settings.notification_time),
            related_id=to_iso(window_start),
        )

    async def schedule_for_birth_control(self, reminder: ReminderDefinition) -> ScheduleResult:
        """Schedule the next dose reminder: today at ``time_of_day``, or tomorrow
        if that time has already passed.  Never schedules in the past."""
        settings = await self.get_settings()
        if not settings.enabled_for(NotificationType.birth_control):
            return self._skipped(NotificationType.birth_control)
        if not reminder.is_active:
            return self._skipped(NotificationType.birth_control, f"reminder {reminder.id} is inactive")
        title, body = _MESSAGES[NotificationType.birth_control]
        return await self._schedule(
            notification_id=birth_control_notification_id(reminder.id),
            notification_type=NotificationType.birth_control,
            title=title,
            body=body.format(name=reminder.display_name),
            fire_at=next_daily_fire_time(reminder.time_of_day, self._clock.now()),
            related_id=reminder.id,
        )

    def _skipped(self, notification_type: NotificationType, reason: str | None = None) -> ScheduleResult:
        warning = reason or f"{notification_type.value} reminders are disabled"
        logger.debug("Skipping %s notification: %s", notification_type.value, warning)
        return ScheduleResult(status="skipped", warning=warning)

    async def _schedule(
        self,
        notification_id: str,
        notification_type: NotificationType,
        title: str,
        body: str,
        fire_at: datetime,
        related_id: str,
    ) -> ScheduleResult:
        """Hand one notification to the sink and persist the record.

        The record is written under its deterministic id, so rescheduling the
        same subject replaces the previous entry.
        """
        handle: str | None = None
        warning: str | None = None
        try:
            handle = await self._sink.schedule(notification_id, title, body, fire_at)
        except SchedulingFailure as exc:
            warning = str(exc)
            logger.warning(
                "Sink rejected %s (%s); keeping it inactive until permission is granted",
                notification_id, exc.reason or "no reason given",
            )

        notification = ScheduledNotification(
            id=notification_id,
            type=notification_type,
            title=title,
            body=body,
            scheduled_date=fire_at,
            is_active=handle is not None,
            related_id=related_id,
        )
        await self._store.upsert(SCHEDULED_NOTIFICATIONS, notification_id, notification.to_record())
        self._cancelled.discard(notification_id)

        if handle is None:
            return ScheduleResult(status="pending_permission", notification=notification, warning=warning)

        logger.info("Scheduled %s for %s", notification_id, fire_at.isoformat())
        return ScheduleResult(status="scheduled", notification=notification, platform_handle=handle)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel(self, notification_id: str) -> bool:
        """Cancel one notification.  Returns False if no record existed."""
        await self._sink.cancel(notification_id)
        existed = await self._store.delete(SCHEDULED_NOTIFICATIONS, notification_id)
        self._cancelled.add(notification_id)
        logger.info("Cancelled %s", notification_id)
        return existed

    async def cancel_all(self) -> int:
        """Cancel every notification.  Returns how many records were removed."""
        await self._sink.cancel_all()
        removed = 0
        for notification in await self.list_scheduled():
            if await self._store.delete(SCHEDULED_NOTIFICATIONS, notification.id):
                removed += 1
            self._cancelled.add(notification.id)
        logger.info("Cancelled all notifications (%d records)", removed)
        return removed

    async def cancel_by_related_id(self, related_id: str) -> list[str]:
        """Cancel every notification tied to a period, reminder or date."""
        cancelled = []
        for notification in await self.list_scheduled():
            if notification.related_id == related_id:
                await self.cancel(notification.id)
                cancelled.append(notification.id)
        return cancelled

    async def retire_stale(
        self, notification_type: NotificationType, keep_id: str | None
    ) -> list[str]:
        """Cancel every notification of ``notification_type`` except ``keep_id``.

        Used after predictions move: the new subject gets a new id and the
        old one must not fire.
        """
        retired = []
        for notification in await self.list_scheduled():
            if notification.type == notification_type and notification.id != keep_id:
                await self.cancel(notification.id)
                retired.append(notification.id)
        if retired:
            logger.info("Retired superseded %s notifications: %s", notification_type.value, retired)
        return retired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_scheduled(self) -> list[ScheduledNotification]:
        """Every persisted notification, soonest first."""
        records = await self._store.list(SCHEDULED_NOTIFICATIONS)
        notifications = [ScheduledNotification.from_record(r) for r in records]
        return sorted(notifications, key=lambda n: (n.scheduled_date, n.id))

    async def state(self, notification_id: str) -> NotificationState:
        record = await self._store.get(SCHEDULED_NOTIFICATIONS, notification_id)
        if record is None:
            if notification_id in self._cancelled:
                return NotificationState.cancelled
            return NotificationState.unscheduled
        notification = ScheduledNotification.from_record(record)
        if not notification.is_active:
            return NotificationState.pending_permission
        if notification.scheduled_date <= self._clock.now():
            return NotificationState.fired
        return NotificationState.scheduled
