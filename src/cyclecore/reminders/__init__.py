"""Local reminder scheduling.

Modules:
    ids       — Deterministic ids for notifications and adherence logs
    scheduler — Schedule / replace / cancel period, ovulation, fertile-window
                and birth-control notifications
"""

from src.cyclecore.reminders.scheduler import NotificationState, ReminderScheduler, ScheduleResult

__all__ = ["ReminderScheduler", "ScheduleResult", "NotificationState"]
