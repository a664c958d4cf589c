"""Pydantic models for manual tracking: periods, basal body temperature,
cervical mucus, birth-control reminders, adherence logs, notifications."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import ConfigDict, Field, model_validator

from src.models.base import CycleSyncBase, TimestampMixin, utc_now

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ---------- Enums ----------

class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"
    unknown = "unknown"


class MucusConsistency(str, Enum):
    dry = "dry"
    sticky = "sticky"
    creamy = "creamy"
    watery = "watery"
    egg_white = "egg-white"


class MucusAmount(str, Enum):
    none = "none"
    light = "light"
    moderate = "moderate"
    heavy = "heavy"


class BirthControlMethod(str, Enum):
    pill = "pill"
    patch = "patch"
    ring = "ring"
    injection = "injection"
    iud = "iud"
    implant = "implant"
    condom = "condom"
    diaphragm = "diaphragm"
    other = "other"


class ReminderFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"


class NotificationType(str, Enum):
    period = "period"
    ovulation = "ovulation"
    fertile_window = "fertile_window"
    birth_control = "birth_control"


# method → (display label, frequencies offered when creating a reminder)
BIRTH_CONTROL_METHODS: dict[BirthControlMethod, tuple[str, list[ReminderFrequency]]] = {
    BirthControlMethod.pill: ("Birth Control Pill", [ReminderFrequency.daily]),
    BirthControlMethod.patch: ("Contraceptive Patch", [ReminderFrequency.weekly]),
    BirthControlMethod.ring: ("Vaginal Ring", [ReminderFrequency.monthly]),
    BirthControlMethod.injection: ("Contraceptive Injection", [ReminderFrequency.quarterly]),
    BirthControlMethod.iud: ("IUD", []),
    BirthControlMethod.implant: ("Contraceptive Implant", []),
    BirthControlMethod.condom: ("Condom", []),
    BirthControlMethod.diaphragm: ("Diaphragm", []),
    BirthControlMethod.other: (
        "Other",
        [ReminderFrequency.daily, ReminderFrequency.weekly, ReminderFrequency.monthly],
    ),
}


# ---------- Periods ----------

class PeriodRecord(CycleSyncBase):
    id: str = Field(min_length=1)
    start_date: dt.date
    end_date: dt.date | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> PeriodRecord:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def last_day(self) -> dt.date:
        """Last calendar day covered; an open period covers its start day only."""
        return self.end_date or self.start_date

    def overlaps(self, other: PeriodRecord) -> bool:
        return self.start_date <= other.last_day and other.start_date <= self.last_day


# ---------- Fertility signals ----------

class BBTEntry(CycleSyncBase):
    id: str = Field(min_length=1)
    date: dt.date
    temperature_celsius: float = Field(ge=35.0, le=42.0)
    time_of_measurement: str = Field(pattern=TIME_OF_DAY_PATTERN)
    notes: str | None = None


class CervicalMucusEntry(CycleSyncBase):
    id: str = Field(min_length=1)
    date: dt.date
    consistency: MucusConsistency
    amount: MucusAmount
    notes: str | None = None


# ---------- Birth control ----------

class ReminderDefinition(CycleSyncBase, TimestampMixin):
    id: str = Field(min_length=1)
    method: BirthControlMethod
    frequency: ReminderFrequency
    time_of_day: str = Field(pattern=TIME_OF_DAY_PATTERN)
    custom_name: str | None = None
    notes: str | None = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        if self.custom_name:
            return self.custom_name
        return BIRTH_CONTROL_METHODS[self.method][0]


class AdherenceLogEntry(CycleSyncBase):
    id: str = Field(min_length=1)
    reminder_id: str = Field(min_length=1)
    date: dt.date
    taken: bool
    taken_at: dt.datetime | None = None
    notes: str | None = None
    created_at: dt.datetime = Field(default_factory=utc_now)


# ---------- Notifications ----------

class ScheduledNotification(CycleSyncBase):
    id: str = Field(min_length=1)
    type: NotificationType
    title: str
    body: str
    scheduled_date: dt.datetime
    is_active: bool = True
    related_id: str | None = None


class NotificationSettings(CycleSyncBase):
    model_config = ConfigDict(extra="forbid")

    period_reminders: bool = True
    ovulation_reminders: bool = True
    fertile_window_reminders: bool = True
    birth_control_reminders: bool = True
    sound_enabled: bool = True
    vibration_enabled: bool = True
    notification_time: str = Field(default="09:00", pattern=TIME_OF_DAY_PATTERN)

    def enabled_for(self, notification_type: NotificationType) -> bool:
        return {
            NotificationType.period: self.period_reminders,
            NotificationType.ovulation: self.ovulation_reminders,
            NotificationType.fertile_window: self.fertile_window_reminders,
            NotificationType.birth_control: self.birth_control_reminders,
        }[notification_type]
