"""Service objects: the entry points the UI layer calls.

Each service is built with its collaborators (record store, clock,
reminder scheduler, config) and passed down explicitly; nothing here is a
module-level singleton.  Services validate user input at write time, persist
records through the store and delegate all derived values to the pure
analytic components.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Literal, TypeVar

from pydantic import ValidationError as PydanticValidationError

from src.config import get_settings
from src.cyclecore.adherence.tracker import AdherenceStats, AdherenceTracker
from src.cyclecore.base import (
    ADHERENCE_LOGS,
    BBT_ENTRIES,
    MUCUS_ENTRIES,
    PERIODS,
    REMINDERS,
    Clock,
    RecordStore,
)
from src.cyclecore.config_loader import CycleCoreConfig, get_cycle_config
from src.cyclecore.cycle.cycle_model import CycleModel, CycleStats
from src.cyclecore.cycle.fertility import (
    FertilityInsight,
    FertilitySignalAnalyzer,
    OvulationPrediction,
    TemperatureTrend,
)
from src.cyclecore.date_math import next_occurrence, parse_iso_date
from src.cyclecore.errors import ValidationError
from src.cyclecore.reminders.ids import (
    fertile_window_notification_id,
    ovulation_notification_id,
    period_notification_id,
)
from src.cyclecore.reminders.scheduler import ReminderScheduler, ScheduleResult
from src.models.base import CycleSyncBase, utc_now
from src.models.tracking import (
    AdherenceLogEntry,
    BBTEntry,
    CervicalMucusEntry,
    CyclePhase,
    NotificationType,
    PeriodRecord,
    ReminderDefinition,
)

logger = logging.getLogger("cyclesync.cyclecore.services")

M = TypeVar("M", bound=CycleSyncBase)

RetentionPolicy = Literal["retain", "purge"]


def new_id() -> str:
    return uuid.uuid4().hex


def _build(model: type[M], data: dict[str, Any]) -> M:
    """Validate ``data`` into ``model``, translating pydantic failures."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or model.__name__
        raise ValidationError(field, first.get("msg", str(exc))) from exc


async def _load(store: RecordStore, entity_type: str, model: type[M]) -> list[M]:
    return [model.from_record(r) for r in await store.list(entity_type)]


async def _require(store: RecordStore, entity_type: str, record_id: str, model: type[M]) -> M:
    record = await store.get(entity_type, record_id)
    if record is None:
        raise ValidationError("id", f"No {entity_type} record with id {record_id!r}")
    return model.from_record(record)


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------


class PeriodService:
    """Period history, cycle statistics and prediction-driven reminders."""

    def __init__(
        self,
        store: RecordStore,
        clock: Clock,
        scheduler: ReminderScheduler | None = None,
        config: CycleCoreConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._scheduler = scheduler
        self._config = config or get_cycle_config()

    async def list_periods(self) -> list[PeriodRecord]:
        periods = await _load(self._store, PERIODS, PeriodRecord)
        return sorted(periods, key=lambda p: p.start_date)

    async def _check_overlap(self, candidate: PeriodRecord) -> None:
        for existing in await self.list_periods():
            if existing.id != candidate.id and existing.overlaps(candidate):
                raise ValidationError(
                    "start_date",
                    f"Period {candidate.start_date}…{candidate.last_day} overlaps the "
                    f"period starting {existing.start_date}",
                )

    async def add_period(
        self,
        start_date: date | str,
        end_date: date | str | None = None,
        notes: str | None = None,
    ) -> PeriodRecord:
        period = _build(
            PeriodRecord,
            {"id": new_id(), "start_date": start_date, "end_date": end_date, "notes": notes},
        )
        await self._check_overlap(period)
        await self._store.upsert(PERIODS, period.id, period.to_record())
        logger.info("Logged period %s starting %s", period.id, period.start_date)
        await self.refresh_predictions()
        return period

    async def update_period(self, period_id: str, **changes: Any) -> PeriodRecord:
        current = await _require(self._store, PERIODS, period_id, PeriodRecord)
        updated = _build(PeriodRecord, {**current.model_dump(), **changes, "id": period_id})
        await self._check_overlap(updated)
        await self._store.upsert(PERIODS, period_id, updated.to_record())
        await self.refresh_predictions()
        return updated

    async def delete_period(self, period_id: str) -> bool:
        existed = await self._store.delete(PERIODS, period_id)
        if existed and self._scheduler is not None:
            await self._scheduler.cancel_by_related_id(period_id)
        if existed:
            await self.refresh_predictions()
        return existed

    async def cycle_model(self) -> CycleModel:
        return CycleModel(await self.list_periods(), self._config)

    async def cycle_stats(self) -> CycleStats:
        return (await self.cycle_model()).stats()

    async def current_phase(self) -> CyclePhase:
        return (await self.cycle_model()).current_cycle_phase(self._clock.today())

    async def days_until_next_period(self) -> int | None:
        return (await self.cycle_model()).days_until_next_period(self._clock.today())

    async def refresh_predictions(self) -> list[ScheduleResult]:
        """Re-derive predicted dates and reschedule the prediction reminders.

        Superseded period / ovulation / fertile-window notifications (whose
        subject moved because the history changed) are cancelled, as are all
        notifications of a type the user switched off.
        """
        if self._scheduler is None:
            return []

        model = await self.cycle_model()
        last = model.last_period
        if last is None:
            for kind in (NotificationType.period, NotificationType.ovulation, NotificationType.fertile_window):
                await self._scheduler.retire_stale(kind, keep_id=None)
            return []

        predicted_start = model.predicted_next_start()
        ovulation = model.predicted_ovulation_date()
        window = model.predicted_fertile_window()

        results = [
            await self._scheduler.schedule_for_period(last, predicted_start),
            await self._scheduler.schedule_for_ovulation(ovulation),
            await self._scheduler.schedule_for_fertile_window(window.start),
        ]
        current_ids = {
            NotificationType.period: period_notification_id(last.id),
            NotificationType.ovulation: ovulation_notification_id(ovulation),
            NotificationType.fertile_window: fertile_window_notification_id(window.start),
        }
        for (kind, keep_id), result in zip(current_ids.items(), results):
            # A skipped type keeps nothing
            await self._scheduler.retire_stale(kind, keep_id=None if result.status == "skipped" else keep_id)
        return results


# ---------------------------------------------------------------------------
# Fertility signals
# ---------------------------------------------------------------------------


class FertilityService:
    """BBT and cervical mucus logs plus the fertility insight for today."""

    def __init__(
        self,
        store: RecordStore,
        clock: Clock,
        config: CycleCoreConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or get_cycle_config()
        self._analyzer = FertilitySignalAnalyzer(self._config)

    async def list_bbt(self) -> list[BBTEntry]:
        return sorted(await _load(self._store, BBT_ENTRIES, BBTEntry), key=lambda e: e.date)

    async def list_mucus(self) -> list[CervicalMucusEntry]:
        return sorted(
            await _load(self._store, MUCUS_ENTRIES, CervicalMucusEntry), key=lambda e: e.date
        )

    def _check_temperature(self, temperature: Any) -> None:
        fc = self._config.fertility
        try:
            value = float(temperature)
        except (TypeError, ValueError):
            raise ValidationError("temperature_celsius", f"Not a number: {temperature!r}") from None
        if not (fc.bbt_min_c <= value <= fc.bbt_max_c):
            raise ValidationError(
                "temperature_celsius",
                f"{value}°C is outside the plausible range {fc.bbt_min_c}–{fc.bbt_max_c}°C",
            )

    @staticmethod
    def _check_unique_date(entries: list, candidate_id: str, day: date) -> None:
        for entry in entries:
            if entry.date == day and entry.id != candidate_id:
                raise ValidationError("date", f"An entry for {day.isoformat()} already exists")

    async def add_bbt_entry(
        self,
        day: date | str,
        temperature_celsius: float,
        time_of_measurement: str,
        notes: str | None = None,
    ) -> BBTEntry:
        self._check_temperature(temperature_celsius)
        entry = _build(
            BBTEntry,
            {
                "id": new_id(),
                "date": day,
                "temperature_celsius": temperature_celsius,
                "time_of_measurement": time_of_measurement,
                "notes": notes,
            },
        )
        self._check_unique_date(await self.list_bbt(), entry.id, entry.date)
        await self._store.upsert(BBT_ENTRIES, entry.id, entry.to_record())
        return entry

    async def update_bbt_entry(self, entry_id: str, **changes: Any) -> BBTEntry:
        current = await _require(self._store, BBT_ENTRIES, entry_id, BBTEntry)
        if "temperature_celsius" in changes:
            self._check_temperature(changes["temperature_celsius"])
        updated = _build(BBTEntry, {**current.model_dump(), **changes, "id": entry_id})
        self._check_unique_date(await self.list_bbt(), entry_id, updated.date)
        await self._store.upsert(BBT_ENTRIES, entry_id, updated.to_record())
        return updated

    async def delete_bbt_entry(self, entry_id: str) -> bool:
        return await self._store.delete(BBT_ENTRIES, entry_id)

    async def add_mucus_entry(
        self,
        day: date | str,
        consistency: str,
        amount: str,
        notes: str | None = None,
    ) -> CervicalMucusEntry:
        entry = _build(
            CervicalMucusEntry,
            {"id": new_id(), "date": day, "consistency": consistency, "amount": amount, "notes": notes},
        )
        self._check_unique_date(await self.list_mucus(), entry.id, entry.date)
        await self._store.upsert(MUCUS_ENTRIES, entry.id, entry.to_record())
        return entry

    async def update_mucus_entry(self, entry_id: str, **changes: Any) -> CervicalMucusEntry:
        current = await _require(self._store, MUCUS_ENTRIES, entry_id, CervicalMucusEntry)
        updated = _build(CervicalMucusEntry, {**current.model_dump(), **changes, "id": entry_id})
        self._check_unique_date(await self.list_mucus(), entry_id, updated.date)
        await self._store.upsert(MUCUS_ENTRIES, entry_id, updated.to_record())
        return updated

    async def delete_mucus_entry(self, entry_id: str) -> bool:
        return await self._store.delete(MUCUS_ENTRIES, entry_id)

    async def temperature_trend(self) -> TemperatureTrend:
        return self._analyzer.temperature_trend(await self.list_bbt())

    async def predict_ovulation(self) -> OvulationPrediction:
        return self._analyzer.predict_ovulation(await self.list_bbt(), await self.list_mucus())

    async def insight(self, phase: CyclePhase | None = None) -> FertilityInsight:
        """Today's fertility summary.  The phase is derived from the logged
        periods unless the caller already knows it."""
        today = self._clock.today()
        if phase is None:
            periods = await _load(self._store, PERIODS, PeriodRecord)
            phase = CycleModel(periods, self._config).current_cycle_phase(today)
        return self._analyzer.insight(today, await self.list_bbt(), await self.list_mucus(), phase)


# ---------------------------------------------------------------------------
# Birth control
# ---------------------------------------------------------------------------


class BirthControlService:
    """Birth-control reminders, their notifications and adherence history.

    ``adherence_retention`` decides what happens to a reminder's adherence
    logs when the reminder is deleted: ``"retain"`` keeps them as orphaned
    history, ``"purge"`` deletes them.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock,
        scheduler: ReminderScheduler,
        config: CycleCoreConfig | None = None,
        adherence_retention: RetentionPolicy | None = None,
    ) -> None:
        if adherence_retention is None:
            adherence_retention = get_settings().adherence_retention
        if adherence_retention not in ("retain", "purge"):
            raise ValueError(f"Unknown adherence retention policy: {adherence_retention!r}")
        self._store = store
        self._clock = clock
        self._scheduler = scheduler
        self._config = config or get_cycle_config()
        self._tracker = AdherenceTracker(self._config)
        self._retention = adherence_retention

    # --- Reminders ---

    async def list_reminders(self) -> list[ReminderDefinition]:
        reminders = await _load(self._store, REMINDERS, ReminderDefinition)
        return sorted(reminders, key=lambda r: (r.time_of_day, r.id))

    async def get_reminder(self, reminder_id: str) -> ReminderDefinition:
        return await _require(self._store, REMINDERS, reminder_id, ReminderDefinition)

    async def add_reminder(
        self,
        method: str,
        frequency: str,
        time_of_day: str,
        custom_name: str | None = None,
        notes: str | None = None,
    ) -> ReminderDefinition:
        reminder = _build(
            ReminderDefinition,
            {
                "id": new_id(),
                "method": method,
                "frequency": frequency,
                "time_of_day": time_of_day,
                "custom_name": custom_name,
                "notes": notes,
            },
        )
        await self._store.upsert(REMINDERS, reminder.id, reminder.to_record())
        logger.info("Added %s reminder %s at %s", reminder.method.value, reminder.id, reminder.time_of_day)
        await self._scheduler.schedule_for_birth_control(reminder)
        return reminder

    async def update_reminder(self, reminder_id: str, **changes: Any) -> ReminderDefinition:
        """Apply changes, then replace its notification (or cancel it if inactive)."""
        current = await self.get_reminder(reminder_id)
        updated = _build(
            ReminderDefinition,
            {**current.model_dump(), **changes, "id": reminder_id, "updated_at": utc_now()},
        )
        await self._store.upsert(REMINDERS, reminder_id, updated.to_record())
        await self._scheduler.cancel_by_related_id(reminder_id)
        if updated.is_active:
            await self._scheduler.schedule_for_birth_control(updated)
        return updated

    async def delete_reminder(self, reminder_id: str) -> bool:
        existed = await self._store.delete(REMINDERS, reminder_id)
        await self._scheduler.cancel_by_related_id(reminder_id)
        if self._retention == "purge":
            purged = 0
            for log in await self._logs_for(reminder_id):
                purged += await self._store.delete(ADHERENCE_LOGS, log.id)
            logger.info("Deleted reminder %s and purged %d adherence logs", reminder_id, purged)
        else:
            logger.info("Deleted reminder %s; adherence history retained", reminder_id)
        return existed

    async def next_due(self, reminder_id: str) -> datetime:
        """When the reminder is next due, honouring its frequency."""
        reminder = await self.get_reminder(reminder_id)
        return next_occurrence(reminder.time_of_day, reminder.frequency, self._clock.now())

    # --- Adherence ---

    async def _logs_for(self, reminder_id: str) -> list[AdherenceLogEntry]:
        logs = await _load(self._store, ADHERENCE_LOGS, AdherenceLogEntry)
        return [log for log in logs if log.reminder_id == reminder_id]

    async def log_adherence(
        self,
        reminder_id: str,
        taken: bool,
        day: date | str | None = None,
        notes: str | None = None,
    ) -> AdherenceLogEntry:
        """Record today's (or ``day``'s) decision, replacing any earlier one."""
        log_day = parse_iso_date(day) if day is not None else self._clock.today()
        entry = self._tracker.build_log(reminder_id, log_day, taken, self._clock.now(), notes)
        await self._store.upsert(ADHERENCE_LOGS, entry.id, entry.to_record())
        return entry

    async def log_for_date(self, reminder_id: str, day: date | str) -> AdherenceLogEntry | None:
        return self._tracker.log_for_date(
            await self._logs_for(reminder_id), reminder_id, parse_iso_date(day)
        )

    async def adherence_stats(self, reminder_id: str, window_days: int = 30) -> AdherenceStats:
        return self._tracker.stats(
            reminder_id, await self._logs_for(reminder_id), window_days, self._clock.today()
        )

    async def adherence_summary(self, reminder_id: str) -> dict[int, AdherenceStats]:
        """Adherence over each configured window, keyed by window size."""
        return self._tracker.summary(
            reminder_id, await self._logs_for(reminder_id), self._clock.today()
        )
