"""Load, validate, and hot-reload the CycleSync heuristic configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an update; no restart required.

Usage::

    from src.cyclecore.config_loader import get_cycle_config

    config = get_cycle_config()
    config.cycle.default_cycle_length        # 28
    config.fertility.mucus_score("watery")   # 80
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("cyclesync.cyclecore.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class CycleConfig:
    """Cycle length and phase classification settings."""

    default_cycle_length: int = 28
    rolling_average_periods: int = 6
    menstrual_max_day: int = 5
    follicular_max_day: int = 13
    ovulation_max_day: int = 16
    luteal_phase_days: int = 14
    irregular_std_days: float = 7.0
    fertile_days_before_ovulation: int = 5
    fertile_days_after_ovulation: int = 1


@dataclass
class FertilityConfig:
    """BBT / cervical mucus analysis settings."""

    bbt_min_c: float = 35.0
    bbt_max_c: float = 42.0
    trend_window: int = 7
    trend_baseline_days: int = 3
    temp_shift_threshold_c: float = 0.2
    ovulation_min_bbt_entries: int = 7
    ovulation_min_mucus_entries: int = 3
    mucus_lookback: int = 5
    fertile_consistencies: list[str] = field(default_factory=lambda: ["egg-white", "watery"])
    mucus_scores: dict[str, int] = field(
        default_factory=lambda: {
            "egg-white": 100,
            "watery": 80,
            "creamy": 60,
            "sticky": 40,
            "dry": 20,
        }
    )

    def mucus_score(self, consistency: str | None) -> int:
        """Return the fertility score for a consistency; unknown values score 0."""
        if consistency is None:
            return 0
        return self.mucus_scores.get(consistency, 0)


@dataclass
class AdherenceConfig:
    """Adherence windows and rating bands."""

    windows: list[int] = field(default_factory=lambda: [7, 30, 90])
    excellent_threshold: int = 90
    good_threshold: int = 70
    fair_threshold: int = 50


@dataclass
class NotificationDefaults:
    """Notification settings applied until the user changes them."""

    period_reminders: bool = True
    ovulation_reminders: bool = True
    fertile_window_reminders: bool = True
    birth_control_reminders: bool = True
    notification_time: str = "09:00"


@dataclass
class CycleCoreConfig:
    """Complete, validated heuristic configuration.

    This is the single in-memory representation of cycle_config.yaml.
    All analytic components and the reminder scheduler read from this object.

    Attributes:
        version:       Config schema version string.
        cycle:         Cycle length and phase settings.
        fertility:     BBT and mucus analysis settings.
        adherence:     Adherence windows and rating bands.
        notifications: Default notification settings.
    """

    version: str = "1.0"
    cycle: CycleConfig = field(default_factory=CycleConfig)
    fertility: FertilityConfig = field(default_factory=FertilityConfig)
    adherence: AdherenceConfig = field(default_factory=AdherenceConfig)
    notifications: NotificationDefaults = field(default_factory=NotificationDefaults)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleCoreConfig:
    """Validate the raw YAML dict and construct a CycleCoreConfig.

    Missing keys fall back to the dataclass defaults.  All problems are
    collected and reported together.

    Raises:
        ConfigValidationError: If any value is missing its expected type or range.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, where: str, minimum: int = 0) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default
        if number < minimum:
            errors.append(f"{where}.{key} = {number} is below the minimum of {minimum}")
        return number

    def _float(section: dict, key: str, default: float, where: str) -> float:
        value = section.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            errors.append(f"{where}.{key} must be a number, got {value!r}")
            return default

    version = str(raw.get("version", "1.0"))

    # ── Cycle ──
    c_raw = raw.get("cycle") or {}
    pb_raw = c_raw.get("phase_boundaries") or {}
    fw_raw = c_raw.get("fertile_window") or {}
    defaults = CycleConfig()
    cycle = CycleConfig(
        default_cycle_length=_int(c_raw, "default_cycle_length", defaults.default_cycle_length, "cycle", 1),
        rolling_average_periods=_int(c_raw, "rolling_average_periods", defaults.rolling_average_periods, "cycle", 2),
        menstrual_max_day=_int(pb_raw, "menstrual", defaults.menstrual_max_day, "cycle.phase_boundaries"),
        follicular_max_day=_int(pb_raw, "follicular", defaults.follicular_max_day, "cycle.phase_boundaries"),
        ovulation_max_day=_int(pb_raw, "ovulation", defaults.ovulation_max_day, "cycle.phase_boundaries"),
        luteal_phase_days=_int(c_raw, "luteal_phase_days", defaults.luteal_phase_days, "cycle"),
        irregular_std_days=_float(c_raw, "irregular_std_days", defaults.irregular_std_days, "cycle"),
        fertile_days_before_ovulation=_int(
            fw_raw, "days_before_ovulation", defaults.fertile_days_before_ovulation, "cycle.fertile_window"
        ),
        fertile_days_after_ovulation=_int(
            fw_raw, "days_after_ovulation", defaults.fertile_days_after_ovulation, "cycle.fertile_window"
        ),
    )
    if not (cycle.menstrual_max_day < cycle.follicular_max_day < cycle.ovulation_max_day):
        errors.append(
            "cycle.phase_boundaries must be strictly increasing "
            "(menstrual < follicular < ovulation)"
        )

    # ── Fertility ──
    f_raw = raw.get("fertility") or {}
    f_defaults = FertilityConfig()
    scores_raw = f_raw.get("mucus_scores", f_defaults.mucus_scores)
    mucus_scores: dict[str, int] = {}
    if not isinstance(scores_raw, dict):
        errors.append("fertility.mucus_scores must be a mapping of consistency→score")
    else:
        for consistency, score in scores_raw.items():
            try:
                s = int(score)
            except (TypeError, ValueError):
                errors.append(f"fertility.mucus_scores.{consistency} must be an integer, got {score!r}")
                continue
            if not (0 <= s <= 100):
                errors.append(f"fertility.mucus_scores.{consistency} = {s} is out of range [0, 100]")
            mucus_scores[str(consistency)] = s

    fertility = FertilityConfig(
        bbt_min_c=_float(f_raw, "bbt_min_c", f_defaults.bbt_min_c, "fertility"),
        bbt_max_c=_float(f_raw, "bbt_max_c", f_defaults.bbt_max_c, "fertility"),
        trend_window=_int(f_raw, "trend_window", f_defaults.trend_window, "fertility", 2),
        trend_baseline_days=_int(f_raw, "trend_baseline_days", f_defaults.trend_baseline_days, "fertility", 1),
        temp_shift_threshold_c=_float(f_raw, "temp_shift_threshold_c", f_defaults.temp_shift_threshold_c, "fertility"),
        ovulation_min_bbt_entries=_int(
            f_raw, "ovulation_min_bbt_entries", f_defaults.ovulation_min_bbt_entries, "fertility", 1
        ),
        ovulation_min_mucus_entries=_int(
            f_raw, "ovulation_min_mucus_entries", f_defaults.ovulation_min_mucus_entries, "fertility", 1
        ),
        mucus_lookback=_int(f_raw, "mucus_lookback", f_defaults.mucus_lookback, "fertility", 1),
        fertile_consistencies=list(f_raw.get("fertile_consistencies", f_defaults.fertile_consistencies)),
        mucus_scores=mucus_scores,
    )
    if fertility.bbt_min_c >= fertility.bbt_max_c:
        errors.append("fertility.bbt_min_c must be below fertility.bbt_max_c")
    if fertility.trend_baseline_days >= fertility.trend_window:
        errors.append("fertility.trend_baseline_days must be smaller than fertility.trend_window")

    # ── Adherence ──
    a_raw = raw.get("adherence") or {}
    bands_raw = a_raw.get("rating_bands") or {}
    a_defaults = AdherenceConfig()
    windows: list[int] = []
    for w in a_raw.get("windows", a_defaults.windows):
        try:
            windows.append(int(w))
        except (TypeError, ValueError):
            errors.append(f"adherence.windows entries must be integers, got {w!r}")
    if any(w <= 0 for w in windows):
        errors.append(f"adherence.windows must all be positive, got {windows}")
    adherence = AdherenceConfig(
        windows=windows,
        excellent_threshold=_int(bands_raw, "excellent", a_defaults.excellent_threshold, "adherence.rating_bands"),
        good_threshold=_int(bands_raw, "good", a_defaults.good_threshold, "adherence.rating_bands"),
        fair_threshold=_int(bands_raw, "fair", a_defaults.fair_threshold, "adherence.rating_bands"),
    )
    if not (adherence.fair_threshold < adherence.good_threshold < adherence.excellent_threshold <= 100):
        errors.append("adherence.rating_bands must satisfy fair < good < excellent <= 100")

    # ── Notifications ──
    n_raw = raw.get("notifications") or {}
    n_defaults = NotificationDefaults()
    notifications = NotificationDefaults(
        period_reminders=bool(n_raw.get("period_reminders", n_defaults.period_reminders)),
        ovulation_reminders=bool(n_raw.get("ovulation_reminders", n_defaults.ovulation_reminders)),
        fertile_window_reminders=bool(
            n_raw.get("fertile_window_reminders", n_defaults.fertile_window_reminders)
        ),
        birth_control_reminders=bool(
            n_raw.get("birth_control_reminders", n_defaults.birth_control_reminders)
        ),
        notification_time=str(n_raw.get("notification_time", n_defaults.notification_time)),
    )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleCoreConfig(
        version=version,
        cycle=cycle,
        fertility=fertility,
        adherence=adherence,
        notifications=notifications,
    )


def load_cycle_config(path: Path | str | None = None) -> CycleCoreConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleCoreConfig instance.
    """
    target = Path(path) if path else _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleCoreConfig | None = None
_config_lock = threading.Lock()


def _configured_path() -> str | None:
    from src.config import get_settings

    return get_settings().cycle_config_path


def get_cycle_config() -> CycleCoreConfig:
    """Return the global CycleCoreConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config(_configured_path())
    return _config


def reload_cycle_config(path: Path | str | None = None) -> CycleCoreConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path or _configured_path())  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
