"""Application configuration loaded from environment variables."""

import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "CycleSync Core"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Heuristics ---
    cycle_config_path: str | None = None  # None = bundled cycle_config.yaml

    # --- Birth control ---
    # What happens to adherence history when its reminder is deleted
    adherence_retention: Literal["retain", "purge"] = "retain"

    model_config = {
        "env_prefix": "CYCLESYNC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install the root log handler used by every ``cyclesync.*`` logger."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("cyclesync").info(
        "%s v%s starting (%s)", settings.app_name, settings.app_version, settings.environment
    )
