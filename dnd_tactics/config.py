"""Engine configuration using environment variables."""
import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


class Settings:
    """Engine settings loaded from environment variables."""

    # Logging
    LOG_LEVEL: str = os.getenv("DND_TACTICS_LOG_LEVEL", "WARNING")

    # Rules
    RULES_PRESET: str = os.getenv("DND_TACTICS_RULES_PRESET", "standard")

    # Dice - fixed seed for reproducible simulations (unset = system entropy)
    DICE_SEED: Optional[int] = _optional_int(os.getenv("DND_TACTICS_DICE_SEED"))

    # Game Constants
    FEET_PER_SQUARE: int = 5  # Each grid square = 5 feet
    DEFAULT_SPEED: int = int(os.getenv("DND_TACTICS_DEFAULT_SPEED", "30"))


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the package logger from settings (or an explicit level)."""
    level_name = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("dnd_tactics").setLevel(level_name)
