import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Persistence (in-memory stores when DATABASE_URL is unset)
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Question pool
    QUESTION_SEED_PATH: Optional[str] = None  # JSON list of {"options": [...], "prompt": "..."}
    SELECTOR_SEED: Optional[int] = None  # fixed RNG seed for reproducible selection

    # Scheduled high-score resets
    RESET_UTC_OFFSET_HOURS: int = 2
    WEEK_START_DAY: str = "sunday"

    # Leaderboard collaborator
    LEADERBOARD_URL: Optional[str] = None
    LEADERBOARD_API_KEY: Optional[str] = None
    LEADERBOARD_ALL_TIME_ID: str = "allTimeLeaderboardID"
    LEADERBOARD_DAILY_ID: str = "dailyLeaderboardID"
    LEADERBOARD_WEEKLY_ID: str = "weeklyLeaderboardID"

    # Client library
    GAME_ENDPOINT_URL: str = "http://localhost:8000/v1/game"
    CLIENT_TIMEOUT_SECONDS: float = 10.0

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate recommended configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("normalz")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    recommended_keys = [
        "DATABASE_URL",
        "QUESTION_SEED_PATH",
    ]

    missing = [key for key in recommended_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing recommended configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.LEADERBOARD_URL and not cfg.LEADERBOARD_API_KEY:
        message = "LEADERBOARD_URL is set without LEADERBOARD_API_KEY"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
