import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        earliest_rotary_year: int,
        stats_refresh_hour: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.earliest_rotary_year = earliest_rotary_year
        self.stats_refresh_hour = stats_refresh_hour
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("CLUB_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "club.db"
    database_url = os.getenv("CLUB_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("CLUB_TIMEZONE", "Asia/Kuala_Lumpur")
    earliest_rotary_year = int(os.getenv("CLUB_EARLIEST_ROTARY_YEAR", "2020"))
    stats_refresh_hour = int(os.getenv("CLUB_STATS_REFRESH_HOUR", "3"))
    if not 0 <= stats_refresh_hour <= 23:
        raise ValueError("CLUB_STATS_REFRESH_HOUR must be between 0 and 23")
    log_level = os.getenv("CLUB_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        earliest_rotary_year=earliest_rotary_year,
        stats_refresh_hour=stats_refresh_hour,
        log_level=log_level,
    )
