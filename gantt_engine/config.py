"""
Engine configuration using Pydantic settings.

Every value can be overridden through a ``GANTT_``-prefixed environment
variable or a local ``.env`` file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    app_name: str = "gantt-engine"

    # Logging
    debug: bool = False
    log_level: str | None = None
    json_logs: bool = False

    # Scale
    zoom_level: str = "day"
    week_start: int = 1  # 0=Sunday ... 6=Saturday
    weekends: list[int] = [0, 6]
    full_week: bool = True
    min_column_width: int = 80
    scale_height: int = 30

    # Tree
    collapse: bool = True  # parents start collapsed unless the record is_open

    # Timeline mapping
    strict_offsets: bool = False  # raise instead of extrapolating outside buckets

    # Scheduling
    auto_schedule: bool = True

    model_config = SettingsConfigDict(
        env_prefix="GANTT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def weekend_set(self) -> frozenset[int]:
        return frozenset(self.weekends)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
