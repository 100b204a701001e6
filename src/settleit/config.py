"""Runtime settings loaded from environment variables."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from settleit.utils.periods import resolve_timezone

ENV_PREFIX = "SETTLEIT_"


def default_db_path() -> str:
    """Return ~/.settleit/settleit.db, creating the directory."""
    db_dir = Path.home() / ".settleit"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "settleit.db")


class Settings(BaseSettings):
    """Engine settings.

    Every field maps to ``SETTLEIT_<FIELD_NAME_UPPER>``. Empty variables
    fall back to the defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    db_path: Optional[str] = None

    # Royalty reports
    royalty_timezone: str = "Europe/Moscow"
    royalty_cutoff_hour: int = 18
    royalty_period_days: int = Field(7, ge=1)
    royalty_accept_timeout_hours: int = Field(168, ge=0)
    workers: int = Field(8, ge=1)

    # Turnover and payouts
    world_currency: str = "EUR"
    reuse_skipped_sources: bool = True
    payout_arrival_days: int = Field(5, ge=0)

    # Notifications
    email_sender: str = "no-reply@settleit.local"
    financier_email: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = Field(25, ge=1)
    redis_url: Optional[str] = None
    merchant_channel: str = "settleit:merchant#{merchant_id}"
    financier_channel: str = "settleit:financier"

    export_dir: Optional[str] = None

    @field_validator("royalty_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value

    @field_validator("royalty_cutoff_hour")
    @classmethod
    def _hour_of_day(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise ValueError(f"Royalty cutoff hour must be between 0 and 23, got {value}")
        return value

    @field_validator("world_currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError(f"World currency must be a 3-letter code, got '{value}'")
        return value
