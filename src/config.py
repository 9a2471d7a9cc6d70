from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LedgerSettings(BaseSettings):
    """Ledger run configuration, read from LEDGER_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    log_level: LogLevel = "WARNING"

    # Track per-transaction dispute state instead of relying on balance checks alone
    strict_disputes: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


def get_settings(**overrides) -> LedgerSettings:
    """Load settings from the environment; keyword overrides win (used for CLI flags)."""
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return LedgerSettings(**overrides)
