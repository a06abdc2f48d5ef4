"""
Library configuration management using Pydantic Settings.

Loads configuration from FORMCALC_* environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """formcalc settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FORMCALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    # ==========================================================================
    # Computed Fields
    # ==========================================================================
    default_decimal_places: int = Field(
        default=2,
        ge=0,
        le=15,
        description="Decimal places for computed fields that do not set their own",
    )
    cyclic_formula_policy: Literal["warn", "reject"] = Field(
        default="warn",
        description="Whether cyclic formula dependencies are logged or rejected",
    )
    validate_formulas_on_load: bool = Field(
        default=False,
        description="Reject schemas whose formulas have invalid syntax",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
