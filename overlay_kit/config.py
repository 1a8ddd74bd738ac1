"""
overlay-kit Configuration Management

Centralized configuration using Pydantic Settings. Every field can be set
through an ``OVERLAY_``-prefixed environment variable or a ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from overlay_kit.models.base import AbandonPolicy, HookFailurePolicy


class Settings(BaseSettings):
    """Process-wide defaults for registries and logging."""

    model_config = SettingsConfigDict(
        env_prefix="OVERLAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ═══════════════════════════════════════════════════════════════
    # LOGGING
    # ═══════════════════════════════════════════════════════════════
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_json: bool = Field(default=False, description="Render logs as JSON")

    # ═══════════════════════════════════════════════════════════════
    # LIFECYCLE POLICIES
    # ═══════════════════════════════════════════════════════════════
    hook_failure_policy: HookFailurePolicy = Field(
        default=HookFailurePolicy.RAISE,
        description="Surface failed before-close hooks from close() or only log them",
    )
    abandon_policy: AbandonPolicy = Field(
        default=AbandonPolicy.RESOLVE,
        description="Resolve or keep pending a ref replaced by a new open on its slot",
    )
    auto_drain: bool = Field(
        default=True,
        description="Run pending closes as soon as a slot is marked closed",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.upper()
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton settings instance
settings = get_settings()
