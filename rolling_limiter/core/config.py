from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide defaults loaded from environment variables.

    All settings can be configured via environment variables (prefixed with
    ``ROLLING_LIMITER_``) or a .env file. Explicit constructor arguments always
    win over these defaults.
    """

    # Storage backend: in-process memory or a shared Redis
    backend: Literal["memory", "redis"] = "memory"

    # Rolling window defaults (public values are milliseconds)
    interval_ms: int = 60_000
    max_in_interval: int = 60
    min_difference_ms: int = 0  # 0 disables the spacing check

    # Redis settings
    redis_url: str = "redis://localhost:6379/0"
    redis_client_kind: Literal["async", "sync"] = "async"
    namespace: str = "rolling-limiter:"

    # In-memory expiry sweep, in seconds
    memory_sweep_interval_seconds: float = 60.0

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("interval_ms", "max_in_interval")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate window values are positive."""
        if v < 1:
            raise ValueError("interval_ms and max_in_interval must be at least 1")
        return v

    @field_validator("min_difference_ms")
    @classmethod
    def validate_min_difference(cls, v: int) -> int:
        if v < 0:
            raise ValueError("min_difference_ms cannot be negative")
        return v

    @field_validator("memory_sweep_interval_seconds")
    @classmethod
    def validate_sweep_interval(cls, v: float) -> float:
        """Validate sweep interval is positive."""
        if v <= 0:
            raise ValueError("memory_sweep_interval_seconds must be positive")
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v:
            raise ValueError("namespace must be a non-empty string")
        return v

    model_config = SettingsConfigDict(
        env_prefix="ROLLING_LIMITER_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()
