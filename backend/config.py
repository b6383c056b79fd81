from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from sentinel.input_sanitizer import SanitizerConfig
from sentinel.output_filter import FilterConfig

# Named configurations; anything not listed keeps its default.
PRESETS: dict[str, dict[str, Any]] = {
    "minimal": {"redact_pii": False},
    "standard": {"redact_pii": True, "redact_secrets": True},
    "strict": {"redact_pii": True, "redact_secrets": True, "max_input_length": 5000},
    "paranoid": {
        "redact_pii": True,
        "redact_secrets": True,
        "max_input_length": 2000,
        "block_high_severity": True,
    },
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    environment: str = "production"
    debug: bool = False

    # Input sanitisation
    max_input_length: int = Field(10_000, ge=100, le=100_000)

    # Output filtering
    redact_pii: bool = True
    redact_secrets: bool = True

    # Pipeline: refuse to call the model on high/critical threats
    block_high_severity: bool = False

    # Logging
    enable_logging: bool = True
    log_level: str = "INFO"
    log_file_path: str = ""  # empty = console only
    log_buffer_size: int = Field(100, ge=1)

    model_config = {
        "env_prefix": "SENTINEL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: Any) -> str:
        level = str(value).upper()
        if level == "WARN":
            level = "WARNING"
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(_LOG_LEVELS)}")
        return level

    @classmethod
    def preset(cls, name: str, **overrides: Any) -> "Settings":
        """Build settings from a named preset plus explicit overrides."""
        if name not in PRESETS:
            raise ValueError(
                f"Unknown preset: {name}. Available: {', '.join(PRESETS)}"
            )
        return cls(**{**PRESETS[name], **overrides})

    def sanitizer_config(self) -> SanitizerConfig:
        return SanitizerConfig(max_input_length=self.max_input_length)

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            redact_pii=self.redact_pii,
            redact_secrets=self.redact_secrets,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
