"""
Configuration Models

Pydantic models for system configuration validation.
"""

import json
from pathlib import Path
from pydantic import BaseModel, Field, field_validator


DEFAULT_CONFIG_PATH = Path("config/system_params.json")


class BatchConfig(BaseModel):
    """Batch configuration for concurrent analysis."""

    analysis_concurrency: int = Field(
        default=3,
        gt=0,
        le=20,
        description="Maximum researcher analyses running at the same time",
    )


class RetryConfig(BaseModel):
    """Retry budget and backoff for collaborator calls."""

    max_retries: int = Field(default=2, ge=0, le=10)
    base_delay_seconds: float = Field(default=1.0, gt=0.0, le=60.0)


class RateLimits(BaseModel):
    """Rate limiting configuration: at most N requests per period."""

    serpapi_max_requests: int = Field(default=1, gt=0)
    serpapi_period_seconds: float = Field(default=1.0, gt=0.0)


class Timeouts(BaseModel):
    """Timeout configuration in seconds."""

    http_seconds: int = Field(default=30, gt=0)


class AnalysisConfig(BaseModel):
    """Limits applied when preparing collaborator input."""

    max_publications: int = Field(default=200, gt=0, le=500)
    publications_per_request: int = Field(default=50, gt=0, le=100)
    max_extraction_chars: int = Field(default=30000, gt=0)


class StorageConfig(BaseModel):
    """Local session persistence."""

    state_dir: str = Field(default="state")


class SystemParams(BaseModel):
    """System parameters configuration model."""

    batch_config: BatchConfig = Field(default_factory=BatchConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limits: RateLimits = Field(default_factory=RateLimits)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @classmethod
    def load(
        cls, config_path: Path | str | None = None, allow_missing: bool = False
    ) -> "SystemParams":
        """Load system parameters from config file.

        Args:
            config_path: Path to system_params.json (defaults to config/system_params.json)
            allow_missing: Return defaults instead of raising when the file is absent

        Returns:
            SystemParams: Validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist and allow_missing is False
            ValueError: If config validation fails
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            if allow_missing:
                return cls()
            raise FileNotFoundError(
                f"Config file not found: {config_path}. "
                f"Copy {config_path.stem}.example.json to {config_path.name}"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)

        return cls(**config_data)
