"""
Application settings for the registry matching service.

- Defaults are intended for development use.
- For testing, pass overrides to Settings() or set environment variables.
- For production, set environment variables to override fields.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Registry matching service configuration."""

    # Registry gateway
    registry_url: str = Field(
        default="http://localhost:5001",
        description="Base URL of the registry gateway (search and demographics)",
    )
    registry_timeout: float = Field(
        default=30.0,
        description="Timeout for a single registry request in seconds",
    )
    registry_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per registry request before giving up",
    )
    registry_retry_wait: float = Field(
        default=0.5,
        ge=0,
        description="Base wait in seconds for exponential back-off between attempts",
    )

    # Search strategy
    search_strategy: str = Field(
        default="strategy1",
        description="Search strategy used when a request does not name one",
    )
    search_strategy_version: int | None = Field(
        default=None,
        description="Strategy version; None selects the strategy's default version",
    )
    dob_range_months: int | None = Field(
        default=None,
        ge=0,
        description="Overrides the strategy's birth date range width in months",
    )
    include_gender: bool = Field(
        default=True,
        description="Whether gender is forwarded to registry search queries",
    )

    # Confidence banding
    match_threshold: float = Field(
        default=0.95,
        description="Lowest score classified as a confirmed Match",
    )
    potential_match_threshold: float = Field(
        default=0.85,
        description="Lowest score classified as a PotentialMatch",
    )
    match_timeout: float | None = Field(
        default=30.0,
        description="Timeout in seconds for a whole search cascade",
    )

    log_level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_thresholds(self) -> "Settings":
        """Confidence bands must not overlap."""
        if self.potential_match_threshold > self.match_threshold:
            raise ValueError(
                "potential_match_threshold cannot be greater than match_threshold"
            )
        return self


settings = Settings()
