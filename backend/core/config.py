"""
Configuration management for the floor-plan backend.

Values come from environment variables (or a local .env file) so the same
build runs against a developer SQLite file and the hosted database.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Database Configuration
    database_url: str = "sqlite:///./floorplan.db"

    # Environment Settings
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Restaurant clock
    restaurant_timezone: str = "UTC"

    # Booking defaults
    default_turn_time_minutes: int = 120

    # Floor plan
    walk_in_buffer_minutes: int = 90  # free time needed before the next booking
    check_in_lead_minutes: int = 30  # earliest check-in before booking time
    max_upcoming_per_table: int = 3
    max_history_per_table: int = 3

    # Refresh and editor write pacing
    poll_interval_seconds: int = 30
    layout_debounce_ms: int = 100

    @field_validator(
        "default_turn_time_minutes",
        "poll_interval_seconds",
        "max_upcoming_per_table",
        "max_history_per_table",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Intervals and caps must be positive."""
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("walk_in_buffer_minutes", "check_in_lead_minutes", "layout_debounce_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()


# Export settings instance for easy import
settings = get_settings()
