"""
Configuration management for the LightGuard data layer.

Loads Supabase credentials and logging options from environment variables.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Data layer settings loaded from environment variables.

    All settings can be overridden via environment variables or a ``.env`` file.
    """

    # Service configuration
    SERVICE_NAME: str = Field(default="lightguard-data")
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    LOG_JSON: bool = Field(default=False)

    # Supabase configuration
    SUPABASE_URL: str = Field(default="")
    SUPABASE_SERVICE_KEY: str = Field(default="")
    SUPABASE_ANON_KEY: str = Field(default="")

    # Table conventions
    DEFAULT_ID_COLUMN: str = Field(default="id", min_length=1)
    PROFILES_TABLE: str = Field(default="profiles", min_length=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase URL and key are both set."""
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY)


# Global settings instance
settings = Settings()
