"""Container configuration loaded from the environment with Pydantic Settings."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ContainerSettings(BaseSettings):
    """Settings read from ``SPRIG_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="SPRIG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Discovery
    base_package: Optional[str] = None

    # Registration
    allow_name_override: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"


_settings: Optional[ContainerSettings] = None


def get_settings() -> ContainerSettings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = ContainerSettings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings (for testing)."""
    global _settings
    _settings = None
