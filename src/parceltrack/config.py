"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "ParcelTrack"
    debug: bool = False
    log_level: str = "INFO"

    # Carrier registry
    carrier_registry_config_file: Path | None = None

    # Upstream HTTP
    http_timeout: float = 30.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # Pagination
    max_page_size: int = 20

    model_config = SettingsConfigDict(
        env_prefix="PARCELTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
