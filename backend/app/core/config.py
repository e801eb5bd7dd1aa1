"""Module: config."""

from pydantic_settings import BaseSettings

# Centralized runtime configuration loaded from environment variables.
class Settings(BaseSettings):
    # Primary SQLAlchemy connection string for the backend database.
    database_url: str
    # Base URL for the geocoding service used when organisation addresses change.
    geocoder_base_url: str = "http://mock-geocoder:8003"
    geocoder_timeout_seconds: float = 10.0
    # Set false to skip outbound geocoding entirely (bulk imports, offline dev).
    geocoding_enabled: bool = True

    # Prefix added to website/donation links saved without a scheme.
    default_url_scheme: str = "http://"
    # Organisations untouched for longer than this are shown as stale on the map.
    stale_after_days: int = 365
    # Charity register exports are Latin-1 encoded.
    import_encoding: str = "ISO-8859-1"

    log_level: str = "INFO"

    # Configure pydantic-settings to also load values from local .env file.
    class Config:
        env_file = ".env"

# Global settings instance imported by app modules at runtime.
settings = Settings()
