"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"

    # Caching
    cache_enabled: bool = True
    cache_absolute_expiration_seconds: int = 300
    cache_compact_interval: int = 1000

    # Assets
    blob_base_url: str = "http://localhost:10645/assets"

    # Product codes
    sku_format: str = "AAA-99999999"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
