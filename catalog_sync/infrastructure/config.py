"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Catalog storage
    product_bundle: str = "product"
    sync_batch_size: int = 25

    # Import state keys
    pending_updates_state_prefix: str = "catalog.pending_updates."
    catalog_for_feed_state_prefix: str = "catalog.catalog_for_feed."

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
