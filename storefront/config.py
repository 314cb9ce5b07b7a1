from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Bundled sample dataset used when no remote API is configured
DEFAULT_DATA_FILE = Path(__file__).resolve().parent / "data" / "sample_products.json"


class Settings(BaseSettings):
    """Application settings loaded from ``STOREFRONT_*`` environment variables."""

    page_size: int = 12
    debounce_seconds: float = 0.3
    load_limit: int = 100

    data_file: Path = DEFAULT_DATA_FILE
    # When set, products are fetched from the shop REST API instead of the sample file
    api_base_url: Optional[str] = None
    request_timeout: float = 10.0

    rate_limit_per_minute: int = 60
    rate_limit_per_hour: int = 1000
    rate_limit_per_day: int = 10000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
