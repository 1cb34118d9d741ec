"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./wallet_ledger.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SyncSettings(BaseModel):
    """Retry policy for writing the cached wallet balance."""

    max_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=2.0, ge=0)
    bulk_chunk_size: int = Field(default=10, ge=1)


class BalanceSettings(BaseModel):
    bulk_chunk_size: int = Field(default=500, ge=1)
    fallback_concurrency: int = Field(default=10, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Wallet Ledger Service"
    api_prefix: str = "/api"

    database: DatabaseSettings = DatabaseSettings()
    sync: SyncSettings = SyncSettings()
    balance: BalanceSettings = BalanceSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def database_url(self) -> str:
        return self.database.url


@lru_cache()
def get_settings() -> Settings:
    return Settings()
