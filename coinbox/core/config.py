"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./coinbox.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class WalletServiceSettings(BaseModel):
    """Connection details for the remote wallet service."""

    base_url: str = "http://localhost:3232/bws/api"
    network: Literal["livenet", "testnet"] = "testnet"
    required_signers: int = Field(default=1, ge=1)
    total_signers: int = Field(default=1, ge=1)
    request_timeout: float = 10.0
    # A freshly created wallet may stay "pending" until every copayer joined.
    completion_attempts: int = Field(default=5, ge=1)
    completion_interval: float = 1.0
    default_wallet_name: str = "Personal Wallet"
    currency: str = "BTC"


class SchedulerSettings(BaseModel):
    concurrency: int = Field(default=2, ge=1)
    poll_interval: float = 1.0
    stale_after_seconds: int = Field(default=600, ge=1)
    autostart: bool = True


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False


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
    project_name: str = "Coinbox Wallet Server"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    wallet_service: WalletServiceSettings = WalletServiceSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def network(self) -> str:
        return self.wallet_service.network


@lru_cache()
def get_settings() -> Settings:
    return Settings()
