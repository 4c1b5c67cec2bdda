from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from richy.exchange.kraken_spot import DEFAULT_USER_AGENT, PRODUCTION_BASE_URL, SANDBOX_BASE_URL


def normalize_host(host: str) -> str:
    value = host.strip()
    if not value:
        raise ValueError("host is empty")
    if "://" not in value:
        value = f"https://{value}"
    return value.rstrip("/")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Kraken
    kraken_host: str = Field(default=PRODUCTION_BASE_URL, validation_alias="KRAKEN_HOST")
    kraken_api_key: str = Field(default="", validation_alias="KRAKEN_API_KEY")
    kraken_api_secret: str = Field(default="", validation_alias="KRAKEN_API_SECRET")
    kraken_sandbox: bool = Field(default=False, validation_alias="KRAKEN_SANDBOX")
    kraken_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="KRAKEN_TIMEOUT_SECONDS",
    )
    kraken_user_agent: str = Field(default=DEFAULT_USER_AGENT, validation_alias="KRAKEN_USER_AGENT")

    # CLI
    pair: str = Field(default="XBTUSD", validation_alias="PAIR")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def base_url(self) -> str:
        if self.kraken_sandbox:
            return SANDBOX_BASE_URL
        return normalize_host(self.kraken_host)

    def has_credentials(self) -> bool:
        return bool(self.kraken_api_key and self.kraken_api_secret)
