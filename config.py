"""
Configuration module for FundingArb Bot.
Loads environment variables and provides application settings.
"""
from typing import Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required runtime configuration is missing or inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot Configuration
    # No defaults: credentials only ever come from the environment
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    # Exchange credentials
    bybit_api_key: Optional[str] = None
    bybit_api_secret: Optional[str] = None
    lighter_auth_token: Optional[str] = None

    # Exchange endpoints
    variational_url: str = "https://omni-client-api.prod.ap-northeast-1.variational.io/metadata/stats"
    binance_url: str = "https://fapi.binance.com/fapi/v1/premiumIndex"
    bybit_url: str = "https://api.bybit.com/v5/market/tickers"
    hyperliquid_url: str = "https://api.hyperliquid.xyz/info"
    lighter_url: str = "https://mainnet.zklighter.elliot.ai/api/v1/orderBooks"
    lighter_ws_url: str = "wss://mainnet.zklighter.elliot.ai/stream"
    extended_url: str = "https://api.starknet.extended.exchange/api/v1/info/markets"

    # Per-exchange timeouts (seconds)
    rest_timeout: float = 8.0
    lighter_timeout: float = 20.0
    # Lighter collects over a bounded window, shorter than its outer timeout
    lighter_collect_window: float = 15.0

    # Shared aggregation endpoint (consumed by the bot and notifier)
    aggregation_url: str = "http://127.0.0.1:8080/arbitrage"
    aggregation_timeout: float = 10.0

    # Scheduling
    refresh_interval_seconds: int = 60
    notification_interval_seconds: int = 3600
    default_top_n: int = 3

    # HTTP server
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def require_telegram(self) -> Tuple[str, str]:
        """
        Return (bot_token, chat_id) or raise if either is missing.

        Raises:
            ConfigurationError: TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID is not set
        """
        if not self.telegram_bot_token or not self.telegram_chat_id:
            raise ConfigurationError(
                "Missing Telegram credentials. Please set TELEGRAM_BOT_TOKEN "
                "and TELEGRAM_CHAT_ID environment variables."
            )
        return self.telegram_bot_token, self.telegram_chat_id

    def bybit_credentials(self) -> Optional[Tuple[str, str]]:
        """
        Return (api_key, api_secret) when Bybit signing is configured.

        None means neither value is set and requests go out unsigned.
        Setting only one half of the pair is a configuration error.
        """
        if self.bybit_api_key and self.bybit_api_secret:
            return self.bybit_api_key, self.bybit_api_secret
        if self.bybit_api_key or self.bybit_api_secret:
            raise ConfigurationError(
                "BYBIT_API_KEY and BYBIT_API_SECRET must be set together"
            )
        return None


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
