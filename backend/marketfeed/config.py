"""Application configuration.

Values come from environment variables or a ``.env`` file. Nested provider
settings use ``__`` as delimiter, e.g. ``TWELVEDATA__API_KEY=...`` or
``BINANCE__RATE_LIMIT_MAX_REQUESTS=600``.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseModel):
    """Connection, retry, cache and rate-limit settings for one provider.

    Each provider subclasses this with its own defaults, so a partial
    environment override (only an API key, say) keeps the rest.
    """

    base_url: str = ""
    ws_url: str = ""
    api_key: str = ""
    api_secret: str = ""
    timeout: float = 30.0

    # Default TTL for entries without a timeframe class (seconds)
    cache_ttl: float = 60.0
    # TTL for time-ranged (historical) queries (seconds)
    historical_cache_ttl: float = 3600.0

    max_retries: int = 3
    retry_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    rate_limit_max_requests: int = 60
    rate_limit_window_minutes: float = 1.0


class BinanceSettings(ProviderSettings):
    base_url: str = "https://api.binance.com"
    ws_url: str = "wss://stream.binance.com:9443/ws"
    historical_cache_ttl: float = 300.0
    rate_limit_max_requests: int = 1200


class TwelveDataSettings(ProviderSettings):
    base_url: str = "https://api.twelvedata.com"
    rate_limit_max_requests: int = 8


class AlphaVantageSettings(ProviderSettings):
    base_url: str = "https://www.alphavantage.co"
    historical_cache_ttl: float = 300.0
    retry_delay_ms: int = 2000
    rate_limit_max_requests: int = 5


class FinnhubSettings(ProviderSettings):
    base_url: str = "https://finnhub.io/api/v1"
    historical_cache_ttl: float = 300.0
    rate_limit_max_requests: int = 80


class StreamSettings(BaseModel):
    """WebSocket reconnection policy."""

    reconnect_delay_ms: int = 5000
    max_reconnect_attempts: int = 5
    # Buffered updates per live subscription
    max_pending_updates: int = 1000


class OrchestratorSettings(BaseModel):
    fetch_limit: int = 300
    daily_min_bars: int = 200
    scalping_min_bars: int = 100
    daily_timeframes: list[str] = ["4h", "1d"]
    scalping_timeframes: list[str] = ["5m", "15m", "30m", "1h"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Serve synthetic klines when no provider can answer
    mock_fallback: bool = True

    binance: BinanceSettings = Field(default_factory=BinanceSettings)
    twelvedata: TwelveDataSettings = Field(default_factory=TwelveDataSettings)
    alphavantage: AlphaVantageSettings = Field(default_factory=AlphaVantageSettings)
    finnhub: FinnhubSettings = Field(default_factory=FinnhubSettings)

    stream: StreamSettings = Field(default_factory=StreamSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
