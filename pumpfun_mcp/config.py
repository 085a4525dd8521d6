from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=8000, description="HTTP server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Bitquery (GraphQL analytics)
    bitquery_api_key: str = Field(default="", description="Bitquery API key")
    bitquery_base_url: str = Field(
        default="https://graphql.bitquery.io",
        description="Bitquery GraphQL endpoint",
    )
    bitquery_timeout_seconds: int = Field(default=30, description="Bitquery request timeout")

    # PumpPortal (push feed)
    pumpportal_ws_url: str = Field(
        default="wss://pumpportal.fun/api/data",
        description="PumpPortal WebSocket endpoint",
    )
    feed_max_reconnect_attempts: int = Field(
        default=5,
        ge=0,
        description="Consecutive reconnect attempts before the feed client gives up",
    )
    feed_reconnect_delay_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Fixed delay between reconnect attempts",
    )
    enable_live_feed: bool = Field(
        default=False,
        description="Start the PumpPortal feed alongside the HTTP server",
    )
    feed_recent_tokens_limit: int = Field(
        default=50,
        ge=1,
        description="Number of recent feed events kept in memory",
    )

    # Cache Settings
    cache_ttl_seconds: int = Field(default=30, description="Cache TTL in seconds")

    # Retry Settings
    request_max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for recoverable upstream failures (0 disables)",
    )
    request_backoff_base_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base delay for exponential backoff between retries",
    )

    # Analytics
    sol_price_usd: float = Field(
        default=150.0,
        description="Fallback SOL/USD rate when upstream omits USD amounts",
    )
    trade_analytics_max_trades: int = Field(
        default=1000,
        ge=1,
        le=25000,
        description="Max trades pulled when aggregating trade analytics",
    )

    @property
    def has_bitquery_key(self) -> bool:
        return bool(self.bitquery_api_key)


# Global settings instance
settings = Settings()
