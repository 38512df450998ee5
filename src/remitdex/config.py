"""Application configuration using pydantic-settings.

Every tunable of the remittance pipeline (aggregator access, timeouts, retry
policy, alerting) is read from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    dry_run: bool = Field(
        default=True, description="Use simulated aggregator, bridge and anchors"
    )
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # Corridors
    # ======================
    origin_country: str = Field(
        default="US", description="Sender region assumed for corridor lookup"
    )
    stellar_network: str = Field(
        default="testnet", description="Settlement network (testnet or mainnet)"
    )

    # ======================
    # DEX Aggregator (1inch)
    # ======================
    oneinch_api_key: Optional[str] = Field(default=None, description="1inch API key")
    oneinch_api_url: str = Field(
        default="https://api.1inch.dev/swap/v6.0", description="1inch swap API base URL"
    )
    default_slippage: float = Field(default=1.0, description="Swap slippage in percent")
    aggregator_timeout: float = Field(default=30.0, description="Aggregator request timeout (s)")
    aggregator_max_retries: int = Field(
        default=3, description="Retries for server/network aggregator failures"
    )
    aggregator_backoff_base: float = Field(
        default=1.0, description="First aggregator backoff wait (s), doubled per retry"
    )

    # ======================
    # Bridge / Anchors
    # ======================
    anchor_timeout: float = Field(default=30.0, description="Anchor request timeout (s)")
    bridge_confirmation_timeout: float = Field(
        default=180.0, description="Max wait for settlement confirmation (s)"
    )

    # ======================
    # Delivery retries
    # ======================
    retry_max_attempts: int = Field(default=3, description="Default retry attempts")
    retry_initial_delay_ms: int = Field(default=5000, description="First retry delay (ms)")
    retry_backoff_multiplier: float = Field(default=2.0, description="Retry backoff factor")
    retry_max_delay_ms: int = Field(default=300000, description="Retry delay cap (ms)")

    # ======================
    # Ops alerts (Telegram)
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token for ops alerts")
    admin_chat_ids: str = Field(
        default="", description="Comma-separated Telegram chat IDs receiving ops alerts"
    )

    @property
    def admin_ids(self) -> list[int]:
        """Parse admin chat IDs into a list of integers."""
        if not self.admin_chat_ids:
            return []
        return [int(uid.strip()) for uid in self.admin_chat_ids.split(",") if uid.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_aggregator_key(self) -> bool:
        return bool(self.oneinch_api_key)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "origin_country": self.origin_country,
            "stellar_network": self.stellar_network,
            "aggregator": {
                "url": self.oneinch_api_url,
                "api_key": "***" if self.oneinch_api_key else "(not set)",
                "timeout": self.aggregator_timeout,
                "max_retries": self.aggregator_max_retries,
            },
            "retry": {
                "max_attempts": self.retry_max_attempts,
                "initial_delay_ms": self.retry_initial_delay_ms,
                "multiplier": self.retry_backoff_multiplier,
                "max_delay_ms": self.retry_max_delay_ms,
            },
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "admin_chat_ids": self.admin_chat_ids or "(none)",
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
