"""Application configuration using pydantic-settings.

Custodial Aptos wallets: bot token, database, encryption key, node
endpoints and transfer monitor tuning all come from the environment.
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
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/momo.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_enabled: bool = Field(default=True, description="Serve the status API")
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    dry_run: bool = Field(
        default=False, description="Use the simulated chain client (no network calls)"
    )

    # ======================
    # Encryption
    # ======================
    encryption_key: Optional[str] = Field(
        default=None, description="Fernet key used to encrypt wallet secrets at rest"
    )

    # ======================
    # Aptos
    # ======================
    aptos_network: str = Field(default="mainnet", description="mainnet, testnet or devnet")
    aptos_node_url: Optional[str] = Field(
        default=None, description="Fullnode REST URL (derived from network if unset)"
    )
    aptos_explorer_url: str = Field(
        default="https://explorer.aptoslabs.com", description="Explorer base URL for links"
    )
    aptos_request_timeout: float = Field(default=30.0, description="Node request timeout (s)")

    # ======================
    # Transfer Monitor
    # ======================
    monitor_enabled: bool = Field(default=True, description="Run the transfer monitor")
    monitor_interval_seconds: float = Field(default=10.0, description="Seconds between sweeps")
    monitor_page_size: int = Field(default=25, description="Transactions fetched per wallet")
    monitor_inactive_ttl_seconds: float = Field(
        default=3600.0, description="How long an inactive address is skipped"
    )
    monitor_max_concurrency: int = Field(
        default=5, description="Users swept in parallel"
    )
    monitor_wallet_delay_seconds: float = Field(
        default=0.1, description="Pause between wallets of the same user"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def database_url_sync(self) -> str:
        """Database URL with the async driver removed, for Alembic."""
        return self.database_url.replace("+aiosqlite", "")

    @property
    def node_url(self) -> str:
        """Get the fullnode REST URL for the configured network."""
        if self.aptos_node_url:
            return self.aptos_node_url.rstrip("/")
        return f"https://fullnode.{self.aptos_network.lower()}.aptoslabs.com/v1"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "encryption_key": "***" if self.encryption_key else "(not set)",
            "aptos": {
                "network": self.aptos_network,
                "node_url": self.node_url,
            },
            "monitor": {
                "enabled": self.monitor_enabled,
                "interval": self.monitor_interval_seconds,
                "page_size": self.monitor_page_size,
                "inactive_ttl": self.monitor_inactive_ttl_seconds,
                "max_concurrency": self.monitor_max_concurrency,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
