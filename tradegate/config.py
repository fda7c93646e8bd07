"""Configuration management for the exchange adapter."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, ConfigDict, Field


class CurrencyPair(BaseModel):
    """Market traded by the adapter, fixed for the process lifetime."""
    model_config = ConfigDict(frozen=True)

    pair: str  # Exchange-native symbol, e.g. XXBTZUSD or btcusd
    asset: str
    currency: str


class BitstampAccount(BaseModel):
    """Bitstamp credential bundle."""
    key: str
    secret: str
    client_id: str


class KrakenAccount(BaseModel):
    """Kraken credential bundle."""
    key: str
    secret: str


class ApiSettings(BaseModel):
    """Per-exchange credentials."""
    bitstamp: Optional[BitstampAccount] = None
    kraken: Optional[KrakenAccount] = None


class QueueConfig(BaseModel):
    """Request queue configuration."""
    spacing_ms: int = 1000  # Minimum gap between two exchange calls


class RetryConfig(BaseModel):
    """Retry policy configuration."""
    delay_seconds: float = 15.0
    max_attempts: Optional[int] = None  # None = retry until success


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


class Config(BaseModel):
    """Main configuration model."""
    exchange: str
    currency_pair: CurrencyPair
    api_settings: ApiSettings = Field(default_factory=ApiSettings)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_str = f.read()

        # Substitute environment variables
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        config_data = yaml.safe_load(config_str)
        return cls(**config_data)


def get_config(config_path: str = "config.yaml") -> Config:
    """Get configuration instance."""
    return Config.load_from_file(config_path)
