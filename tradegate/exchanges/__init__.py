"""Exchange integrations behind the uniform adapter."""

from typing import Dict, Type
from loguru import logger

from .base import BaseExchange
from .bitstamp import BitstampExchange
from .kraken import KrakenExchange
from ..config import Config
from ..core.errors import FatalConfigError

EXCHANGES: Dict[str, Type[BaseExchange]] = {
    BitstampExchange.name: BitstampExchange,
    KrakenExchange.name: KrakenExchange,
}


def create_exchange(config: Config) -> BaseExchange:
    """Build the configured exchange variant from its credentials."""
    exchange = config.exchange
    exchange_cls = EXCHANGES.get(exchange)
    if exchange_cls is None:
        logger.error(f"Invalid exchange {config.exchange!r}, exiting!")
        raise FatalConfigError(f"Unknown exchange: {config.exchange}")

    account = getattr(config.api_settings, exchange, None)
    if account is None:
        logger.error(f"No API settings for {exchange}, exiting!")
        raise FatalConfigError(f"Missing api_settings.{exchange}")

    logger.info(f"Using {exchange} for pair {config.currency_pair.pair}")
    return exchange_cls.from_account(config.currency_pair, account)


__all__ = [
    'BaseExchange',
    'BitstampExchange',
    'KrakenExchange',
    'EXCHANGES',
    'create_exchange',
]
