"""Uniform trading adapter over Bitstamp and Kraken."""

from .adapter import ExchangeAdapter
from .config import Config, CurrencyPair, get_config

__all__ = [
    'ExchangeAdapter',
    'Config',
    'CurrencyPair',
    'get_config',
]
