"""Core queueing, classification and record types."""

from .types import Trade, Balance, OrderBook, OrderBookLevel, OrderPlacementResult, OrderType
from .queue import RequestQueue, Task
from .retry import ErrorClassifier, RetryPolicy, RetryContext, Classification, Verdict
from .errors import (
    TradeGateError,
    FatalConfigError,
    FatalAssetPairError,
    TransientNonceError,
    ExchangeCallError,
    CallerContractError,
    KrakenAPIError,
)

__all__ = [
    'Trade',
    'Balance',
    'OrderBook',
    'OrderBookLevel',
    'OrderPlacementResult',
    'OrderType',
    'RequestQueue',
    'Task',
    'ErrorClassifier',
    'RetryPolicy',
    'RetryContext',
    'Classification',
    'Verdict',
    'TradeGateError',
    'FatalConfigError',
    'FatalAssetPairError',
    'TransientNonceError',
    'ExchangeCallError',
    'CallerContractError',
    'KrakenAPIError',
]
