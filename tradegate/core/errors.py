"""Exception hierarchy for the exchange adapter."""

import json
import sys
from typing import Any, List, NoReturn, Optional
from loguru import logger


class TradeGateError(Exception):
    """Base class for all adapter errors."""
    pass


class FatalConfigError(TradeGateError):
    """Raised when the exchange selection or credentials are unusable."""
    pass


class FatalAssetPairError(TradeGateError):
    """Raised when the exchange reports the configured pair does not exist."""
    pass


class CallerContractError(TradeGateError):
    """Raised when an operation is invoked with arguments it cannot accept."""
    pass


class ExchangeCallError(TradeGateError):
    """Failed exchange call, carrying the raw error signature."""

    def __init__(self, exchange: str, operation: str, signature: str,
                 cause: Optional[BaseException] = None):
        super().__init__(f"{exchange} {operation} failed: {signature}")
        self.exchange = exchange
        self.operation = operation
        self.signature = signature
        self.cause = cause


class TransientNonceError(ExchangeCallError):
    """Exchange rejected the request nonce; always safe to retry."""
    pass


class KrakenAPIError(TradeGateError):
    """Kraken answered with a non-empty error array."""

    def __init__(self, errors: List[str]):
        super().__init__(", ".join(errors))
        self.errors = list(errors)


def describe_error(error: Any) -> str:
    """Render a raw SDK error the way it is matched against known signatures."""
    errors = getattr(error, "errors", None)
    if isinstance(errors, list):
        return json.dumps(errors)
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return json.dumps(error, default=str)


def terminate(error: BaseException) -> NoReturn:
    """Log an unrecoverable error and exit the process."""
    logger.critical(f"Unrecoverable exchange error, exiting: {error}")
    sys.exit(1)
