"""Base exchange interface shared by every supported venue."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, FrozenSet, List, Set
from loguru import logger

from ..config import CurrencyPair
from ..core.errors import ExchangeCallError, describe_error
from ..core.types import Balance, OrderBook, OrderPlacementResult, OrderType, Trade


class BaseExchange(ABC):
    """Uniform capability interface over one exchange SDK.

    Every method performs its wire calls through :meth:`_call`, so failures
    reach the adapter as :class:`ExchangeCallError` with a matchable
    signature, and returns canonical records.
    """

    name: str = ""
    # Raw error signatures meaning the configuration can never work
    fatal_signatures: FrozenSet[str] = frozenset()
    # Cancelling an already filled order is an error on some venues
    checks_fill_before_cancel: bool = False

    def __init__(self, currency_pair: CurrencyPair):
        self.currency_pair = currency_pair

    async def _call(self, operation: str, fn: Callable[..., Awaitable[Any]],
                    *args: Any, **kwargs: Any) -> Any:
        """Run one wire call and return its raw payload."""
        try:
            raw = await fn(*args, **kwargs)
        except ExchangeCallError:
            raise
        except Exception as e:
            raise self.wrap_error(operation, e) from e

        logger.debug(f"{self.name} {operation} result: {str(raw)[:99]}")
        return raw

    def wrap_error(self, operation: str, error: Exception) -> ExchangeCallError:
        """Convert an SDK exception into an ExchangeCallError."""
        return ExchangeCallError(self.name, operation, describe_error(error), cause=error)

    @abstractmethod
    async def fetch_trades(self) -> List[Trade]:
        """Recent public trades for the configured pair."""
        pass

    @abstractmethod
    async def fetch_balance(self) -> Balance:
        """Available asset/currency and the trading fee."""
        pass

    @abstractmethod
    async def fetch_order_book(self) -> OrderBook:
        """Current order book for the configured pair."""
        pass

    @abstractmethod
    async def submit_order(self, order_type: OrderType, amount: Any, price: Any) -> OrderPlacementResult:
        """Place a limit order."""
        pass

    @abstractmethod
    async def list_open_orders(self) -> Set[str]:
        """Identifiers of the account's open orders."""
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str) -> bool:
        """Cancel an order; True when the exchange confirms it."""
        pass

    async def order_filled(self, order_id: str) -> bool:
        """An order is filled (or closed) once it left the open set."""
        open_orders = await self.list_open_orders()
        return str(order_id) not in open_orders

    async def close(self) -> None:
        """Release SDK resources."""
        pass
