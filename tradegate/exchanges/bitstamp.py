"""Bitstamp exchange integration using ccxt's implicit REST endpoints."""

from typing import Any, Dict, List, Set
from loguru import logger

import ccxt.async_support as ccxt
from ccxt.base.errors import ExchangeError, InvalidNonce

from .base import BaseExchange
from ..config import BitstampAccount, CurrencyPair
from ..core.errors import ExchangeCallError, TransientNonceError, describe_error
from ..core.types import (
    Balance,
    OrderBook,
    OrderPlacementResult,
    OrderType,
    Trade,
    parse_levels,
    to_decimal,
    to_timestamp,
)


class BitstampExchange(BaseExchange):
    """Bitstamp exchange implementation."""

    name = "bitstamp"

    def __init__(self, currency_pair: CurrencyPair, client: Any):
        super().__init__(currency_pair)
        self.client = client

    @classmethod
    def from_account(cls, currency_pair: CurrencyPair, account: BitstampAccount) -> "BitstampExchange":
        """Build the exchange with a private ccxt client."""
        client = ccxt.bitstamp({
            "apiKey": account.key,
            "secret": account.secret,
            "uid": account.client_id,
            "enableRateLimit": True,
            "timeout": 10000,
        })
        return cls(currency_pair, client)

    def wrap_error(self, operation: str, error: Exception) -> ExchangeCallError:
        # ccxt raises InvalidNonce for an "Invalid nonce" body
        if isinstance(error, InvalidNonce):
            logger.error("Bitstamp returned invalid nonce error")
            return TransientNonceError(self.name, operation, describe_error(error), cause=error)
        return super().wrap_error(operation, error)

    @property
    def _pair(self) -> Dict[str, str]:
        return {"pair": self.currency_pair.pair.lower()}

    async def fetch_trades(self) -> List[Trade]:
        response = await self._call(
            "transactions", self.client.public_get_transactions_pair,
            {**self._pair, "time": "hour"},
        )
        trades = [
            Trade(
                timestamp=to_timestamp(t["date"]),
                price=to_decimal(t["price"]),
                amount=to_decimal(t["amount"]),
            )
            for t in response
        ]
        return sorted(trades, key=lambda trade: trade.timestamp)

    async def fetch_balance(self) -> Balance:
        result = await self._call("balance", self.client.private_post_balance_pair, self._pair)
        asset = self.currency_pair.asset.lower()
        currency = self.currency_pair.currency.lower()
        return Balance(
            currency_available=to_decimal(result.get(f"{currency}_available")),
            asset_available=to_decimal(result.get(f"{asset}_available")),
            fee=to_decimal(result.get("fee")),
        )

    async def fetch_order_book(self) -> OrderBook:
        result = await self._call(
            "order_book", self.client.public_get_order_book_pair,
            {**self._pair, "group": 1},
        )
        return OrderBook(bids=parse_levels(result.get("bids")), asks=parse_levels(result.get("asks")))

    async def submit_order(self, order_type: OrderType, amount: Any, price: Any) -> OrderPlacementResult:
        if order_type is OrderType.BUY:
            fn = self.client.private_post_buy_pair
        else:
            fn = self.client.private_post_sell_pair

        result = await self._call(order_type.value, fn, {**self._pair, "amount": amount, "price": price})
        return OrderPlacementResult(transaction_id=str(result["id"]))

    async def list_open_orders(self) -> Set[str]:
        result = await self._call("open_orders", self.client.private_post_open_orders_pair, self._pair)
        return {str(order["id"]) for order in result}

    async def cancel_order(self, order_id: str) -> bool:
        """Cancel an order; an error body from Bitstamp means not cancelled.

        ccxt raises ``ExchangeError`` for an error body before the payload
        reaches us. Transport failures and nonce errors still propagate.
        """
        try:
            await self._call("cancel_order", self.client.private_post_cancel_order, {"id": order_id})
        except ExchangeCallError as e:
            if isinstance(e, TransientNonceError) or not isinstance(e.cause, ExchangeError):
                raise
            logger.warning(f"Bitstamp rejected cancel of order {order_id}: {e.signature}")
            return False
        return True

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.error(f"Error closing Bitstamp client: {e}")
