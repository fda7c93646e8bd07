"""Kraken exchange integration using krakenex API."""

import asyncio
from typing import Any, Dict, List, Optional, Set
from loguru import logger

# Kraken API
import krakenex

from .base import BaseExchange
from ..config import CurrencyPair, KrakenAccount
from ..core.errors import KrakenAPIError
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

UNKNOWN_ASSET_PAIR = '["EQuery:Unknown asset pair"]'

PUBLIC_METHODS = frozenset({"Trades", "Depth"})


class KrakenExchange(BaseExchange):
    """Kraken exchange implementation using krakenex API."""

    name = "kraken"
    fatal_signatures = frozenset({UNKNOWN_ASSET_PAIR})
    checks_fill_before_cancel = True

    def __init__(self, currency_pair: CurrencyPair, api: Any):
        super().__init__(currency_pair)
        self.api = api

    @classmethod
    def from_account(cls, currency_pair: CurrencyPair, account: KrakenAccount) -> "KrakenExchange":
        """Build the exchange with an authenticated krakenex client."""
        return cls(currency_pair, krakenex.API(key=account.key, secret=account.secret))

    async def _query(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a blocking krakenex query off the event loop."""
        query = self.api.query_public if method in PUBLIC_METHODS else self.api.query_private
        response = await asyncio.to_thread(query, method, params or {})

        if not isinstance(response, dict):
            raise KrakenAPIError([f"Invalid response type: {type(response).__name__}"])
        if response.get("error"):
            raise KrakenAPIError(response["error"])
        return response.get("result", {})

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Call one Kraken API method and return its ``result`` object."""
        return await self._call(method, self._query, method, params)

    async def fetch_trades(self) -> List[Trade]:
        pair = self.currency_pair.pair
        result = await self.request("Trades", {"pair": pair})
        return [
            Trade(timestamp=to_timestamp(t[2]), price=to_decimal(t[0]), amount=to_decimal(t[1]))
            for t in result.get(pair) or []
        ]

    async def fetch_balance(self) -> Balance:
        pair = self.currency_pair.pair
        balances = await self.request("Balance")
        asset_value = balances.get(self.currency_pair.asset) or 0
        currency_value = balances.get(self.currency_pair.currency) or 0

        volume = await self.request("TradeVolume", {"pair": pair})
        fees = volume.get("fees") or {}
        if pair not in fees:
            logger.error(f"Kraken TradeVolume has no fee entry for {pair}")
            raise KrakenAPIError([f"No fee entry for {pair}"])

        return Balance(
            currency_available=to_decimal(currency_value),
            asset_available=to_decimal(asset_value),
            fee=to_decimal(fees[pair]["fee"]),
        )

    async def fetch_order_book(self) -> OrderBook:
        pair = self.currency_pair.pair
        result = await self.request("Depth", {"pair": pair})
        book = result.get(pair) or {}
        return OrderBook(bids=parse_levels(book.get("bids")), asks=parse_levels(book.get("asks")))

    async def submit_order(self, order_type: OrderType, amount: Any, price: Any) -> OrderPlacementResult:
        result = await self.request("AddOrder", {
            "pair": self.currency_pair.pair,
            "type": order_type.value,
            "ordertype": "limit",
            "price": str(price),
            "volume": str(amount),
        })
        return OrderPlacementResult(transaction_id=result["txid"][0])

    async def list_open_orders(self) -> Set[str]:
        result = await self.request("OpenOrders")
        return set((result.get("open") or {}).keys())

    async def cancel_order(self, order_id: str) -> bool:
        result = await self.request("CancelOrder", {"txid": order_id})
        return int(result.get("count", 0)) > 0
