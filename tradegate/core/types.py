"""
Canonical records returned by every exchange variant.
Callers only ever see these, never raw exchange payloads.
"""

from decimal import Decimal
from typing import Any, List
from dataclasses import dataclass, field
from enum import Enum


class OrderType(Enum):
    """Side of a limit order."""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Trade:
    """Public trade."""
    timestamp: int  # Seconds
    price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Balance:
    """Available funds for the configured pair."""
    currency_available: Decimal
    asset_available: Decimal
    fee: Decimal  # Fraction as reported by the exchange


@dataclass(frozen=True)
class OrderBookLevel:
    """One price level of the book."""
    asset_amount: Decimal
    currency_price: Decimal


@dataclass(frozen=True)
class OrderBook:
    """Order book snapshot, levels best-first as delivered by the exchange."""
    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)


@dataclass(frozen=True)
class OrderPlacementResult:
    """Identifier of a freshly placed order."""
    transaction_id: str


def to_decimal(value: Any) -> Decimal:
    """Parse a wire number (string, int or float) into a Decimal."""
    if value is None or value == "":
        return Decimal(0)
    return Decimal(str(value))


def to_timestamp(value: Any) -> int:
    """Truncate a wire timestamp to integer seconds."""
    return int(Decimal(str(value)))


def parse_levels(rows: List[List[Any]]) -> List[OrderBookLevel]:
    """Map [price, amount, ...] rows to book levels, keeping source order."""
    return [
        OrderBookLevel(asset_amount=to_decimal(row[1]), currency_price=to_decimal(row[0]))
        for row in rows or []
    ]
