# gemini_exchange/models/market.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

@dataclass(frozen=True)
class Volume:
    """24h volume, expressed in the base currency and the quote currency"""
    base_symbol: str = ""
    base_volume: Decimal = Decimal(0)
    converted_symbol: str = ""
    converted_volume: Decimal = Decimal(0)
    timestamp: Optional[datetime] = None

@dataclass(frozen=True)
class Ticker:
    ask: Decimal
    bid: Decimal
    last: Decimal
    volume: Volume

@dataclass(frozen=True)
class OrderBookLevel:
    amount: Decimal
    price: Decimal

@dataclass(frozen=True)
class OrderBook:
    """Book snapshot, each side in the order the exchange returned it"""
    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)

@dataclass(frozen=True)
class Trade:
    amount: Decimal
    price: Decimal
    timestamp: datetime  # UTC
    id: int             # exchange tid
    is_buy: bool
