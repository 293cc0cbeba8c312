"""Domain models for orders"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

class OrderFillState(Enum):
    """How much of an order has executed"""
    FILLED = "filled"
    PARTIALLY_FILLED = "partially_filled"
    PENDING = "pending"

class OrderType(Enum):
    LIMIT = "limit"
    MARKET = "market"

@dataclass(frozen=True)
class OrderResult:
    """Order as reported by the exchange. fill_state is derived, never sent by Gemini"""
    amount: Decimal
    amount_filled: Decimal
    price: Decimal
    average_price: Decimal
    order_id: str
    fill_state: OrderFillState
    order_date: datetime
    symbol: str
    is_buy: bool
    message: str = ""

@dataclass
class OrderRequest:
    """Order to be placed"""
    symbol: str
    amount: Decimal
    price: Decimal
    is_buy: bool
    order_type: OrderType = OrderType.LIMIT
    extra_parameters: Dict[str, Any] = field(default_factory=dict)
