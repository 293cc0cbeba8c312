"""Schemas for the raw JSON returned by the Gemini REST API"""
from decimal import Decimal
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, Field

from gemini_exchange.utils.conversion import to_decimal, to_invariant_string

# Absent or null numbers read as zero, strings are parsed locale-independently
InvariantDecimal = Annotated[Decimal, BeforeValidator(to_decimal)]
InvariantString = Annotated[str, BeforeValidator(to_invariant_string)]

class TickerPayload(BaseModel):
    """GET /pubticker/:symbol"""
    ask: InvariantDecimal = Decimal(0)
    bid: InvariantDecimal = Decimal(0)
    last: InvariantDecimal = Decimal(0)
    # Left raw: decomposed by position, see canonical.parse_volume
    volume: Any = None

class BookLevelPayload(BaseModel):
    price: InvariantDecimal
    amount: InvariantDecimal

class BookPayload(BaseModel):
    """GET /book/:symbol"""
    bids: List[BookLevelPayload] = Field(default_factory=list)
    asks: List[BookLevelPayload] = Field(default_factory=list)

class TradePayload(BaseModel):
    """One element of GET /trades/:symbol"""
    tid: int
    price: InvariantDecimal
    amount: InvariantDecimal
    timestampms: int
    type: InvariantString = ""

class OrderPayload(BaseModel):
    """Order status as returned by /order/new, /order/status and /orders"""
    id: InvariantString
    symbol: InvariantString = ""
    side: InvariantString = ""
    price: InvariantDecimal = Decimal(0)
    avg_execution_price: InvariantDecimal = Decimal(0)
    original_amount: InvariantDecimal = Decimal(0)
    executed_amount: InvariantDecimal = Decimal(0)
    timestampms: int = 0

class BalancePayload(BaseModel):
    """One element of POST /balances"""
    currency: InvariantString
    amount: InvariantDecimal = Decimal(0)
    available: InvariantDecimal = Decimal(0)

class ErrorEnvelope(BaseModel):
    """Error object Gemini returns in place of the expected payload"""
    result: InvariantString
    reason: InvariantString = ""
    message: Optional[str] = None
