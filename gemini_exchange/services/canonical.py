"""Conversion of raw Gemini JSON into the adapter's domain models"""
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from requests.structures import CaseInsensitiveDict

from gemini_exchange.errors import GeminiAPIError
from gemini_exchange.models.market import OrderBook, OrderBookLevel, Ticker, Trade, Volume
from gemini_exchange.models.order import OrderFillState, OrderResult
from gemini_exchange.models.payloads import (
    BalancePayload,
    BookLevelPayload,
    BookPayload,
    ErrorEnvelope,
    OrderPayload,
    TickerPayload,
    TradePayload,
)
from gemini_exchange.utils.conversion import from_unix_ms, to_decimal, to_invariant_string

logger = logging.getLogger(__name__)

BalanceMap = CaseInsensitiveDict

def parse_volume(node: Any) -> Volume:
    """
    Decompose a ticker volume object by property position.

    Gemini keys the object by currency, e.g.
    {"BTC": "2210.50", "USD": "2135477.46", "timestamp": 1483018200000}, so the
    names are only known by where they sit. Anything that is not an object of
    exactly three properties yields an empty Volume instead of an error.
    """
    if not isinstance(node, Mapping) or len(node) != 3:
        return Volume()

    (base_symbol, base_volume), (converted_symbol, converted_volume), (_, timestamp) = node.items()
    return Volume(
        base_symbol=base_symbol,
        base_volume=to_decimal(base_volume),
        converted_symbol=converted_symbol,
        converted_volume=to_decimal(converted_volume),
        timestamp=from_unix_ms(timestamp)
    )

def parse_ticker(node: Any) -> Optional[Ticker]:
    """Parse GET /pubticker/:symbol. An empty object means no ticker"""
    if not node:
        return None
    payload = TickerPayload.model_validate(node)
    return Ticker(
        ask=payload.ask,
        bid=payload.bid,
        last=payload.last,
        volume=parse_volume(payload.volume)
    )

def parse_book_level(node: Any) -> OrderBookLevel:
    payload = BookLevelPayload.model_validate(node)
    return OrderBookLevel(amount=payload.amount, price=payload.price)

def parse_order_book(node: Any) -> Optional[OrderBook]:
    """Parse GET /book/:symbol, keeping each side in exchange order"""
    if not node:
        return None
    payload = BookPayload.model_validate(node)
    return OrderBook(
        bids=[OrderBookLevel(amount=level.amount, price=level.price) for level in payload.bids],
        asks=[OrderBookLevel(amount=level.amount, price=level.price) for level in payload.asks]
    )

def parse_trade(node: Any) -> Trade:
    payload = TradePayload.model_validate(node)
    return Trade(
        amount=payload.amount,
        price=payload.price,
        timestamp=from_unix_ms(payload.timestampms),
        id=payload.tid,
        is_buy=payload.type == "buy"
    )

def parse_trades(nodes: Iterable[Any]) -> List[Trade]:
    """Parse a page of trades and order it oldest first. The sort is stable"""
    trades = [parse_trade(node) for node in nodes]
    trades.sort(key=lambda trade: trade.timestamp)
    return trades

def classify_fill(amount: Decimal, amount_filled: Decimal) -> OrderFillState:
    """Exact comparison: 9.99999999 executed of 10 is still a partial fill"""
    if amount_filled == amount:
        return OrderFillState.FILLED
    if amount_filled == 0:
        return OrderFillState.PENDING
    return OrderFillState.PARTIALLY_FILLED

def parse_order(node: Any) -> OrderResult:
    payload = OrderPayload.model_validate(node)
    return OrderResult(
        amount=payload.original_amount,
        amount_filled=payload.executed_amount,
        price=payload.price,
        average_price=payload.avg_execution_price,
        order_id=payload.id,
        fill_state=classify_fill(payload.original_amount, payload.executed_amount),
        order_date=from_unix_ms(payload.timestampms),
        symbol=payload.symbol,
        is_buy=payload.side == "buy",
        message=""
    )

def parse_balances(node: Any, field: str = "amount") -> BalanceMap:
    """
    Build a case-insensitive currency -> amount map from POST /balances.

    field selects "amount" (total) or "available" (available to trade).
    Currencies whose value is not positive are left out.
    """
    if field not in ("amount", "available"):
        raise ValueError(f"Unsupported balance field: {field}")

    lookup = BalanceMap()
    for entry in node or []:
        payload = BalancePayload.model_validate(entry)
        value = getattr(payload, field)
        if value > 0:
            lookup[payload.currency] = value
    return lookup

def check_error(node: Any) -> None:
    """
    Raise GeminiAPIError if node is Gemini's error envelope.

    Only objects can be envelopes: list endpoints (balances, orders) answer
    with an array, which is never treated as an error.
    """
    if not isinstance(node, Mapping):
        return
    if to_invariant_string(node.get("result")) != "error":
        return

    envelope = ErrorEnvelope.model_validate(node)
    logger.error(f"Gemini API error: {envelope.reason} {envelope.message or ''}".rstrip())
    raise GeminiAPIError(envelope.reason, envelope.message)
