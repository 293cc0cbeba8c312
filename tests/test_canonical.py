from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from gemini_exchange.errors import GeminiAPIError
from gemini_exchange.models.market import Volume
from gemini_exchange.models.order import OrderFillState
from gemini_exchange.services.canonical import (
    check_error,
    classify_fill,
    parse_balances,
    parse_order,
    parse_order_book,
    parse_ticker,
    parse_trades,
    parse_volume,
)
from gemini_exchange.utils.conversion import to_decimal


def _order(**overrides):
    raw = {
        "order_id": "44375901",
        "id": "44375901",
        "symbol": "btcusd",
        "exchange": "gemini",
        "avg_execution_price": "400.00",
        "side": "buy",
        "type": "exchange limit",
        "timestampms": 1494870642156,
        "is_live": False,
        "is_cancelled": False,
        "price": "400.00",
        "original_amount": "10",
        "executed_amount": "4",
        "remaining_amount": "6",
    }
    raw.update(overrides)
    return raw


def test_parse_volume_uses_property_positions():
    volume = parse_volume({"BTC": "2210.505328803", "USD": "2135477.463379586263", "timestamp": 1483018200000})

    assert volume.base_symbol == "BTC"
    assert volume.base_volume == Decimal("2210.505328803")
    assert volume.converted_symbol == "USD"
    assert volume.converted_volume == Decimal("2135477.463379586263")
    assert volume.timestamp == datetime(2016, 12, 29, 13, 30, tzinfo=timezone.utc)


def test_parse_volume_follows_declared_order_not_names():
    volume = parse_volume({"ETH": "1.5", "BTC": "0.1", "timestamp": 0})

    assert volume.base_symbol == "ETH"
    assert volume.converted_symbol == "BTC"
    assert volume.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("node", [
    {},
    {"BTC": "1", "USD": "2"},
    {"BTC": "1", "USD": "2", "timestamp": 1483018200000, "extra": "x"},
    None,
    ["BTC", "USD", 1483018200000],
])
def test_parse_volume_degrades_to_zero(node):
    volume = parse_volume(node)

    assert volume == Volume()
    assert volume.base_volume == Decimal(0)
    assert volume.base_symbol == ""
    assert volume.timestamp is None


def test_parse_ticker():
    ticker = parse_ticker({
        "ask": "977.59",
        "bid": "977.35",
        "last": "977.65",
        "volume": {"BTC": "2210.505328803", "USD": "2135477.463379586263", "timestamp": 1483018200000},
    })

    assert ticker.ask == Decimal("977.59")
    assert ticker.bid == Decimal("977.35")
    assert ticker.last == Decimal("977.65")
    assert ticker.volume.base_symbol == "BTC"


def test_parse_ticker_empty_object_is_none():
    assert parse_ticker({}) is None


def test_parse_order_book_keeps_exchange_order():
    book = parse_order_book({
        "bids": [{"price": "3607.85", "amount": "6.643373", "timestamp": "1547147541"},
                 {"price": "3607.86", "amount": "1", "timestamp": "1547147541"}],
        "asks": [{"price": "3607.86", "amount": "14.68205084", "timestamp": "1547147541"}],
    })

    assert [level.price for level in book.bids] == [Decimal("3607.85"), Decimal("3607.86")]
    assert book.asks[0].amount == Decimal("14.68205084")


@pytest.mark.parametrize("executed, expected", [
    ("10", OrderFillState.FILLED),
    ("10.000", OrderFillState.FILLED),
    ("0", OrderFillState.PENDING),
    ("4", OrderFillState.PARTIALLY_FILLED),
    ("9.99999999", OrderFillState.PARTIALLY_FILLED),
])
def test_parse_order_fill_state(executed, expected):
    order = parse_order(_order(executed_amount=executed))

    assert order.fill_state == expected


def test_classify_fill_is_exact():
    assert classify_fill(Decimal("1"), Decimal("0.999999999999")) == OrderFillState.PARTIALLY_FILLED
    assert classify_fill(Decimal("0"), Decimal("0")) == OrderFillState.FILLED


def test_parse_order_fields():
    order = parse_order(_order())

    assert order.order_id == "44375901"
    assert order.amount == Decimal("10")
    assert order.amount_filled == Decimal("4")
    assert order.price == Decimal("400.00")
    assert order.average_price == Decimal("400.00")
    assert order.symbol == "btcusd"
    assert order.is_buy is True
    assert order.message == ""
    assert order.order_date == datetime(2017, 5, 15, 17, 50, 42, 156000, tzinfo=timezone.utc)


def test_parse_order_side_is_case_sensitive():
    assert parse_order(_order(side="Buy")).is_buy is False
    assert parse_order(_order(side="sell")).is_buy is False


def test_parse_trades_sorts_oldest_first():
    page = [
        {"timestamp": 1547146811, "timestampms": 1547146811357, "tid": 5335307668, "price": "3610.85", "amount": "0.27413495", "exchange": "gemini", "type": "buy"},
        {"timestamp": 1547146800, "timestampms": 1547146800000, "tid": 5335307660, "price": "3610.00", "amount": "1", "exchange": "gemini", "type": "sell"},
        {"timestamp": 1547146805, "timestampms": 1547146805000, "tid": 5335307664, "price": "3610.50", "amount": "2", "exchange": "gemini", "type": "buy"},
    ]

    trades = parse_trades(page)

    assert [trade.id for trade in trades] == [5335307660, 5335307664, 5335307668]
    assert all(a.timestamp <= b.timestamp for a, b in zip(trades, trades[1:]))
    assert trades[0].is_buy is False
    assert trades[2].amount == Decimal("0.27413495")


def test_parse_balances_skips_zero_and_ignores_case():
    balances = parse_balances([
        {"type": "exchange", "currency": "BTC", "amount": "1154.62034001", "available": "1129.10517279"},
        {"type": "exchange", "currency": "USD", "amount": "0", "available": "0"},
        {"type": "exchange", "currency": "ETH", "amount": "2", "available": "0"},
    ])

    assert set(balances.keys()) == {"BTC", "ETH"}
    assert balances["btc"] == Decimal("1154.62034001")
    assert "usd" not in balances


def test_parse_balances_available_field():
    balances = parse_balances([
        {"currency": "BTC", "amount": "1154.62034001", "available": "1129.10517279"},
        {"currency": "ETH", "amount": "2", "available": "0"},
    ], field="available")

    assert dict(balances) == {"BTC": Decimal("1129.10517279")}


def test_check_error_raises_reason():
    with pytest.raises(GeminiAPIError) as excinfo:
        check_error({"result": "error", "reason": "InvalidNonce", "message": "Nonce too low"})

    assert str(excinfo.value) == "InvalidNonce"
    assert excinfo.value.message == "Nonce too low"


def test_check_error_ignores_arrays_and_normal_objects():
    check_error([{"result": "error"}])
    check_error({"result": "ok"})
    check_error({"ask": "1"})
    check_error(None)


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf"])
def test_parse_balances_rejects_non_finite_amounts(value):
    with pytest.raises(ValidationError):
        parse_balances([{"currency": "BTC", "amount": value, "available": "0"}])


@pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", float("nan"), Decimal("Infinity")])
def test_to_decimal_rejects_non_finite(value):
    with pytest.raises(ValueError):
        to_decimal(value)
