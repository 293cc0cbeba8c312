# gemini_exchange/services/gemini.py
import logging
import threading
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from gemini_exchange.config import Credentials, settings
from gemini_exchange.errors import AuthenticationRequiredError, UnsupportedOperationError
from gemini_exchange.models.market import OrderBook, Ticker, Trade
from gemini_exchange.models.order import OrderRequest, OrderResult, OrderType
from gemini_exchange.services.canonical import (
    BalanceMap,
    check_error,
    parse_balances,
    parse_order,
    parse_order_book,
    parse_ticker,
)
from gemini_exchange.services.pagination import (
    FixedDelayRateLimiter,
    TradeConsumer,
    TradeHistoryPaginator,
)
from gemini_exchange.services.signer import OutgoingRequest, RequestSigner
from gemini_exchange.utils.conversion import to_decimal, to_invariant_string, to_unix_ms

logger = logging.getLogger(__name__)

SYMBOL_SEPARATORS = ("-", "/", "_")

# Last nonce issued by any adapter in this process
_nonce_lock = threading.Lock()
_last_nonce = 0


class GeminiAPI:
    """Gemini REST API exposed through the exchange-agnostic domain models"""

    def __init__(self,
                 credentials: Optional[Credentials] = None,
                 base_url: Optional[str] = None,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None,
                 page_limit: Optional[int] = None,
                 rate_limiter: Optional[FixedDelayRateLimiter] = None,
                 client_order_id_prefix: Optional[str] = None):
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip('/')
        self.signer = RequestSigner(credentials)
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.page_limit = page_limit or settings.TRADES_PAGE_LIMIT
        self.rate_limiter = rate_limiter or FixedDelayRateLimiter(settings.TRADES_PAGE_DELAY)
        self.client_order_id_prefix = (
            client_order_id_prefix if client_order_id_prefix is not None else settings.CLIENT_ORDER_ID_PREFIX
        )

    @staticmethod
    def normalize_symbol(symbol: Optional[str]) -> str:
        """'BTC-USD', 'btc/usd' and 'BTCUSD' all become 'btcusd'"""
        symbol = symbol or ""
        for separator in SYMBOL_SEPARATORS:
            symbol = symbol.replace(separator, "")
        return symbol.lower()

    def generate_nonce(self) -> int:
        """Millisecond based nonce, strictly increasing across the process"""
        global _last_nonce
        with _nonce_lock:
            nonce = max(int(time.time() * 1000), _last_nonce + 1)
            _last_nonce = nonce
            return nonce

    def _make_request(self, endpoint: str, params: Dict[str, Any] = None,
                      payload: Dict[str, Any] = None, authenticated: bool = False) -> Any:
        """
        Make a request to the Gemini API and return the decoded JSON.

        Numbers are decoded as Decimal. Transport and decoding errors propagate
        as raised by requests; an error envelope raises GeminiAPIError even when
        it comes with an HTTP error status.

        Raises:
            AuthenticationRequiredError: If a private call is made without credentials
            GeminiAPIError: If Gemini answers with its error envelope
        """
        if authenticated and not self.signer.can_sign:
            raise AuthenticationRequiredError(f"Credentials required for {endpoint}")

        url = f"{self.base_url}{endpoint}"
        request = OutgoingRequest(method="GET", path=urlparse(url).path, payload=payload)
        self.signer.sign(request, authenticated)
        logger.info(f"Making {request.method} request to endpoint: {endpoint}")

        response = self.session.request(
            request.method,
            url,
            params=params,
            headers=request.headers,
            json=request.payload if request.write_body else None,
            timeout=self.timeout
        )

        try:
            result = response.json(parse_float=Decimal)
        except ValueError:
            response.raise_for_status()
            raise

        check_error(result)
        response.raise_for_status()
        return result

    def get_symbols(self) -> List[str]:
        return list(self._make_request("/symbols"))

    def get_ticker(self, symbol: str) -> Optional[Ticker]:
        symbol = self.normalize_symbol(symbol)
        return parse_ticker(self._make_request(f"/pubticker/{symbol}"))

    def get_order_book(self, symbol: str, max_count: Optional[int] = None) -> Optional[OrderBook]:
        symbol = self.normalize_symbol(symbol)
        max_count = max_count or settings.ORDER_BOOK_DEPTH
        params = {"limit_bids": max_count, "limit_asks": max_count}
        return parse_order_book(self._make_request(f"/book/{symbol}", params=params))

    def _fetch_trades_page(self, symbol: str, cursor: Optional[datetime], limit: int) -> List[Dict[str, Any]]:
        params = {"limit_trades": limit}
        if cursor is not None:
            params["timestamp"] = to_unix_ms(cursor)
        return self._make_request(f"/trades/{symbol}", params=params) or []

    def get_historical_trades(self, callback: TradeConsumer, symbol: str,
                              since: Optional[datetime] = None) -> int:
        """
        Page through trade history, passing each page (oldest first) to callback.

        Without since a single page of the most recent trades is delivered.
        callback returns False to stop early.

        Returns:
            int: Number of pages delivered
        """
        paginator = TradeHistoryPaginator(
            self._fetch_trades_page,
            limit=self.page_limit,
            rate_limiter=self.rate_limiter
        )
        return paginator.run(self.normalize_symbol(symbol), callback, since)

    def get_recent_trades(self, symbol: str) -> List[Trade]:
        trades: List[Trade] = []

        def collect(page):
            trades.extend(page)
            return True

        self.get_historical_trades(collect, symbol)
        return trades

    def _get_balances(self, field: str) -> BalanceMap:
        result = self._make_request("/balances", payload={"nonce": self.generate_nonce()}, authenticated=True)
        return parse_balances(result, field)

    def get_amounts(self) -> BalanceMap:
        """Total balance per currency, zero balances omitted"""
        return self._get_balances("amount")

    def get_amounts_available_to_trade(self) -> BalanceMap:
        """Balance available for trading per currency, zero balances omitted"""
        return self._get_balances("available")

    def place_order(self, order: OrderRequest) -> OrderResult:
        """
        Place a limit order.

        Raises:
            UnsupportedOperationError: For market orders, before anything is sent
        """
        if order.order_type == OrderType.MARKET:
            raise UnsupportedOperationError(f"Order type {order.order_type.value} not supported")

        payload = {
            "nonce": self.generate_nonce(),
            "client_order_id": self.client_order_id_prefix + datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
            "symbol": self.normalize_symbol(order.symbol),
            "amount": to_invariant_string(to_decimal(order.amount)),
            "price": to_invariant_string(to_decimal(order.price)),
            "side": "buy" if order.is_buy else "sell",
            "type": "exchange limit"
        }
        payload.update(order.extra_parameters)

        result = self._make_request("/order/new", payload=payload, authenticated=True)
        placed = parse_order(result)
        logger.info(f"Placed {payload['side']} order {placed.order_id} on {placed.symbol}")
        return placed

    def get_order_details(self, order_id: str) -> Optional[OrderResult]:
        if not order_id or not order_id.strip():
            return None
        payload = {"nonce": self.generate_nonce(), "order_id": order_id}
        return parse_order(self._make_request("/order/status", payload=payload, authenticated=True))

    def get_open_order_details(self, symbol: Optional[str] = None) -> List[OrderResult]:
        """Open orders, optionally restricted to one symbol"""
        symbol = self.normalize_symbol(symbol) if symbol else None
        result = self._make_request("/orders", payload={"nonce": self.generate_nonce()}, authenticated=True)

        orders = []
        if isinstance(result, list):
            for entry in result:
                if symbol is None or to_invariant_string(entry.get("symbol")) == symbol:
                    orders.append(parse_order(entry))
        return orders

    def cancel_order(self, order_id: str) -> None:
        payload = {"nonce": self.generate_nonce(), "order_id": order_id}
        self._make_request("/order/cancel", payload=payload, authenticated=True)
        logger.info(f"Cancelled order {order_id}")
