"""Cursor driven retrieval of historical trades"""
import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from gemini_exchange.models.market import Trade
from gemini_exchange.services.canonical import parse_trade

logger = logging.getLogger(__name__)

# fetch_page(symbol, cursor, limit) -> raw trade objects, newest first
PageFetcher = Callable[[str, Optional[datetime], int], List[Dict[str, Any]]]
# consumer(trades) -> False to stop
TradeConsumer = Callable[[Sequence[Trade]], bool]

class PaginatorState(Enum):
    FETCHING = "fetching"
    DELIVERING = "delivering"
    DONE = "done"

class FixedDelayRateLimiter:
    """Waits a fixed delay between requests"""

    def __init__(self, delay_seconds: float, sleep: Callable[[float], None] = time.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def wait(self) -> None:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

class TradeHistoryPaginator:
    """
    Pages through a symbol's trade history using a timestamp cursor.

    Each page is requested with the current cursor; afterwards the cursor moves
    to the timestamp of the page's first record. Pages are sorted oldest first
    and handed to the consumer, which may stop the run by returning False.

    A run ends when a page comes back empty, a page is shorter than the limit,
    no starting cursor was given (one unpaginated fetch), the consumer stops,
    or a full page would leave the cursor where it was.

    Errors raised by fetch_page propagate untouched. The cursor attribute then
    holds the last successfully advanced value so the caller can resume.
    """

    def __init__(self, fetch_page: PageFetcher, limit: int = 100,
                 rate_limiter: Optional[FixedDelayRateLimiter] = None):
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.fetch_page = fetch_page
        self.limit = limit
        self.rate_limiter = rate_limiter or FixedDelayRateLimiter(1.0)
        self.state = PaginatorState.DONE
        self.cursor: Optional[datetime] = None

    def run(self, symbol: str, consumer: TradeConsumer, since: Optional[datetime] = None) -> int:
        """
        Deliver trades for symbol to consumer until the history is exhausted.

        Returns:
            int: Number of pages handed to the consumer
        """
        self.cursor = since
        self.state = PaginatorState.FETCHING
        pages_delivered = 0

        while self.state != PaginatorState.DONE:
            logger.debug(f"Fetching {self.limit} trades for {symbol} from cursor {self.cursor}")
            page = self.fetch_page(symbol, self.cursor, self.limit)
            if not page:
                logger.info(f"Trade history for {symbol} exhausted after {pages_delivered} pages")
                self.state = PaginatorState.DONE
                break

            # Cursor comes from the first record in request order, so parse before sorting
            trades = [parse_trade(node) for node in page]
            stalled = False
            if self.cursor is not None:
                next_cursor = trades[0].timestamp
                if next_cursor > self.cursor:
                    self.cursor = next_cursor
                    logger.debug(f"Cursor for {symbol} advanced to {self.cursor}")
                else:
                    stalled = True

            self.state = PaginatorState.DELIVERING
            trades.sort(key=lambda trade: trade.timestamp)
            pages_delivered += 1
            if not consumer(trades):
                logger.info(f"Trade history for {symbol} stopped by consumer after {pages_delivered} pages")
                self.state = PaginatorState.DONE
                break

            if stalled:
                logger.warning(f"Trade history for {symbol} stopped: cursor did not move past {self.cursor}")
                self.state = PaginatorState.DONE
                break

            if len(page) < self.limit or self.cursor is None:
                logger.info(f"Trade history for {symbol} complete after {pages_delivered} pages")
                self.state = PaginatorState.DONE
                break

            self.rate_limiter.wait()
            self.state = PaginatorState.FETCHING

        return pages_delivered
