"""Command line entry point for quick Gemini API calls"""
import argparse
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import List, Optional

from gemini_exchange.config import SECRET_FIELDS, settings
from gemini_exchange.services.gemini import GeminiAPI
from gemini_exchange.utils.json_encoder import DateTimeEncoder

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), format='%(message)s')
logger = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='gemini_exchange', description='Query the Gemini REST API')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('symbols', help='List tradable symbols')

    ticker = commands.add_parser('ticker', help='Show the ticker for a symbol')
    ticker.add_argument('symbol')

    book = commands.add_parser('book', help='Show the order book for a symbol')
    book.add_argument('symbol')
    book.add_argument('--depth', type=int, default=None, help='Levels per side')

    trades = commands.add_parser('trades', help='Dump trade history for a symbol')
    trades.add_argument('symbol')
    trades.add_argument('--since', type=parse_since, default=None, help='ISO 8601 start time; enables paging')
    trades.add_argument('--max-pages', type=int, default=None, help='Stop after this many pages')

    balances = commands.add_parser('balances', help='Show non-zero balances (requires credentials)')
    balances.add_argument('--available', action='store_true', help='Only amounts available to trade')

    orders = commands.add_parser('orders', help='List open orders (requires credentials)')
    orders.add_argument('--symbol', default=None)

    return parser

def parse_since(value: str) -> datetime:
    moment = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment

def dump_trades(api: GeminiAPI, symbol: str, since: Optional[datetime], max_pages: Optional[int]) -> list:
    collected = []
    pages = 0

    def consume(page) -> bool:
        nonlocal pages
        collected.extend(page)
        pages += 1
        return max_pages is None or pages < max_pages

    api.get_historical_trades(consume, symbol, since)
    return collected

def run(argv: Optional[List[str]] = None) -> None:
    """Run one command and print its result as JSON"""
    args = build_parser().parse_args(argv)
    try:
        safe_config = settings.model_dump(exclude=SECRET_FIELDS)
        logger.debug(f"Using configuration: {json.dumps(safe_config)}")

        api = GeminiAPI(credentials=settings.credentials)

        if args.command == 'symbols':
            result = api.get_symbols()
        elif args.command == 'ticker':
            result = api.get_ticker(args.symbol)
        elif args.command == 'book':
            result = api.get_order_book(args.symbol, args.depth)
        elif args.command == 'trades':
            result = dump_trades(api, args.symbol, args.since, args.max_pages)
        elif args.command == 'balances':
            result = api.get_amounts_available_to_trade() if args.available else api.get_amounts()
            result = dict(result)
        elif args.command == 'orders':
            result = api.get_open_order_details(args.symbol)
        else:
            raise ValueError(f"Unsupported command: {args.command}")

        print(json.dumps(result, indent=2, cls=DateTimeEncoder))

    except Exception as e:
        logger.error(f"Error running {args.command}: {e}")
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    run()
