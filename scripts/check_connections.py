#!/usr/bin/env python3
"""Step-by-step connection tester: SQLite store → Gamma market lookup → CLOB order books.

Usage:
    python scripts/check_connections.py
    python scripts/check_connections.py <token_id | condition_id | slug>
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def step1_database():
    """Step 1: Open the SQLite store and read history."""
    from src.store.db import TradeStore
    from src.store.db_path import resolve_db_path

    print("\n=== Step 1: SQLite store ===")
    db_path = resolve_db_path()
    try:
        store = TradeStore(db_path)
        keys = store.list_position_keys("paper")
    except Exception as e:
        print(f"  FAIL: {db_path}: {e}")
        return False
    print(f"  OK: {db_path} ({len(keys)} paper positions)")
    return True


def step2_gamma(market_id):
    """Step 2: Resolve the market id via the Gamma Markets API."""
    from src.connectors.polymarket import fetch_market

    print("\n=== Step 2: Gamma Markets API ===")
    try:
        market = fetch_market(market_id)
    except Exception as e:
        print(f"  FAIL: {e}")
        return None
    if market is None:
        print(f"  MISS: no market for {market_id}")
        return None

    print(f"  OK: {market.question} [{'active' if market.active else 'closed'}]")
    for t in market.tokens:
        print(f"    {t.outcome:<4} {t.token_id} @ {t.price:.3f}")
    return market


def step3_order_books(token_ids):
    """Step 3: Fetch CLOB order books for each token."""
    from src.connectors.polymarket import ClobMarketData

    print("\n=== Step 3: CLOB order books ===")
    market_data = ClobMarketData()
    ok = 0
    for token_id in token_ids:
        try:
            book = market_data.get_order_book_snapshot(token_id)
        except Exception as e:
            print(f"  FAIL: {token_id}: {e}")
            continue
        ok += 1
        print(
            f"  OK: {token_id} bid={book.best_bid} ({len(book.bids)} lvls) "
            f"ask={book.best_ask} ({len(book.asks)} lvls)"
        )
    print(f"  {ok}/{len(token_ids)} order books fetched")
    return ok


def main():
    from src.connectors.polymarket import parse_market_id

    print("=" * 60)
    print("  Polymarket Trade Plan Connection Test")
    print("=" * 60)

    results = {}
    results["SQLite"] = "OK" if step1_database() else "FAIL"

    if len(sys.argv) < 2:
        print("\nNo market id given: skipping Gamma / CLOB steps")
        _print_summary(results)
        return

    market_id = sys.argv[1]
    market = step2_gamma(market_id)
    results["Gamma API"] = "OK" if market else "MISS"

    if market:
        token_ids = [t.token_id for t in market.tokens]
    elif parse_market_id(market_id)[0] == "id" and not market_id.startswith("0x"):
        token_ids = [market_id]
    else:
        print("\nStopping: no token ids to test")
        _print_summary(results)
        return

    ok = step3_order_books(token_ids)
    results["CLOB order book"] = "OK" if ok > 0 else "FAIL"

    _print_summary(results)


def _print_summary(results):
    print("\n" + "=" * 60)
    print("  Summary")
    print("=" * 60)
    for step, status in results.items():
        icon = "+" if status == "OK" else "-"
        print(f"  [{icon}] {step}: {status}")
    print("=" * 60)


if __name__ == "__main__":
    main()
