#!/usr/bin/env python3
"""Print every position aggregated from fills.

Usage:
    python scripts/positions.py
    python scripts/positions.py --mark          # midpoint mark-to-market
    python scripts/positions.py --db /tmp/test.db
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def main(argv: list[str] | None = None, market_data=None) -> int:
    from src.positions.position_calc import calculate_position, calculate_unrealized_pnl
    from src.store.db import TradeStore
    from src.store.db_path import resolve_db_path

    parser = argparse.ArgumentParser(description="Show positions")
    parser.add_argument("--mode", choices=["paper", "live"], default="paper")
    parser.add_argument("--mark", action="store_true", help="Fetch midpoints for unrealized PnL")
    parser.add_argument("--db", type=str, default=None, help="SQLite path (default: settings)")
    args = parser.parse_args(argv)

    store = TradeStore(resolve_db_path(args.db))
    keys = store.list_position_keys(args.mode)
    if not keys:
        print(f"No {args.mode} positions")
        return 0

    if args.mark and market_data is None:
        from src.connectors.polymarket import ClobMarketData

        market_data = ClobMarketData()

    total_realized = 0.0
    total_unrealized = 0.0
    print(f"{'Token':<24} {'Out':<4} {'Net':>14} {'Avg':>8} {'Realized':>11} {'Unrealized':>11}")
    for token_id, outcome in keys:
        pos = calculate_position(store, token_id, outcome, args.mode)
        if pos is None:
            continue
        total_realized += pos.realized_pnl
        unrealized = "-"
        if args.mark and pos.net_quantity != 0:
            try:
                mid = market_data.get_midpoint(token_id)
            except Exception:
                log.exception("Midpoint fetch failed for %s", token_id)
            else:
                u = calculate_unrealized_pnl(pos, mid)
                total_unrealized += u
                unrealized = f"{u:+.4f}"
        short = token_id if len(token_id) <= 24 else token_id[:21] + "..."
        print(
            f"{short:<24} {pos.outcome:<4} {pos.net_quantity:>14.6f} {pos.avg_price:>8.4f} "
            f"{pos.realized_pnl:>+11.4f} {unrealized:>11}"
        )

    print(f"\nTotal realized PnL: ${total_realized:+.4f}")
    if args.mark:
        print(f"Total unrealized PnL: ${total_unrealized:+.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
