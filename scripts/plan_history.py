#!/usr/bin/env python3
"""Show execution history for a plan, including any re-executions.

Usage:
    python scripts/plan_history.py test-001
    python scripts/plan_history.py test-001 --db /tmp/test.db
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


def format_history(record) -> str:
    lines = [
        f"Run {record.run_id}  [{record.status}]",
        f"  Started:   {record.started_at}",
        f"  Completed: {record.completed_at or '-'}",
    ]
    if record.error_message:
        lines.append(f"  Error:     {record.error_message}")
    summary = record.summary
    if summary:
        lines.append(
            f"  Orders:    placed={summary['orders_placed']} filled={summary['orders_filled']} "
            f"open={summary['orders_open']} failed={summary['orders_failed']}"
        )
        lines.append(f"  PnL:       ${summary['total_pnl']:+.4f}")
        for p in summary.get("positions", []):
            lines.append(
                f"    {p['market_token_id']} {p['outcome']}: net={p['net_quantity']:.6f} "
                f"avg={p['avg_price']:.4f}"
            )
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    from src.store.db import TradeStore
    from src.store.db_path import resolve_db_path

    parser = argparse.ArgumentParser(description="Show trade-plan execution history")
    parser.add_argument("plan_id", help="Plan ID")
    parser.add_argument("--db", type=str, default=None, help="SQLite path (default: settings)")
    args = parser.parse_args(argv)

    store = TradeStore(resolve_db_path(args.db))
    runs = store.get_runs_for_plan(args.plan_id)
    if not runs:
        print(f"No execution history for plan '{args.plan_id}'")
        return 1

    print(f"Plan {args.plan_id}: {len(runs)} run(s)\n")
    for rec in runs:
        print(format_history(rec))
        orders = store.get_orders_by_plan(args.plan_id, run_id=rec.run_id)
        for o in orders:
            price = f" @ {o.price:.4f}" if o.price is not None else ""
            print(f"    order {o.id[:8]} {o.side} {o.outcome} {o.order_type} ${o.size:.2f}{price} -> {o.status}")
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
