#!/usr/bin/env python3
"""Validate and execute a trade plan (paper mode).

Usage:
    python scripts/execute_trade_plan.py ./plan.json
    cat plan.json | python scripts/execute_trade_plan.py
    python scripts/execute_trade_plan.py ./plan.json --reexecute
    python scripts/execute_trade_plan.py ./plan.json --db /tmp/test.db --json

Exit code 0 on success, 1 on any validation or execution failure.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging

log = logging.getLogger(__name__)

if TYPE_CHECKING:
    from src.execution.models import RunSummary
    from src.execution.router import MarketDataPort
    from src.plans.schema import TradePlan


def format_plan_summary(plan: TradePlan) -> str:
    lines = [
        "Trade plan validated",
        f"  Plan ID: {plan.plan_id}",
        f"  Mode:    {plan.mode}",
        f"  Trades:  {len(plan.trades)}",
    ]
    if plan.notes:
        lines.append(f"  Notes:   {plan.notes}")
    for i, t in enumerate(plan.trades, 1):
        price = f" @ {t.price:.4f}" if t.price is not None else ""
        lines.append(
            f"    {i}. {t.side} {t.outcome} {t.order_type} ${t.size:.2f}{price}  {t.market_token_id}"
        )
    return "\n".join(lines)


def format_run_summary(summary: RunSummary) -> str:
    lines = [
        "",
        "=" * 60,
        f"  Execution Summary: {summary.plan_id}",
        "=" * 60,
        f"  Run ID:           {summary.run_id}",
        f"  Mode:             {summary.mode}",
        f"  Orders placed:    {summary.orders_placed}",
        f"  Orders filled:    {summary.orders_filled}",
        f"  Orders open:      {summary.orders_open}",
        f"  Orders failed:    {summary.orders_failed}",
        f"  Realized PnL:     ${summary.total_pnl:+.4f}",
        f"  Duration:         {summary.duration_ms} ms",
    ]
    if summary.positions:
        lines.append("")
        lines.append("  Positions:")
        for p in summary.positions:
            lines.append(
                f"    {p.market_token_id} {p.outcome}: net={p.net_quantity:.6f} "
                f"avg={p.avg_price:.4f} cost=${p.total_cost:.2f} "
                f"realized=${p.realized_pnl:+.4f}"
            )
    lines.append("=" * 60)
    return "\n".join(lines)


def format_error(err: Exception) -> str:
    from src.execution.errors import TradeExecutionError
    from src.plans.schema import PlanValidationError

    if isinstance(err, PlanValidationError):
        return f"ERROR [{err.kind}]\n{err.summary()}"
    if isinstance(err, TradeExecutionError):
        lines = [f"ERROR [{err.kind}] {err.message}"]
        for k, v in err.details.items():
            lines.append(f"  {k}: {v}")
        return "\n".join(lines)
    return f"ERROR {err}"


def run(
    argv: list[str] | None = None,
    stdin: TextIO | None = None,
    market_data: MarketDataPort | None = None,
) -> int:
    from src.execution.errors import TradeExecutionError
    from src.plans.loader import PlanInputError, load_input, parse_json_input
    from src.plans.schema import validate_trade_plan
    from src.runner.plan_runner import build_runner
    from src.store.db_path import resolve_db_path

    parser = argparse.ArgumentParser(description="Execute a trade plan (paper mode)")
    parser.add_argument("file", nargs="?", default=None, help="Plan JSON file (default: stdin)")
    parser.add_argument(
        "-r",
        "--reexecute",
        action="store_true",
        help="Run again even if this planId was already executed",
    )
    parser.add_argument("--db", type=str, default=None, help="SQLite path (default: settings)")
    parser.add_argument("--json", action="store_true", help="Print run summary as JSON")
    args = parser.parse_args(argv)

    try:
        payload = parse_json_input(load_input(args.file, stdin=stdin))
        plan = validate_trade_plan(payload)
    except PlanInputError as e:
        print(f"ERROR {e}", file=sys.stderr)
        return 1
    except TradeExecutionError as e:
        print(format_error(e), file=sys.stderr)
        return 1

    if not args.json:
        print(format_plan_summary(plan))

    db_path = resolve_db_path(args.db)
    log.info("DB path: %s", db_path)
    runner = build_runner(db_path, market_data=market_data)

    try:
        summary = runner.execute_trade_plan(plan, reexecute=args.reexecute)
    except TradeExecutionError as e:
        print(format_error(e), file=sys.stderr)
        return 1
    except Exception as e:
        log.exception("Unexpected failure executing plan %s", plan.plan_id)
        print(format_error(e), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(asdict(summary), indent=2, ensure_ascii=False))
    else:
        print(format_run_summary(summary))
    return 0


def main() -> None:
    from src.logging_config import setup_logging

    session_id = setup_logging()
    log.debug("Session %s", session_id)
    sys.exit(run())


if __name__ == "__main__":
    main()
