"""Plan runner: idempotent, fail-fast execution of a whole trade plan.

Flow per run:
  1. idempotency check on execution_history (run_id)
  2. history row -> running
  3. trades in order through the router; first error stops the run
  4. summary -> completed  /  error -> failed, re-raised

Trades already committed before a failure stay committed (no plan-level
transaction).
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.execution.errors import DuplicatePlanError, PersistenceError
from src.execution.models import OrderStatus, PositionSummary, RunSummary
from src.positions.position_calc import calculate_position

if TYPE_CHECKING:
    from src.execution.router import ExecutionRouter, MarketDataPort
    from src.plans.schema import TradePlan
    from src.store.db import TradeStore
    from src.store.models import HistoryRecord, OrderRecord

logger = logging.getLogger(__name__)


def make_rerun_id(plan_id: str, now: datetime | None = None) -> str:
    """Run key for a forced re-execution. ':' never appears in a plan id."""
    now = now or datetime.now(timezone.utc)
    return f"{plan_id}:rerun:{now.strftime('%Y%m%dT%H%M%S%fZ')}"


class PlanRunner:
    def __init__(self, store: TradeStore, router: ExecutionRouter) -> None:
        self.store = store
        self.router = router

    def _resolve_run_id(self, plan_id: str, reexecute: bool) -> str:
        if not self.store.plan_exists(plan_id):
            return plan_id
        if not reexecute:
            raise DuplicatePlanError(plan_id)
        run_id = make_rerun_id(plan_id)
        logger.warning("Plan %s already executed; re-executing as %s", plan_id, run_id)
        return run_id

    def execute_trade_plan(self, plan: TradePlan, reexecute: bool = False) -> RunSummary:
        """Execute every trade in plan order and return the run summary.

        Raises:
            DuplicatePlanError: plan id already executed and reexecute is False.
            TradeExecutionError: first failing trade (history marked failed).
        """
        run_id = self._resolve_run_id(plan.plan_id, reexecute)
        log = logging.LoggerAdapter(logger, {"plan_id": plan.plan_id})

        t0 = time.monotonic()
        history = self.store.create_execution_history(
            run_id=run_id,
            plan_id=plan.plan_id,
            plan_payload=plan.to_payload(),
        )
        log.info("Executing plan %s (run=%s, %d trades)", plan.plan_id, run_id, len(plan.trades))

        try:
            for i, intent in enumerate(plan.trades, 1):
                log.info(
                    "Trade %d/%d: %s %s %s $%.2f",
                    i,
                    len(plan.trades),
                    intent.side,
                    intent.order_type,
                    intent.market_token_id,
                    intent.size,
                )
                result = self.router.execute_trade(
                    plan.plan_id, intent, mode=str(plan.mode), run_id=run_id
                )
                log.info("Trade %d/%d -> %s (order %s)", i, len(plan.trades), result.status, result.order_id)

            summary = self._build_summary(plan, run_id, history.started_at, t0)
            self.store.complete_execution_history(run_id, asdict(summary))
        except Exception as e:
            log.error("Plan %s failed: %s", plan.plan_id, e)
            try:
                self.store.fail_execution_history(run_id, str(e))
            except PersistenceError:
                log.exception("Could not mark run %s as failed", run_id)
            raise

        log.info(
            "Plan %s completed: placed=%d filled=%d open=%d pnl=%.4f (%d ms)",
            plan.plan_id,
            summary.orders_placed,
            summary.orders_filled,
            summary.orders_open,
            summary.total_pnl,
            summary.duration_ms,
        )
        return summary

    def _build_summary(
        self,
        plan: TradePlan,
        run_id: str,
        started_at: str,
        t0: float,
    ) -> RunSummary:
        orders = self.store.get_orders_by_plan(plan.plan_id, run_id=run_id)
        summary = RunSummary(plan_id=plan.plan_id, run_id=run_id, mode=str(plan.mode))
        summary.orders_placed = len(orders)
        summary.orders_filled = _count(orders, OrderStatus.FILLED)
        summary.orders_open = _count(orders, OrderStatus.OPEN)
        summary.orders_partially_filled = _count(orders, OrderStatus.PARTIALLY_FILLED)
        summary.orders_failed = _count(orders, OrderStatus.FAILED)

        seen: set[tuple[str, str]] = set()
        for o in orders:
            key = (o.market_token_id, o.outcome)
            if key in seen:
                continue
            seen.add(key)
            pos = calculate_position(self.store, o.market_token_id, o.outcome, str(plan.mode))
            if pos is None:
                continue
            summary.positions.append(
                PositionSummary(
                    market_token_id=pos.market_token_id,
                    outcome=pos.outcome,
                    net_quantity=pos.net_quantity,
                    avg_price=pos.avg_price,
                    total_cost=pos.total_cost,
                    realized_pnl=pos.realized_pnl,
                )
            )

        summary.total_pnl = sum(p.realized_pnl for p in summary.positions)
        summary.started_at = started_at
        summary.completed_at = datetime.now(timezone.utc).isoformat()
        summary.duration_ms = int((time.monotonic() - t0) * 1000)
        return summary

    def get_execution_history(self, plan_id: str) -> HistoryRecord | None:
        """History record for the plan's original run (None if never executed)."""
        return self.store.get_execution_history(plan_id)

    def get_runs(self, plan_id: str) -> list[HistoryRecord]:
        return self.store.get_runs_for_plan(plan_id)


def _count(orders: list[OrderRecord], status: str) -> int:
    return sum(1 for o in orders if o.status == status)


def build_runner(db_path: str, market_data: MarketDataPort | None = None) -> PlanRunner:
    """Wire store, market data and router for one CLI process."""
    from src.connectors.polymarket import ClobMarketData
    from src.execution.router import ExecutionRouter
    from src.store.db import TradeStore

    store = TradeStore(db_path)
    router = ExecutionRouter(market_data or ClobMarketData(), store)
    return PlanRunner(store, router)
