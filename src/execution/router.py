"""Execution router: one trade intent -> one order (+ at most one fill).

Paper mode only. SELL intents are gated against the current long position
before anything is simulated or written.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from src.execution.errors import (
    InsufficientPositionError,
    LiveTradingUnsupportedError,
    NoLiquidityError,
)
from src.execution.fill_simulator import simulate_fill
from src.execution.models import ExecutionMode, ExecutionOutcome, OrderStatus, Side
from src.positions.position_calc import validate_sell_position

if TYPE_CHECKING:
    from src.connectors.polymarket import OrderBookSnapshot
    from src.plans.schema import TradeIntent
    from src.store.db import TradeStore

logger = logging.getLogger(__name__)


class MarketDataPort(Protocol):
    def get_order_book_snapshot(self, token_id: str) -> OrderBookSnapshot: ...


class ExecutionRouter:
    def __init__(
        self,
        market_data: MarketDataPort,
        store: TradeStore,
        mode: str = ExecutionMode.PAPER,
    ) -> None:
        self.market_data = market_data
        self.store = store
        self.mode = ExecutionMode(mode)

    def _check_sell(self, intent: TradeIntent, mode: ExecutionMode) -> None:
        snapshot = self.market_data.get_order_book_snapshot(intent.market_token_id)
        best_bid = snapshot.best_bid
        if best_bid is None:
            raise NoLiquidityError(intent.market_token_id, str(intent.side))

        required = intent.size / best_bid
        check = validate_sell_position(
            self.store,
            intent.market_token_id,
            str(intent.outcome),
            str(mode),
            required,
        )
        if not check.valid:
            raise InsufficientPositionError(
                intent.market_token_id,
                str(intent.outcome),
                required,
                check.available_quantity,
                check.message,
            )

    def execute_trade(
        self,
        plan_id: str,
        intent: TradeIntent,
        *,
        mode: str | None = None,
        run_id: str | None = None,
    ) -> ExecutionOutcome:
        """Execute one intent and persist the result.

        Filled -> order + fill written in one transaction.
        Not crossed (LIMIT) -> order written as open, no fill.
        Any error -> nothing written for this intent.
        """
        mode = ExecutionMode(mode or self.mode)
        if mode == ExecutionMode.LIVE:
            raise LiveTradingUnsupportedError(plan_id)

        if intent.side == Side.SELL:
            self._check_sell(intent, mode)

        # 最新の板で約定判定 (SELL チェック時の板とは別取得)
        snapshot = self.market_data.get_order_book_snapshot(intent.market_token_id)
        fill = simulate_fill(intent, snapshot)

        order_data = {
            "plan_id": plan_id,
            "run_id": run_id or plan_id,
            "market_token_id": intent.market_token_id,
            "outcome": str(intent.outcome),
            "side": str(intent.side),
            "order_type": str(intent.order_type),
            "size": intent.size,
            "price": intent.price,
            "mode": str(mode),
        }

        if fill is None:
            order = self.store.create_order({**order_data, "status": OrderStatus.OPEN})
            logger.info(
                "Order %s left open: %s %s @ %s",
                order.id,
                intent.side,
                intent.market_token_id,
                intent.price,
            )
            return ExecutionOutcome(
                order_id=order.id,
                status=OrderStatus.OPEN,
                market_token_id=intent.market_token_id,
                outcome=str(intent.outcome),
                side=str(intent.side),
                order_type=str(intent.order_type),
                size=intent.size,
                limit_price=intent.price,
            )

        order, fill_rec = self.store.execute_trade_transaction(
            order_data,
            {
                "quantity": fill.quantity,
                "price": fill.fill_price,
                "executed_at": fill.executed_at,
            },
        )
        logger.info(
            "Order %s filled: %s %.6f %s @ %.4f",
            order.id,
            intent.side,
            fill.quantity,
            intent.market_token_id,
            fill.fill_price,
        )
        return ExecutionOutcome(
            order_id=order.id,
            status=OrderStatus.FILLED,
            market_token_id=intent.market_token_id,
            outcome=str(intent.outcome),
            side=str(intent.side),
            order_type=str(intent.order_type),
            size=intent.size,
            limit_price=intent.price,
            fill_price=fill.fill_price,
            quantity=fill.quantity,
            fill_id=fill_rec.id,
            executed_at=fill.executed_at,
        )
