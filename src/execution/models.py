"""Execution data models: enums and result dataclasses.

Plan/intent input models live in src/plans/schema.py; persisted row
models live in src/store/models.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Side(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(StrEnum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class Outcome(StrEnum):
    YES = "YES"
    NO = "NO"


class ExecutionMode(StrEnum):
    PAPER = "paper"
    LIVE = "live"  # 未実装 (Router で拒否)


class OrderStatus(StrEnum):
    OPEN = "open"
    FILLED = "filled"
    PARTIALLY_FILLED = "partially_filled"  # スキーマ互換のみ、このコアでは書かない
    FAILED = "failed"


class RunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class FillOutcome:
    """Simulated fill for one trade intent (zero slippage, 100% fill)."""

    fill_price: float
    quantity: float  # tokens = size (USDC) / fill_price
    executed_at: str


@dataclass
class Position:
    """Position snapshot for one token + outcome, aggregated from fills."""

    market_token_id: str
    outcome: str
    net_quantity: float  # >0 long, 0 flat
    avg_price: float
    realized_pnl: float
    bought_quantity: float = 0.0
    sold_quantity: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.net_quantity * self.avg_price


@dataclass(frozen=True)
class SellValidation:
    valid: bool
    available_quantity: float
    message: str | None = None


@dataclass
class ExecutionOutcome:
    """Result of routing a single trade intent."""

    order_id: str
    status: str  # filled | open
    market_token_id: str
    outcome: str
    side: str
    order_type: str
    size: float
    limit_price: float | None = None
    fill_price: float | None = None
    quantity: float | None = None
    fill_id: str | None = None
    executed_at: str | None = None


@dataclass
class PositionSummary:
    market_token_id: str
    outcome: str
    net_quantity: float
    avg_price: float
    total_cost: float
    realized_pnl: float


@dataclass
class RunSummary:
    """Summary of one trade-plan run, persisted as execution_history.summary_json."""

    plan_id: str
    run_id: str
    mode: str
    orders_placed: int = 0
    orders_filled: int = 0
    orders_open: int = 0
    orders_partially_filled: int = 0
    orders_failed: int = 0
    total_pnl: float = 0.0
    positions: list[PositionSummary] = field(default_factory=list)
    started_at: str = ""
    completed_at: str = ""
    duration_ms: int = 0
