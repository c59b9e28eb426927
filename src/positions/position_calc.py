"""Position aggregation from committed fills.

Positions are never stored; they are recomputed on demand from the fills
joined to their orders (token + outcome + mode).

    net      = bought - sold
    avg      = buy-side VWAP (net >= 0) / sell-side VWAP (net < 0)
    realized = sell_total - buy_total * (closed / bought),  closed = min(bought, sold)
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable

from src.execution.models import Position, SellValidation, Side

if TYPE_CHECKING:
    from src.store.db import TradeStore
    from src.store.models import PositionRow

logger = logging.getLogger(__name__)

# size / price の丸め誤差 (数 ULP) を同量とみなす
QTY_REL_TOL = 1e-9
QTY_ABS_TOL = 1e-9


def _same_quantity(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=QTY_REL_TOL, abs_tol=QTY_ABS_TOL)


def aggregate_fills(
    market_token_id: str,
    outcome: str,
    rows: Iterable[PositionRow],
) -> Position | None:
    """Fold (side, quantity, price) rows into a Position. None if no rows."""
    bought = sold = 0.0
    buy_total = sell_total = 0.0
    n = 0
    for row in rows:
        n += 1
        if row.side == Side.BUY:
            bought += row.quantity
            buy_total += row.quantity * row.price
        else:
            sold += row.quantity
            sell_total += row.quantity * row.price
    if n == 0:
        return None

    net = bought - sold
    if _same_quantity(bought, sold):
        net = 0.0
    buy_avg = buy_total / bought if bought > 0 else 0.0
    if net < 0 and sold > 0:
        avg = sell_total / sold
    else:
        avg = buy_avg

    closed = min(bought, sold)
    if closed > 0:
        realized = sell_total - buy_total * (closed / bought)
    else:
        realized = 0.0

    return Position(
        market_token_id=market_token_id,
        outcome=str(outcome),
        net_quantity=net,
        avg_price=avg,
        realized_pnl=realized,
        bought_quantity=bought,
        sold_quantity=sold,
    )


def calculate_position(
    store: TradeStore,
    market_token_id: str,
    outcome: str,
    mode: str,
) -> Position | None:
    """Current position for token + outcome + mode, or None if never traded."""
    rows = store.get_position_rows(market_token_id, outcome, mode)
    position = aggregate_fills(market_token_id, outcome, rows)
    if position is None:
        logger.debug("No position for %s %s (%s)", market_token_id, outcome, mode)
        return None
    logger.info(
        "Position %s %s: net=%.6f avg=%.4f realized=%.4f",
        market_token_id,
        outcome,
        position.net_quantity,
        position.avg_price,
        position.realized_pnl,
    )
    return position


def validate_sell_position(
    store: TradeStore,
    market_token_id: str,
    outcome: str,
    mode: str,
    required_quantity: float,
) -> SellValidation:
    """Check that a SELL of required_quantity tokens is covered by the long position."""
    position = calculate_position(store, market_token_id, outcome, mode)

    if position is None or position.net_quantity <= 0:
        message = (
            f"No existing position found for market token {market_token_id} "
            f"outcome {outcome}. Cannot SELL without a position."
        )
        logger.warning(message)
        return SellValidation(
            valid=False,
            available_quantity=position.net_quantity if position else 0.0,
            message=message,
        )

    if position.net_quantity < required_quantity and not _same_quantity(
        position.net_quantity, required_quantity
    ):
        message = (
            f"Insufficient position for market token {market_token_id} outcome {outcome}. "
            f"Required: {required_quantity:.6f}, Available: {position.net_quantity:.6f}"
        )
        logger.warning(message)
        return SellValidation(valid=False, available_quantity=position.net_quantity, message=message)

    logger.info(
        "SELL position check passed: %s %s required=%.6f available=%.6f",
        market_token_id,
        outcome,
        required_quantity,
        position.net_quantity,
    )
    return SellValidation(valid=True, available_quantity=position.net_quantity)


def calculate_unrealized_pnl(position: Position, current_price: float) -> float:
    """Mark-to-market P&L: (current - avg) * net. Zero when flat."""
    if position.net_quantity == 0:
        return 0.0
    return (current_price - position.avg_price) * position.net_quantity
