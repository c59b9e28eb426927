"""Paper fill simulation against an order-book snapshot.

Zero-slippage model:
- BUY fills at best ask, SELL fills at best bid (top of book, never worse)
- MARKET orders always fill 100% immediately
- LIMIT orders fill only if they cross the spread, and then at the
  opposing top-of-book price (not the limit price); otherwise they stay open

Pure: no persistence, no position lookups.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.execution.errors import (
    InvalidPriceError,
    NoLiquidityError,
    TradeExecutionError,
    UnsupportedOrderKindError,
)
from src.execution.models import FillOutcome, OrderType, Side

if TYPE_CHECKING:
    from src.connectors.polymarket import OrderBookSnapshot
    from src.plans.schema import TradeIntent

logger = logging.getLogger(__name__)


def _top_of_book(intent: TradeIntent, snapshot: OrderBookSnapshot) -> float:
    """Opposing top-of-book price for the intent's side."""
    price = snapshot.best_ask if intent.side == Side.BUY else snapshot.best_bid
    if price is None:
        raise NoLiquidityError(intent.market_token_id, str(intent.side))
    return price


def _crosses(intent: TradeIntent, top: float) -> bool:
    # BUY: 指値 >= best ask / SELL: 指値 <= best bid
    if intent.side == Side.BUY:
        return intent.price >= top
    return intent.price <= top


def simulate_fill(intent: TradeIntent, snapshot: OrderBookSnapshot) -> FillOutcome | None:
    """Decide whether and at what price/quantity a trade executes.

    Returns None when a LIMIT order does not cross (order stays open).

    Raises:
        NoLiquidityError: no opposing levels in the book.
        InvalidPriceError: top-of-book price outside (0, 1).
        UnsupportedOrderKindError: order type other than MARKET/LIMIT.
    """
    if intent.order_type == OrderType.MARKET:
        fill_price = _top_of_book(intent, snapshot)
    elif intent.order_type == OrderType.LIMIT:
        if intent.price is None:
            raise TradeExecutionError(
                "LIMIT orders require a price",
                {"market_token_id": intent.market_token_id},
            )
        top = _top_of_book(intent, snapshot)
        if not _crosses(intent, top):
            logger.info(
                "%s LIMIT @ %.4f does not cross (top=%.4f) -> stays open",
                intent.side,
                intent.price,
                top,
            )
            return None
        fill_price = top
    else:
        raise UnsupportedOrderKindError(str(intent.order_type))

    if fill_price <= 0 or fill_price >= 1:
        raise InvalidPriceError(intent.market_token_id, fill_price)

    # tokens = size (USDC) / price  e.g. $100 / 0.40 = 250 tokens
    quantity = intent.size / fill_price

    logger.info(
        "%s %s fill simulated: %s size=$%.2f @ %.4f -> %.6f tokens",
        intent.order_type,
        intent.side,
        intent.market_token_id,
        intent.size,
        fill_price,
        quantity,
    )
    return FillOutcome(
        fill_price=fill_price,
        quantity=quantity,
        executed_at=datetime.now(timezone.utc).isoformat(),
    )
