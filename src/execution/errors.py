"""Execution error taxonomy.

Every error carries a human-readable message plus structured details
(plan id, token id, required vs. available quantity, ...) so the CLI can
render a precise failure without inspecting internal state.
"""

from __future__ import annotations

from typing import Any


class TradeExecutionError(Exception):
    """Base class for all trade-plan execution failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class DuplicatePlanError(TradeExecutionError):
    def __init__(self, plan_id: str) -> None:
        super().__init__(
            f"Plan '{plan_id}' has already been executed. "
            "Duplicate planId rejected for idempotency.",
            {"plan_id": plan_id, "reason": "duplicate_plan_id"},
        )
        self.plan_id = plan_id


class InsufficientPositionError(TradeExecutionError):
    def __init__(
        self,
        market_token_id: str,
        outcome: str,
        required: float,
        available: float,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message
            or (
                f"Insufficient position for token {market_token_id} outcome {outcome}. "
                f"Required: {required:.6f}, Available: {available:.6f}"
            ),
            {
                "market_token_id": market_token_id,
                "outcome": outcome,
                "required_quantity": required,
                "available_quantity": available,
            },
        )
        self.required = required
        self.available = available


class NoLiquidityError(TradeExecutionError):
    def __init__(self, market_token_id: str, side: str) -> None:
        book_side = "asks" if side == "BUY" else "bids"
        super().__init__(
            f"No {book_side} available in order book for token {market_token_id}. "
            f"Cannot execute {side} order.",
            {"market_token_id": market_token_id, "side": side},
        )


class InvalidPriceError(TradeExecutionError):
    def __init__(self, market_token_id: str, price: float) -> None:
        super().__init__(
            f"Invalid fill price {price} for token {market_token_id}. "
            "Price must be between 0 and 1.",
            {"market_token_id": market_token_id, "fill_price": price},
        )


class UnsupportedOrderKindError(TradeExecutionError):
    def __init__(self, order_type: str) -> None:
        super().__init__(
            f"Order type {order_type} not supported.",
            {"order_type": order_type},
        )


class LiveTradingUnsupportedError(TradeExecutionError):
    def __init__(self, plan_id: str) -> None:
        super().__init__(
            'Live trading mode is not supported. Please use "paper" mode.',
            {"plan_id": plan_id, "mode": "live"},
        )


class PersistenceError(TradeExecutionError):
    """Database failure; the unit of work that raised it was rolled back."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(
            f"Database error during {operation}: {cause}",
            {"operation": operation, "cause": type(cause).__name__},
        )
        self.operation = operation
