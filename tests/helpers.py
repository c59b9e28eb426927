"""Shared test helpers; import in test files: from tests.helpers import make_intent."""

from __future__ import annotations

from typing import Any

from src.connectors.polymarket import OrderBookLevel, OrderBookSnapshot
from src.plans.schema import TradeIntent, TradePlan

TOKEN_A = "21742633143463906290569050155826241533067272736897614950488156847949938836455"
TOKEN_B = "48331043336612883890938759509493159234755048973500640148014422747788308965732"


def make_book(
    token_id: str,
    bids: list[tuple[float, float]] | None = None,
    asks: list[tuple[float, float]] | None = None,
) -> OrderBookSnapshot:
    """Build a snapshot; levels must already be best-first."""
    return OrderBookSnapshot(
        token_id=token_id,
        bids=tuple(OrderBookLevel(p, s) for p, s in bids or []),
        asks=tuple(OrderBookLevel(p, s) for p, s in asks or []),
        timestamp="2026-01-01T00:00:00+00:00",
    )


class FakeMarketData:
    """In-memory market data port. `calls` records every token fetched."""

    def __init__(self, books: dict[str, OrderBookSnapshot] | None = None) -> None:
        self.books = dict(books or {})
        self.calls: list[str] = []

    def set_book(self, token_id: str, bids=None, asks=None) -> None:
        self.books[token_id] = make_book(token_id, bids, asks)

    def get_order_book_snapshot(self, token_id: str) -> OrderBookSnapshot:
        self.calls.append(token_id)
        if token_id not in self.books:
            raise KeyError(f"no book for {token_id}")
        return self.books[token_id]

    def get_midpoint(self, token_id: str) -> float:
        book = self.books[token_id]
        return (book.best_bid + book.best_ask) / 2


def make_intent(**overrides: Any) -> TradeIntent:
    """TradeIntent with sensible defaults (MARKET BUY YES $100 on TOKEN_A)."""
    defaults: dict[str, Any] = {
        "market_token_id": TOKEN_A,
        "outcome": "YES",
        "side": "BUY",
        "order_type": "MARKET",
        "size": 100.0,
    }
    defaults.update(overrides)
    return TradeIntent(**defaults)


def make_plan(plan_id: str = "test-001", trades: list[TradeIntent] | None = None, **overrides) -> TradePlan:
    defaults: dict[str, Any] = {
        "plan_id": plan_id,
        "mode": "paper",
        "trades": trades or [make_intent()],
    }
    defaults.update(overrides)
    return TradePlan(**defaults)


def plan_payload(plan_id: str = "test-001", trades: list[dict] | None = None, **overrides) -> dict:
    """Wire-format (camelCase) plan dict."""
    payload: dict[str, Any] = {
        "planId": plan_id,
        "mode": "paper",
        "trades": trades
        or [
            {
                "marketTokenId": TOKEN_A,
                "outcome": "YES",
                "side": "BUY",
                "orderType": "MARKET",
                "size": 100,
            }
        ],
    }
    payload.update(overrides)
    return payload
