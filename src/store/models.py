"""Data models for the SQLite store.

Dataclasses only, no DB access.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass
class OrderRecord:
    id: str
    plan_id: str
    run_id: str
    market_token_id: str
    outcome: str
    side: str
    order_type: str
    size: float
    price: float | None  # MARKET は None
    status: str  # open/filled/partially_filled/failed
    mode: str  # paper/live
    created_at: str
    external_order_id: str | None = None


@dataclass
class FillRecord:
    id: str
    order_id: str
    quantity: float
    price: float
    executed_at: str
    external_fill_id: str | None = None


@dataclass
class HistoryRecord:
    run_id: str
    plan_id: str
    plan_json: str
    status: str  # running/completed/failed
    started_at: str
    completed_at: str | None
    summary_json: str | None
    error_message: str | None

    @property
    def plan(self) -> dict[str, Any]:
        return json.loads(self.plan_json)

    @property
    def summary(self) -> dict[str, Any] | None:
        return json.loads(self.summary_json) if self.summary_json else None


@dataclass
class PositionRow:
    """One fill joined to its order's side, input to position aggregation."""

    side: str
    quantity: float
    price: float
