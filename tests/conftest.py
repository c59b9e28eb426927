"""Shared fixtures for trade-plan executor tests.

Helper functions (make_intent, make_plan, FakeMarketData, etc.) are in tests/helpers.py.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.connectors.polymarket import OrderBookSnapshot
from src.store.db import TradeStore
from tests.helpers import TOKEN_A, FakeMarketData, make_book


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Temporary database path; each test gets an isolated SQLite file."""
    return tmp_path / "test.db"


@pytest.fixture()
def store(db_path: Path) -> TradeStore:
    return TradeStore(db_path)


@pytest.fixture()
def sample_book() -> OrderBookSnapshot:
    """Bid 0.40 / ask 0.45 with some depth behind the top."""
    return make_book(
        TOKEN_A,
        bids=[(0.40, 500), (0.39, 800), (0.35, 1000)],
        asks=[(0.45, 400), (0.46, 700), (0.50, 1200)],
    )


@pytest.fixture()
def market_data(sample_book: OrderBookSnapshot) -> FakeMarketData:
    return FakeMarketData({TOKEN_A: sample_book})
