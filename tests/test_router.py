"""Tests for the execution router (SELL gating, fills, open LIMIT orders)."""

from __future__ import annotations

import pytest

from src.execution.errors import (
    InsufficientPositionError,
    LiveTradingUnsupportedError,
    NoLiquidityError,
)
from src.execution.router import ExecutionRouter
from tests.helpers import TOKEN_A, TOKEN_B, FakeMarketData, make_intent


@pytest.fixture()
def router(market_data, store) -> ExecutionRouter:
    return ExecutionRouter(market_data, store)


@pytest.fixture()
def history(store):
    store.create_execution_history(run_id="p1", plan_id="p1", plan_payload={})


class TestBuy:
    def test_market_buy_writes_order_and_fill(self, router, store, history):
        result = router.execute_trade("p1", make_intent(size=90))
        assert result.status == "filled"
        assert result.fill_price == 0.45
        assert result.quantity == pytest.approx(200.0)

        orders = store.get_orders_by_plan("p1")
        assert len(orders) == 1
        assert orders[0].status == "filled"
        assert orders[0].mode == "paper"
        fills = store.get_fills_by_order(result.order_id)
        assert len(fills) == 1
        assert fills[0].id == result.fill_id

    def test_limit_not_crossing_leaves_open_order(self, router, store, history):
        result = router.execute_trade("p1", make_intent(order_type="LIMIT", price=0.40))
        assert result.status == "open"
        assert result.fill_id is None
        assert result.limit_price == 0.40

        order = store.get_order(result.order_id)
        assert order.status == "open"
        assert order.price == 0.40
        assert store.get_fills_by_order(order.id) == []

    def test_limit_crossing_fills_at_ask(self, router, history):
        result = router.execute_trade("p1", make_intent(order_type="LIMIT", price=0.50))
        assert result.status == "filled"
        assert result.fill_price == 0.45

    def test_buy_fetches_book_once(self, router, market_data, history):
        router.execute_trade("p1", make_intent())
        assert market_data.calls == [TOKEN_A]

    def test_no_liquidity_writes_nothing(self, store, history):
        md = FakeMarketData()
        md.set_book(TOKEN_B, bids=[(0.40, 10)], asks=[])
        router = ExecutionRouter(md, store)
        with pytest.raises(NoLiquidityError):
            router.execute_trade("p1", make_intent(market_token_id=TOKEN_B))
        assert store.get_orders_by_plan("p1") == []

    def test_run_id_attribution(self, router, store):
        store.create_execution_history(run_id="p1:rerun:x", plan_id="p1", plan_payload={})
        result = router.execute_trade("p1", make_intent(), run_id="p1:rerun:x")
        order = store.get_order(result.order_id)
        assert order.plan_id == "p1"
        assert order.run_id == "p1:rerun:x"


class TestSellGating:
    def test_sell_without_position_rejected(self, router, store, history):
        with pytest.raises(InsufficientPositionError) as exc:
            router.execute_trade("p1", make_intent(side="SELL", size=40))
        err = exc.value
        assert err.available == 0.0
        assert err.required == pytest.approx(100.0)
        assert err.details["market_token_id"] == TOKEN_A
        assert store.get_orders_by_plan("p1") == []

    def test_sell_more_than_held_rejected(self, router, store, history):
        router.execute_trade("p1", make_intent(size=9))  # 20 tokens @ 0.45
        with pytest.raises(InsufficientPositionError) as exc:
            router.execute_trade("p1", make_intent(side="SELL", size=40))  # needs 100
        assert exc.value.available == pytest.approx(20.0)
        assert len(store.get_orders_by_plan("p1")) == 1

    def test_sell_within_position_fills_at_bid(self, router, store, history, market_data):
        router.execute_trade("p1", make_intent(size=90))  # 200 tokens
        market_data.calls.clear()

        result = router.execute_trade("p1", make_intent(side="SELL", size=40))
        assert result.status == "filled"
        assert result.fill_price == 0.40
        assert result.quantity == pytest.approx(100.0)
        # gate + fresh snapshot for the fill
        assert market_data.calls == [TOKEN_A, TOKEN_A]

    def test_limit_sell_is_gated_too(self, router, store, history):
        with pytest.raises(InsufficientPositionError):
            router.execute_trade(
                "p1", make_intent(side="SELL", order_type="LIMIT", price=0.60, size=10)
            )
        assert store.get_orders_by_plan("p1") == []

    def test_sell_without_bids_is_no_liquidity(self, store, history):
        md = FakeMarketData()
        md.set_book(TOKEN_A, bids=[], asks=[(0.45, 10)])
        router = ExecutionRouter(md, store)
        with pytest.raises(NoLiquidityError):
            router.execute_trade("p1", make_intent(side="SELL"))

    def test_gating_ignores_other_outcome(self, router, store, history):
        router.execute_trade("p1", make_intent(size=90, outcome="NO"))
        with pytest.raises(InsufficientPositionError):
            router.execute_trade("p1", make_intent(side="SELL", size=4))


class TestLiveMode:
    def test_live_rejected_before_any_io(self, store, history):
        md = FakeMarketData()
        router = ExecutionRouter(md, store, mode="live")
        with pytest.raises(LiveTradingUnsupportedError):
            router.execute_trade("p1", make_intent())
        assert md.calls == []
        assert store.get_orders_by_plan("p1") == []

    def test_per_call_mode_override(self, router, history):
        with pytest.raises(LiveTradingUnsupportedError) as exc:
            router.execute_trade("p1", make_intent(), mode="live")
        assert exc.value.details["plan_id"] == "p1"
