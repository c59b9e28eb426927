"""Tests for Polymarket connector parsing and lookups."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.connectors.polymarket import (
    ClobMarketData,
    _parse_gamma_market,
    _parse_json_or_csv,
    fetch_market,
    parse_market_id,
    parse_order_book,
    validate_market_id_format,
)


class TestParseOrderBook:
    def test_dict_levels_sorted_best_first(self):
        raw = {
            "bids": [{"price": "0.38", "size": "10"}, {"price": "0.40", "size": "5"}],
            "asks": [{"price": "0.50", "size": "7"}, {"price": "0.45", "size": "3"}],
            "timestamp": "1700000000000",
        }
        book = parse_order_book(raw, "tok")
        assert [lvl.price for lvl in book.bids] == [0.40, 0.38]
        assert [lvl.price for lvl in book.asks] == [0.45, 0.50]
        assert book.best_bid == 0.40
        assert book.best_ask == 0.45
        assert book.timestamp == "1700000000000"

    def test_object_levels(self):
        raw = SimpleNamespace(
            bids=[SimpleNamespace(price="0.1", size="1")],
            asks=[SimpleNamespace(price="0.2", size="2")],
            timestamp=None,
        )
        book = parse_order_book(raw, "tok")
        assert book.best_bid == 0.1
        assert book.best_ask == 0.2
        assert book.timestamp  # filled with now

    def test_empty_sides(self):
        book = parse_order_book({"bids": [], "asks": None}, "tok")
        assert book.best_bid is None
        assert book.best_ask is None

    def test_malformed_level_skipped(self):
        book = parse_order_book({"bids": [{"price": "abc"}, {"price": "0.3", "size": "1"}]}, "tok")
        assert len(book.bids) == 1
        assert book.best_bid == 0.3


class TestMarketIds:
    def test_decimal_token_id(self):
        assert parse_market_id(" 12345 ") == ("id", "12345")

    def test_hex_id(self):
        assert parse_market_id("0xabc123") == ("id", "0xabc123")

    def test_slug(self):
        assert parse_market_id("will-btc-hit-100k") == ("slug", "will-btc-hit-100k")

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            parse_market_id("   ")

    def test_validate_formats(self):
        assert validate_market_id_format("12345") is True
        assert validate_market_id_format("0x" + "a" * 40) is True
        assert validate_market_id_format("some-slug") is True
        assert "length" in validate_market_id_format("0x12")
        assert "length" in validate_market_id_format("1" * 101)
        assert "lowercase" in validate_market_id_format("Upper-Case")
        assert "between 3 and 200" in validate_market_id_format("z-")
        assert validate_market_id_format("") == "Market ID cannot be empty"


class TestParseJsonOrCsv:
    def test_json_array_string(self):
        assert _parse_json_or_csv('["Yes", "No"]') == ["Yes", "No"]

    def test_csv_string(self):
        assert _parse_json_or_csv("Yes, No") == ["Yes", "No"]

    def test_empty_string(self):
        assert _parse_json_or_csv("") == []

    def test_list_with_numbers(self):
        assert _parse_json_or_csv([1, 2]) == ["1", "2"]


class TestGammaMarket:
    RAW = {
        "conditionId": "0xcond",
        "question": "Will it rain?",
        "slug": "will-it-rain",
        "clobTokenIds": '["111", "222"]',
        "outcomes": '["Yes", "No"]',
        "outcomePrices": '["0.42", "0.58"]',
        "active": True,
    }

    def test_parse(self):
        m = _parse_gamma_market(self.RAW)
        assert m.condition_id == "0xcond"
        assert [t.token_id for t in m.tokens] == ["111", "222"]
        assert m.token_for("yes").price == 0.42
        assert m.token_for("NO").token_id == "222"
        assert m.token_for("maybe") is None

    def test_fetch_by_slug(self):
        client = MagicMock()
        client.get.return_value.json.return_value = [self.RAW]
        m = fetch_market("will-it-rain", client=client)
        assert m.slug == "will-it-rain"
        _, kwargs = client.get.call_args
        assert kwargs["params"] == {"slug": "will-it-rain"}

    def test_fetch_by_condition_and_token(self):
        client = MagicMock()
        client.get.return_value.json.return_value = [self.RAW]
        fetch_market("0x" + "a" * 64, client=client)
        assert "condition_ids" in client.get.call_args.kwargs["params"]
        fetch_market("111", client=client)
        assert client.get.call_args.kwargs["params"] == {"clob_token_ids": "111"}

    def test_fetch_not_found(self):
        client = MagicMock()
        client.get.return_value.json.return_value = []
        assert fetch_market("missing-market", client=client) is None


class TestClobMarketData:
    def test_snapshot_uses_client(self):
        client = MagicMock()
        client.get_order_book.return_value = {
            "bids": [{"price": "0.40", "size": "10"}],
            "asks": [{"price": "0.45", "size": "10"}],
        }
        md = ClobMarketData(client=client)
        book = md.get_order_book_snapshot("tok")
        client.get_order_book.assert_called_once_with("tok")
        assert book.token_id == "tok"
        assert (book.best_bid, book.best_ask) == (0.40, 0.45)

    def test_client_errors_propagate(self):
        client = MagicMock()
        client.get_order_book.side_effect = RuntimeError("404")
        with pytest.raises(RuntimeError):
            ClobMarketData(client=client).get_order_book_snapshot("tok")

    def test_midpoint(self):
        client = MagicMock()
        client.get_midpoint.return_value = {"mid": "0.425"}
        assert ClobMarketData(client=client).get_midpoint("tok") == 0.425

    def test_lazy_client_creation(self):
        with patch("src.connectors.polymarket._create_client") as create:
            md = ClobMarketData()
            create.assert_not_called()
            _ = md.client
            _ = md.client
            create.assert_called_once()
