"""Polymarket connectors: CLOB order books (py-clob-client) and Gamma market lookup (httpx)."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True)
class OrderBookLevel:
    price: float
    size: float


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Order book for one token. Levels are best-first (bids desc, asks asc)."""

    token_id: str
    bids: tuple[OrderBookLevel, ...]
    asks: tuple[OrderBookLevel, ...]
    timestamp: str = ""

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None


@dataclass
class MarketToken:
    token_id: str
    outcome: str
    price: float


@dataclass
class PolymarketMarket:
    condition_id: str
    question: str
    slug: str
    tokens: list[MarketToken]
    active: bool

    def token_for(self, outcome: str) -> MarketToken | None:
        for t in self.tokens:
            if t.outcome.upper() == outcome.upper():
                return t
        return None


# ---------------------------------------------------------------------------
# Market id parsing
# ---------------------------------------------------------------------------


def parse_market_id(value: str) -> tuple[str, str]:
    """Classify a market identifier as ("id", v) or ("slug", v).

    Hex ("0x..." or bare hex) and decimal token ids are ids; anything else
    is treated as a human-readable slug.
    """
    if not value or not value.strip():
        raise ValueError("Market ID cannot be empty")
    v = value.strip()
    if v.startswith("0x") or _HEX_RE.match(v):
        return "id", v
    return "slug", v


def validate_market_id_format(value: str) -> bool | str:
    """Return True if the id looks valid, otherwise an error message."""
    if not value or not value.strip():
        return "Market ID cannot be empty"
    v = value.strip()
    id_type, _ = parse_market_id(v)
    if id_type == "id":
        if v.startswith("0x"):
            if len(v) < 10 or len(v) > 70:
                return "Hex market ID has invalid length"
        elif len(v) > 100:
            return "Numeric market ID has invalid length"
        return True

    if not _SLUG_RE.match(v):
        return "Market slug must contain only lowercase letters, numbers, and hyphens"
    if len(v) < 3 or len(v) > 200:
        return "Market slug must be between 3 and 200 characters"
    return True


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


def _apply_proxy() -> None:
    """Set env-level proxy so py-clob-client's internal httpx picks it up."""
    if settings.http_proxy:
        os.environ.setdefault("HTTPS_PROXY", settings.http_proxy)
        os.environ.setdefault("HTTP_PROXY", settings.http_proxy)


def _get_httpx_client() -> httpx.Client:
    proxy = settings.http_proxy or None
    return httpx.Client(proxy=proxy, timeout=30)


def _create_client():
    from py_clob_client.client import ClobClient

    _apply_proxy()
    # 読み取り専用 (Level 0): 署名・認証は扱わない
    return ClobClient(host=settings.polymarket_host, chain_id=settings.polymarket_chain_id)


# ---------------------------------------------------------------------------
# Order book parsing
# ---------------------------------------------------------------------------


def _level_field(level: Any, name: str) -> Any:
    if isinstance(level, dict):
        return level.get(name)
    return getattr(level, name, None)


def _parse_levels(raw_levels: Any, token_id: str, side: str) -> list[OrderBookLevel]:
    levels: list[OrderBookLevel] = []
    for lvl in raw_levels or []:
        try:
            levels.append(
                OrderBookLevel(
                    price=float(_level_field(lvl, "price")),
                    size=float(_level_field(lvl, "size") or 0),
                )
            )
        except (TypeError, ValueError):
            logger.warning("Skipping malformed %s level for %s: %r", side, token_id, lvl)
    return levels


def parse_order_book(raw: Any, token_id: str) -> OrderBookSnapshot:
    """Parse a CLOB order book (dict or py-clob-client OrderBookSummary).

    The CLOB API does not return levels best-first (bids come back ascending,
    asks descending), so both sides are re-sorted here.
    """
    if isinstance(raw, dict):
        bids_raw = raw.get("bids", [])
        asks_raw = raw.get("asks", [])
        ts = raw.get("timestamp")
    else:
        bids_raw = getattr(raw, "bids", None)
        asks_raw = getattr(raw, "asks", None)
        ts = getattr(raw, "timestamp", None)

    bids = sorted(_parse_levels(bids_raw, token_id, "bid"), key=lambda x: x.price, reverse=True)
    asks = sorted(_parse_levels(asks_raw, token_id, "ask"), key=lambda x: x.price)

    return OrderBookSnapshot(
        token_id=token_id,
        bids=tuple(bids),
        asks=tuple(asks),
        timestamp=str(ts) if ts else datetime.now(timezone.utc).isoformat(),
    )


class ClobMarketData:
    """Market Data Port backed by the Polymarket CLOB (read-only)."""

    def __init__(self, client=None) -> None:
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _create_client()
        return self._client

    def get_order_book_snapshot(self, token_id: str) -> OrderBookSnapshot:
        """Fetch the order book for a token, best levels first."""
        logger.debug("Fetching order book for %s", token_id)
        try:
            raw = self.client.get_order_book(token_id)
        except Exception:
            logger.exception("Failed to fetch order book for %s", token_id)
            raise
        snapshot = parse_order_book(raw, token_id)
        logger.debug(
            "Order book %s: %d bids (best=%s) / %d asks (best=%s)",
            token_id,
            len(snapshot.bids),
            snapshot.best_bid,
            len(snapshot.asks),
            snapshot.best_ask,
        )
        return snapshot

    def get_midpoint(self, token_id: str) -> float:
        """Midpoint price for a token."""
        resp = self.client.get_midpoint(token_id)
        if isinstance(resp, dict):
            return float(resp.get("mid", 0))
        return float(resp)


# ---------------------------------------------------------------------------
# Gamma Markets API – market / token lookup
# ---------------------------------------------------------------------------


def _parse_json_or_csv(value: str | list) -> list[str]:
    """Parse a value that may be a JSON array string or comma-separated string."""
    if isinstance(value, list):
        return [str(v) for v in value]
    if not isinstance(value, str) or not value:
        return []
    value = value.strip()
    if value.startswith("["):
        try:
            return [str(v) for v in json.loads(value)]
        except (json.JSONDecodeError, ValueError):
            pass
    return [x.strip() for x in value.split(",") if x.strip()]


def _parse_gamma_market(raw: dict[str, Any]) -> PolymarketMarket:
    clob_ids = _parse_json_or_csv(raw.get("clobTokenIds", ""))
    outcomes = _parse_json_or_csv(raw.get("outcomes", ""))
    prices = _parse_json_or_csv(raw.get("outcomePrices", ""))

    tokens = []
    for i, tid in enumerate(clob_ids):
        tokens.append(
            MarketToken(
                token_id=tid,
                outcome=outcomes[i] if i < len(outcomes) else f"Outcome {i}",
                price=float(prices[i]) if i < len(prices) else 0.0,
            )
        )
    return PolymarketMarket(
        condition_id=raw.get("conditionId", raw.get("condition_id", "")),
        question=raw.get("question", ""),
        slug=raw.get("slug", ""),
        tokens=tokens,
        active=raw.get("active", True),
    )


def fetch_market(market_id: str, client: httpx.Client | None = None) -> PolymarketMarket | None:
    """Look up a market by slug, condition id (0x...) or CLOB token id."""
    id_type, value = parse_market_id(market_id)
    if id_type == "slug":
        params = {"slug": value}
    elif value.startswith("0x"):
        params = {"condition_ids": value}
    else:
        params = {"clob_token_ids": value}

    client = client or _get_httpx_client()
    resp = client.get(f"{settings.gamma_api_url}/markets", params=params)
    resp.raise_for_status()
    data = resp.json()

    markets = data if isinstance(data, list) else [data]
    if not markets or not markets[0]:
        logger.info("No Gamma market found for %s=%s", next(iter(params)), value)
        return None
    if len(markets) > 1:
        logger.warning("Multiple markets for %s, using first", value)
    return _parse_gamma_market(markets[0])
