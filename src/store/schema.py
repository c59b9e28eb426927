"""Database schema DDL and connection helper."""

from __future__ import annotations

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "trade_plans.db"

# plan 単位の実行履歴 (run_id = 冪等キー)
EXECUTION_HISTORY_SQL = """
CREATE TABLE IF NOT EXISTS execution_history (
    run_id          TEXT PRIMARY KEY,
    plan_id         TEXT NOT NULL,
    plan_json       TEXT NOT NULL,
    status          TEXT NOT NULL CHECK (status IN ('running', 'completed', 'failed')),
    started_at      TEXT NOT NULL,
    completed_at    TEXT,
    summary_json    TEXT,
    error_message   TEXT
);
"""

ORDERS_SQL = """
CREATE TABLE IF NOT EXISTS orders (
    id                  TEXT PRIMARY KEY,
    plan_id             TEXT NOT NULL,
    run_id              TEXT NOT NULL
                        REFERENCES execution_history(run_id) ON DELETE CASCADE,
    market_token_id     TEXT NOT NULL,
    outcome             TEXT NOT NULL CHECK (outcome IN ('YES', 'NO')),
    side                TEXT NOT NULL CHECK (side IN ('BUY', 'SELL')),
    order_type          TEXT NOT NULL CHECK (order_type IN ('MARKET', 'LIMIT')),
    size                REAL NOT NULL,
    price               REAL,
    status              TEXT NOT NULL
                        CHECK (status IN ('open', 'filled', 'partially_filled',
                                          'failed')),
    mode                TEXT NOT NULL CHECK (mode IN ('paper', 'live')),
    created_at          TEXT NOT NULL,
    external_order_id   TEXT
);
"""

FILLS_SQL = """
CREATE TABLE IF NOT EXISTS fills (
    id                  TEXT PRIMARY KEY,
    order_id            TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
    quantity            REAL NOT NULL CHECK (quantity > 0),
    price               REAL NOT NULL CHECK (price > 0 AND price < 1),
    executed_at         TEXT NOT NULL,
    external_fill_id    TEXT
);
"""


def _ensure_indexes(conn: sqlite3.Connection) -> None:
    """Create query indexes if they don't exist."""
    indexes = [
        "CREATE INDEX IF NOT EXISTS idx_history_status ON execution_history(status)",
        "CREATE INDEX IF NOT EXISTS idx_history_started_at ON execution_history(started_at)",
        "CREATE INDEX IF NOT EXISTS idx_history_plan_id ON execution_history(plan_id)",
        "CREATE INDEX IF NOT EXISTS idx_orders_plan_id ON orders(plan_id)",
        "CREATE INDEX IF NOT EXISTS idx_orders_run_id ON orders(run_id)",
        "CREATE INDEX IF NOT EXISTS idx_orders_market_status ON orders(market_token_id, status)",
        "CREATE INDEX IF NOT EXISTS idx_fills_order_id ON fills(order_id)",
        "CREATE INDEX IF NOT EXISTS idx_fills_executed_at ON fills(executed_at)",
    ]
    for sql in indexes:
        conn.execute(sql)
    conn.commit()


def _connect(db_path: Path | str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open (or create) the SQLite database and ensure schema exists."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    # FK は接続ごとに有効化が必要 (CASCADE 用)
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(EXECUTION_HISTORY_SQL)
    conn.executescript(ORDERS_SQL)
    conn.executescript(FILLS_SQL)
    _ensure_indexes(conn)
    return conn
