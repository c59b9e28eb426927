"""SQLite store for orders, fills and execution history.

Every public method is one unit of work: open connection, run statements,
commit (or roll back), close. Nothing spans more than one order+fill pair
or one history-row write.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from src.execution.errors import DuplicatePlanError, PersistenceError
from src.execution.models import RunStatus
from src.store.models import FillRecord, HistoryRecord, OrderRecord, PositionRow
from src.store.schema import DEFAULT_DB_PATH, _connect

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Statement helpers (caller owns the transaction)
# ---------------------------------------------------------------------------


def _insert_order(conn: sqlite3.Connection, data: dict[str, Any]) -> OrderRecord:
    order = OrderRecord(
        id=data.get("id") or str(uuid.uuid4()),
        plan_id=data["plan_id"],
        run_id=data.get("run_id") or data["plan_id"],
        market_token_id=data["market_token_id"],
        outcome=str(data["outcome"]),
        side=str(data["side"]),
        order_type=str(data["order_type"]),
        size=float(data["size"]),
        price=float(data["price"]) if data.get("price") is not None else None,
        status=str(data.get("status", "open")),
        mode=str(data.get("mode", "paper")),
        created_at=data.get("created_at") or _now(),
        external_order_id=data.get("external_order_id"),
    )
    conn.execute(
        """INSERT INTO orders
           (id, plan_id, run_id, market_token_id, outcome, side, order_type,
            size, price, status, mode, created_at, external_order_id)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            order.id,
            order.plan_id,
            order.run_id,
            order.market_token_id,
            order.outcome,
            order.side,
            order.order_type,
            order.size,
            order.price,
            order.status,
            order.mode,
            order.created_at,
            order.external_order_id,
        ),
    )
    return order


def _insert_fill(conn: sqlite3.Connection, order_id: str, data: dict[str, Any]) -> FillRecord:
    fill = FillRecord(
        id=data.get("id") or str(uuid.uuid4()),
        order_id=order_id,
        quantity=float(data["quantity"]),
        price=float(data["price"]),
        executed_at=data.get("executed_at") or _now(),
        external_fill_id=data.get("external_fill_id"),
    )
    conn.execute(
        """INSERT INTO fills (id, order_id, quantity, price, executed_at, external_fill_id)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (fill.id, fill.order_id, fill.quantity, fill.price, fill.executed_at, fill.external_fill_id),
    )
    return fill


def _set_order_status(conn: sqlite3.Connection, order_id: str, status: str) -> None:
    conn.execute("UPDATE orders SET status = ? WHERE id = ?", (status, order_id))


class TradeStore:
    """Transactional persistence for orders, fills and execution history."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def _tx(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = _connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(operation, e) from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("%s rolled back: %s", operation, e)
            raise PersistenceError(operation, e) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    # -- orders / fills ----------------------------------------------------

    def create_order(self, data: dict[str, Any]) -> OrderRecord:
        """Insert a single order row (no fill)."""
        with self._tx("create_order") as conn:
            order = _insert_order(conn, data)
        logger.info("Order %s created (plan=%s status=%s)", order.id, order.plan_id, order.status)
        return order

    def create_fill(self, order_id: str, data: dict[str, Any]) -> FillRecord:
        """Insert a single fill row for an existing order."""
        with self._tx("create_fill") as conn:
            fill = _insert_fill(conn, order_id, data)
        logger.info("Fill %s created for order %s", fill.id, order_id)
        return fill

    def execute_trade_transaction(
        self,
        order_data: dict[str, Any],
        fill_data: dict[str, Any],
    ) -> tuple[OrderRecord, FillRecord]:
        """Insert order (open) + fill, then mark the order filled. All or nothing."""
        with self._tx("execute_trade_transaction") as conn:
            order = _insert_order(conn, {**order_data, "status": "open"})
            fill = _insert_fill(conn, order.id, fill_data)
            _set_order_status(conn, order.id, "filled")
            order.status = "filled"
        logger.info("Trade transaction committed: order %s fill %s", order.id, fill.id)
        return order, fill

    def update_order_status(self, order_id: str, status: str) -> None:
        with self._tx("update_order_status") as conn:
            _set_order_status(conn, order_id, status)

    def get_order(self, order_id: str) -> OrderRecord | None:
        with self._tx("get_order") as conn:
            row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
        return OrderRecord(**dict(row)) if row else None

    def get_orders_by_plan(self, plan_id: str, run_id: str | None = None) -> list[OrderRecord]:
        """Orders attributed to a plan, optionally limited to one run."""
        with self._tx("get_orders_by_plan") as conn:
            if run_id is None:
                rows = conn.execute(
                    "SELECT * FROM orders WHERE plan_id = ? ORDER BY created_at, rowid",
                    (plan_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT * FROM orders WHERE plan_id = ? AND run_id = ?
                       ORDER BY created_at, rowid""",
                    (plan_id, run_id),
                ).fetchall()
        return [OrderRecord(**dict(r)) for r in rows]

    def get_fills_by_order(self, order_id: str) -> list[FillRecord]:
        with self._tx("get_fills_by_order") as conn:
            rows = conn.execute(
                "SELECT * FROM fills WHERE order_id = ? ORDER BY executed_at, rowid",
                (order_id,),
            ).fetchall()
        return [FillRecord(**dict(r)) for r in rows]

    def get_position_rows(self, market_token_id: str, outcome: str, mode: str) -> list[PositionRow]:
        """All committed fills for token+outcome+mode, joined to their order side."""
        with self._tx("get_position_rows") as conn:
            rows = conn.execute(
                """SELECT o.side, f.quantity, f.price
                   FROM fills f
                   JOIN orders o ON o.id = f.order_id
                   WHERE o.market_token_id = ? AND o.outcome = ? AND o.mode = ?
                   ORDER BY f.executed_at, f.rowid""",
                (market_token_id, str(outcome), str(mode)),
            ).fetchall()
        return [PositionRow(side=r["side"], quantity=r["quantity"], price=r["price"]) for r in rows]

    def list_position_keys(self, mode: str) -> list[tuple[str, str]]:
        """Distinct (market_token_id, outcome) pairs that have at least one fill."""
        with self._tx("list_position_keys") as conn:
            rows = conn.execute(
                """SELECT DISTINCT o.market_token_id, o.outcome
                   FROM fills f JOIN orders o ON o.id = f.order_id
                   WHERE o.mode = ?
                   ORDER BY o.market_token_id, o.outcome""",
                (str(mode),),
            ).fetchall()
        return [(r[0], r[1]) for r in rows]

    # -- execution history -------------------------------------------------

    def plan_exists(self, run_id: str) -> bool:
        with self._tx("plan_exists") as conn:
            row = conn.execute(
                "SELECT 1 FROM execution_history WHERE run_id = ? LIMIT 1", (run_id,)
            ).fetchone()
        return row is not None

    def create_execution_history(
        self,
        *,
        run_id: str,
        plan_id: str,
        plan_payload: dict[str, Any],
        started_at: str | None = None,
    ) -> HistoryRecord:
        """Insert a 'running' history row. A PK collision means a duplicate plan."""
        record = HistoryRecord(
            run_id=run_id,
            plan_id=plan_id,
            plan_json=json.dumps(plan_payload, ensure_ascii=False),
            status=str(RunStatus.RUNNING),
            started_at=started_at or _now(),
            completed_at=None,
            summary_json=None,
            error_message=None,
        )
        try:
            with self._tx("create_execution_history") as conn:
                conn.execute(
                    """INSERT INTO execution_history
                       (run_id, plan_id, plan_json, status, started_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (record.run_id, record.plan_id, record.plan_json, record.status, record.started_at),
                )
        except PersistenceError as e:
            # 別プロセスが同じ plan_id を先に INSERT した場合
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise DuplicatePlanError(run_id) from e.__cause__
            raise
        logger.info("Execution history %s created (running)", run_id)
        return record

    def complete_execution_history(self, run_id: str, summary: dict[str, Any]) -> None:
        with self._tx("complete_execution_history") as conn:
            conn.execute(
                """UPDATE execution_history
                   SET status = ?, summary_json = ?, error_message = NULL, completed_at = ?
                   WHERE run_id = ?""",
                (str(RunStatus.COMPLETED), json.dumps(summary, ensure_ascii=False), _now(), run_id),
            )
        logger.info("Execution history %s completed", run_id)

    def fail_execution_history(self, run_id: str, error_message: str) -> None:
        with self._tx("fail_execution_history") as conn:
            conn.execute(
                """UPDATE execution_history
                   SET status = ?, error_message = ?, completed_at = ?
                   WHERE run_id = ?""",
                (str(RunStatus.FAILED), error_message, _now(), run_id),
            )
        logger.warning("Execution history %s marked failed: %s", run_id, error_message)

    def get_execution_history(self, run_id: str) -> HistoryRecord | None:
        with self._tx("get_execution_history") as conn:
            row = conn.execute(
                "SELECT * FROM execution_history WHERE run_id = ?", (run_id,)
            ).fetchone()
        return HistoryRecord(**dict(row)) if row else None

    def get_runs_for_plan(self, plan_id: str) -> list[HistoryRecord]:
        """Original run plus any re-executions, oldest first."""
        with self._tx("get_runs_for_plan") as conn:
            rows = conn.execute(
                "SELECT * FROM execution_history WHERE plan_id = ? ORDER BY started_at, rowid",
                (plan_id,),
            ).fetchall()
        return [HistoryRecord(**dict(r)) for r in rows]

    def delete_execution_history(self, run_id: str) -> None:
        """Manual cleanup only; cascades to the run's orders and fills."""
        with self._tx("delete_execution_history") as conn:
            conn.execute("DELETE FROM execution_history WHERE run_id = ?", (run_id,))
        logger.warning("Execution history %s deleted (cascade)", run_id)
