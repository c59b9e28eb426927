"""Trade plan schema and validation.

A trade plan is the JSON document submitted by the caller:

    {
      "planId": "test-001",
      "mode": "paper",
      "trades": [
        {"marketTokenId": "2174...", "outcome": "YES", "side": "BUY",
         "orderType": "MARKET", "size": 100}
      ]
    }

Field names are camelCase on the wire (aliases) and snake_case in Python.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.connectors.polymarket import parse_market_id, validate_market_id_format
from src.execution.errors import TradeExecutionError
from src.execution.models import ExecutionMode, OrderType, Outcome, Side

logger = logging.getLogger(__name__)

_PLAN_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class PlanValidationError(TradeExecutionError):
    """Trade plan failed structural validation. `issues` holds field-level errors."""

    def __init__(self, message: str, issues: list[dict[str, str]]) -> None:
        super().__init__(message, {"validation_errors": issues})
        self.issues = issues

    def summary(self) -> str:
        lines = [f"  - {i['field']}: {i['message']}" for i in self.issues]
        return f"{self.message}\n\nValidation errors:\n" + "\n".join(lines)


class TradeIntent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    market_token_id: str = Field(alias="marketTokenId", min_length=1)
    outcome: Outcome
    side: Side
    order_type: OrderType = Field(alias="orderType")
    size: float = Field(gt=0)  # USDC collateral
    price: float | None = Field(default=None, gt=0, lt=1)  # LIMIT のみ必須
    notes: str | None = None

    @field_validator("market_token_id")
    @classmethod
    def _check_token_id(cls, v: str) -> str:
        result = validate_market_id_format(v)
        if result is not True:
            raise ValueError(result)
        return v.strip()

    @model_validator(mode="after")
    def _limit_requires_price(self) -> TradeIntent:
        if self.order_type == OrderType.LIMIT and self.price is None:
            raise ValueError("Price is required for LIMIT orders")
        return self


class TradePlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    plan_id: str = Field(alias="planId", min_length=1)
    mode: ExecutionMode
    notes: str | None = None
    trades: list[TradeIntent] = Field(min_length=1)

    @field_validator("plan_id")
    @classmethod
    def _check_plan_id(cls, v: str) -> str:
        if not _PLAN_ID_RE.match(v):
            raise ValueError(
                "Plan ID must contain only alphanumeric characters, hyphens, and underscores"
            )
        return v

    def to_payload(self) -> dict[str, Any]:
        """Wire-format dict (camelCase, no nulls) for persistence."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _issues_from_pydantic(exc: ValidationError) -> list[dict[str, str]]:
    issues = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        issues.append(
            {
                "field": loc or "root",
                "message": err.get("msg", ""),
                "code": err.get("type", "invalid"),
            }
        )
    return issues


def validate_trade_plan(payload: Any) -> TradePlan:
    """Validate a raw JSON payload and return a typed TradePlan.

    Raises:
        PlanValidationError: with one issue per failing field.
    """
    try:
        plan = TradePlan.model_validate(payload)
    except ValidationError as e:
        raise PlanValidationError("Invalid trade plan structure", _issues_from_pydantic(e)) from e

    for i, trade in enumerate(plan.trades):
        id_type, _ = parse_market_id(trade.market_token_id)
        logger.debug("trades[%d].marketTokenId parsed as %s", i, id_type)

    logger.debug("Trade plan %s validated (%d trades)", plan.plan_id, len(plan.trades))
    return plan


def safe_validate_trade_plan(
    payload: Any,
) -> tuple[TradePlan | None, PlanValidationError | None]:
    """Non-raising variant: returns (plan, None) or (None, error)."""
    try:
        return validate_trade_plan(payload), None
    except PlanValidationError as e:
        return None, e
