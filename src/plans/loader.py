"""Load trade-plan JSON from a file path or stdin."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

logger = logging.getLogger(__name__)

USAGE_EXAMPLES = (
    "Examples:\n"
    "  python scripts/execute_trade_plan.py ./plan.json\n"
    "  cat plan.json | python scripts/execute_trade_plan.py\n"
)


class PlanInputError(Exception):
    """Plan input missing or not valid JSON."""


def load_input(file_path: Path | str | None = None, stdin: TextIO | None = None) -> str:
    """Return raw plan text from file_path, or from stdin when it is piped."""
    stream = stdin if stdin is not None else sys.stdin
    if file_path:
        path = Path(file_path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PlanInputError(f"Cannot read plan file {path}: {e}") from e
        logger.debug("Loaded plan file %s (%d bytes)", path, len(content))
        return content.strip()

    if stream.isatty():
        raise PlanInputError(
            "No input provided. Please provide a file path or pipe JSON to stdin.\n\n"
            + USAGE_EXAMPLES
        )

    content = stream.read().strip()
    if not content:
        raise PlanInputError("No data received from stdin")
    logger.debug("Loaded plan from stdin (%d bytes)", len(content))
    return content


def parse_json_input(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise PlanInputError(
            f"Invalid JSON format: {e}\n\nPlease ensure your input is valid JSON."
        ) from e
