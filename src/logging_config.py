"""Logging setup for the trade-plan CLI.

Console gets plain text; data/logs/trade_plans.log rotates daily and can
switch to one JSON object per line. Plan context travels on records via
LoggerAdapter(extra={"plan_id": ...}).
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import uuid
from pathlib import Path

from src.config import settings

LOG_DIR = Path(__file__).resolve().parent.parent / "data" / "logs"
LOG_FILE = "trade_plans.log"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
RETENTION_DAYS = 30


class JSONFormatter(logging.Formatter):
    """One JSON line per record, carrying session_id and plan_id."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("session_id", "plan_id"):
            payload[key] = getattr(record, key, "")
        return json.dumps(payload, ensure_ascii=False)


class _SessionFilter(logging.Filter):
    def __init__(self, session_id: str) -> None:
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = self.session_id
        return True


def setup_logging(
    structured: bool = False,
    log_dir: Path | str | None = None,
    level: str | None = None,
) -> str:
    """Install console + rotating file handlers on the root logger.

    structured (or STRUCTURED_LOGGING) switches the file to JSON lines.
    level falls back to LOG_LEVEL. Returns the session id stamped on records.
    """
    session_id = uuid.uuid4().hex[:12]
    target = Path(log_dir) if log_dir else LOG_DIR
    target.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.TimedRotatingFileHandler(
        target / LOG_FILE,
        when="midnight",
        backupCount=RETENTION_DAYS,
        encoding="utf-8",
    )
    if structured or settings.structured_logging:
        file_handler.setFormatter(JSONFormatter())
    else:
        file_handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel((level or settings.log_level or "INFO").upper())
    # 再実行時のハンドラ重複を防ぐ
    root.handlers.clear()
    stamp = _SessionFilter(session_id)
    for handler in (console, file_handler):
        handler.addFilter(stamp)
        root.addHandler(handler)

    return session_id
