from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LEDGER_LOGGERS = ("stockledger.ledger", "stockledger.receivables")


def _split_event(message: str) -> tuple[str | None, dict[str, str]]:
    """``"exit_recorded tx_id=3 qty=2"`` -> ``("exit_recorded", {"tx_id": "3", "qty": "2"})``."""
    head, _, rest = message.partition(" ")
    if not head.isidentifier() or "=" not in rest:
        return None, {}
    fields: dict[str, str] = {}
    for token in rest.split():
        key, sep, value = token.partition("=")
        if sep:
            fields[key] = value
    return head, fields


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        event, fields = _split_event(message)
        if event:
            payload["event"] = event
            payload["fields"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _handler(path: Path, level: int) -> RotatingFileHandler:
    fh = RotatingFileHandler(path, maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    fh.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    fh.setLevel(level)
    return fh


def setup_logging(logs_dir: Path, level: int = logging.INFO) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    root.addHandler(_handler(logs_dir / "app.log", level))
    root.addHandler(_handler(logs_dir / "errors.log", logging.ERROR))

    # movements and payments also go to their own file
    ledger_handler = _handler(logs_dir / "ledger.log", logging.INFO)
    for name in LEDGER_LOGGERS:
        logger = logging.getLogger(name)
        logger.addHandler(ledger_handler)
        logger.setLevel(logging.INFO)
