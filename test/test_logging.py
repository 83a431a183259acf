import json
import logging

from stockledger.logging_config import JsonFormatter


def _record(msg, *args, level=logging.INFO):
    return logging.LogRecord("stockledger.ledger", level, __file__, 1, msg, args, None)


def test_json_formatter_splits_event_fields():
    line = JsonFormatter().format(_record("exit_recorded tx_id=%s qty=%s status=%s", 3, 2, "PENDING"))
    payload = json.loads(line)

    assert payload["logger"] == "stockledger.ledger"
    assert payload["event"] == "exit_recorded"
    assert payload["fields"] == {"tx_id": "3", "qty": "2", "status": "PENDING"}


def test_json_formatter_keeps_plain_messages():
    payload = json.loads(JsonFormatter().format(_record("Excel import skipped row 4: bad")))

    assert payload["message"] == "Excel import skipped row 4: bad"
    assert "event" not in payload
