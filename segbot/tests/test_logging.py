from __future__ import annotations

import json
import logging
from types import SimpleNamespace

from core.logging import JsonFormatter, PlainFormatter, log_context


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("services.ticket_service", logging.INFO, __file__, 1, "Closing %s", ("seg-bob",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_log_context_collects_ids() -> None:
    context = log_context(
        SimpleNamespace(id=42), SimpleNamespace(name="seg-bob"), SimpleNamespace(id=7), ticket_number=12
    )
    assert context == {"guild_id": 42, "channel": "seg-bob", "user_id": 7, "ticket_number": 12}
    assert log_context() == {}


def test_json_formatter_includes_context() -> None:
    payload = json.loads(JsonFormatter().format(make_record(guild_id=42, channel="seg-bob")))

    assert payload["message"] == "Closing seg-bob"
    assert payload["guild_id"] == 42
    assert payload["channel"] == "seg-bob"
    assert "user_id" not in payload


def test_plain_formatter_appends_context() -> None:
    line = PlainFormatter().format(make_record(ticket_number=5))

    assert line.endswith("Closing seg-bob | ticket_number=5")
    assert PlainFormatter().format(make_record()).endswith("Closing seg-bob")
