"""JSON log lines for proxy requests and picker sessions."""

import asyncio
import json
import logging

from conftest import FakeGateway
from geopicker.core.logging import JsonLogFormatter
from geopicker.middlewares import request_id_ctx_var
from geopicker.resolution.picker import LocationPicker


def make_record(message, **extra_data):
    record = logging.LogRecord("geopicker.test", logging.INFO, __file__, 1, message, (), None)
    record.extra_data = extra_data
    return record


def test_formatter_merges_extra_data_and_drops_empty_fields():
    line = JsonLogFormatter().format(make_record("location.selected", session_id="abc123", lookup=None))
    payload = json.loads(line)

    assert payload["message"] == "location.selected"
    assert payload["level"] == "INFO"
    assert payload["session_id"] == "abc123"
    assert "lookup" not in payload
    assert "request_id" not in payload
    assert payload["ts"].endswith("+00:00")


def test_formatter_attaches_current_request_id():
    token = request_id_ctx_var.set("req-42")
    try:
        payload = json.loads(JsonLogFormatter().format(make_record("request.completed")))
    finally:
        request_id_ctx_var.reset(token)
    assert payload["request_id"] == "req-42"


def test_picker_events_carry_the_session_id(caplog):
    async def scenario():
        picker = LocationPicker(FakeGateway(gated=False))
        picker.open()
        session_id = picker.session_id
        picker.select_map_point(48.8566, 2.3522)
        await picker.settle()
        picker.confirm()
        return session_id

    with caplog.at_level(logging.INFO, logger="geopicker.resolution.picker"):
        session_id = asyncio.run(scenario())

    events = {record.getMessage(): record.extra_data for record in caplog.records if hasattr(record, "extra_data")}
    assert session_id
    assert events["picker.opened"]["session_id"] == session_id
    assert events["location.selected"] == {"session_id": session_id, "source": "map_click"}
    assert events["location.confirmed"]["session_id"] == session_id
