"""Tests for structured logging and request_id propagation."""

import json
import logging

from trendly.core.logging import JsonFormatter, PrettyFormatter, latency_bucket_ms, log_event, request_id_ctx_var


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="trendly"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_json_formatter_includes_context_fields():
    record = logging.LogRecord("trendly.usage", logging.INFO, __file__, 1, "reset done", None, None)
    record.request_id = "rid-9"
    record.user_id = "user_1"
    record.event_type = "cron.reset_usage"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "reset done"
    assert payload["logger"] == "trendly.usage"
    assert payload["request_id"] == "rid-9"
    assert payload["user_id"] == "user_1"
    assert payload["event_type"] == "cron.reset_usage"
    assert payload["timestamp"].endswith("Z")


def test_pretty_formatter_shows_request_id():
    record = logging.LogRecord("trendly", logging.WARNING, __file__, 1, "hello", None, None)
    record.request_id = "rid-2"
    line = PrettyFormatter().format(record)
    assert "WARNING [trendly] [rid=rid-2] hello" in line


def test_log_event_binds_context_request_id(caplog):
    token = request_id_ctx_var.set("rid-ctx")
    try:
        with caplog.at_level(logging.INFO, logger="trendly"):
            log_event("info", "billing.webhook.processed", event_type="invoice.payment_failed",
                      extra={"note": "x" * 600})
    finally:
        request_id_ctx_var.reset(token)

    record = [r for r in caplog.records if r.getMessage() == "billing.webhook.processed"][0]
    assert record.request_id == "rid-ctx"
    assert record.event_type == "invoice.payment_failed"
    assert record.note.endswith("...<truncated>")


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(5000) == ">=1000ms"
