"""Tests for logging configuration and processors."""

import structlog

from app.core.logging import (
    MAX_LOG_VALUE_LENGTH,
    add_request_id,
    add_service_name,
    configure_logging,
    get_logger,
    request_id_ctx,
    truncate_long_values,
)


def test_configured_logger_emits_events(capsys):
    """A configured logger writes the event with bound bulk context."""
    configure_logging()
    logger = get_logger("test")

    with structlog.contextvars.bound_contextvars(operation="import", collection="sales"):
        logger.info("bulk.run_started", total=3)

    output = capsys.readouterr().out
    assert "bulk.run_started" in output
    assert "sales" in output


def test_request_id_processor_injects_id():
    """add_request_id should copy the context request id into the event."""
    token = request_id_ctx.set("req-42")
    try:
        event = add_request_id(None, "info", {"event": "bulk.run_started"})
    finally:
        request_id_ctx.reset(token)

    assert event["request_id"] == "req-42"


def test_request_id_processor_skips_when_unset():
    """add_request_id should leave events alone outside a request."""
    event = add_request_id(None, "info", {"event": "app.startup_started"})

    assert "request_id" not in event


def test_service_name_processor_uses_app_name():
    """add_service_name should tag events with the configured app name."""
    event = add_service_name(None, "info", {"event": "bulk.run_completed"})

    assert event["service"] == "RetailBulkIngest"


def test_truncate_long_values_shortens_strings():
    """Oversized error text is cut; short values and the event name are not."""
    long_error = "x" * (MAX_LOG_VALUE_LENGTH + 20)
    event = truncate_long_values(
        None,
        "error",
        {"event": "e" * (MAX_LOG_VALUE_LENGTH + 1), "error": long_error, "index": 3, "ok": "short"},
    )

    assert event["error"].startswith("x" * MAX_LOG_VALUE_LENGTH)
    assert event["error"].endswith("[20 chars truncated]")
    assert len(event["event"]) == MAX_LOG_VALUE_LENGTH + 1
    assert event["index"] == 3
    assert event["ok"] == "short"
