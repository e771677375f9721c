"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

from feed_aggregator.config import LoggingConfig
from feed_aggregator.logging_utils import (
    JsonlFormatter,
    RedactingFilter,
    log_event,
    redact_secrets,
    setup_logging,
)


def test_jsonl_formatter_includes_extra_fields():
    record = logging.LogRecord("feed_aggregator.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.event = "source_failed"
    record.source = "bbc"

    payload = json.loads(JsonlFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["event"] == "source_failed"
    assert payload["source"] == "bbc"
    assert "msg" not in payload


def test_setup_logging_writes_jsonl_file(tmp_path):
    cfg = LoggingConfig(level="DEBUG", console=False, file=True, log_dir=str(tmp_path))
    logger = setup_logging(cfg)
    try:
        log_event(logging.getLogger("feed_aggregator.aggregator"), "Fetched", event="source_fetched", count=3)
        for handler in logger.handlers:
            handler.flush()
        lines = (tmp_path / "feed.jsonl").read_text(encoding="utf-8").splitlines()
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []

    payload = json.loads(lines[-1])
    assert payload["event"] == "source_fetched"
    assert payload["count"] == 3
    assert payload["logger"] == "feed_aggregator.aggregator"


def test_log_event_ignores_missing_logger():
    log_event(None, "nothing happens", event="noop")


def test_redacting_filter_masks_api_keys():
    record = logging.LogRecord(
        "feed_aggregator.fetch", logging.WARNING, __file__, 1,
        "GET %s failed", ("https://newsapi.org/v2/everything?q=x&apiKey=secret123",), None,
    )
    record.error = "HTTPStatusError for url https://content.guardianapis.com/search?api-key=abc&q=y"

    assert RedactingFilter().filter(record) is True
    assert "secret123" not in record.getMessage()
    assert "apiKey=[REDACTED]" in record.getMessage()
    assert record.error.endswith("api-key=[REDACTED]&q=y")
    assert redact_secrets("no secrets here") == "no secrets here"
