"""Tests for JSON log lines and contextual loggers."""

import json
import logging

from bidwatch.core.logging import JSONFormatter, get_contextual_logger, setup_logging


def test_contextual_logger_stamps_records(caplog):
    log = get_contextual_logger("portals.comprasnet", portal="comprasnet")

    with caplog.at_level(logging.INFO, logger="bidwatch.portals.comprasnet"):
        log.with_context(run_id="abc123").info("Collected", extra={"notice_number": "001/2024"})

    (record,) = caplog.records
    assert record.name == "bidwatch.portals.comprasnet"
    assert (record.portal, record.run_id, record.notice_number) == ("comprasnet", "abc123", "001/2024")


def test_with_context_does_not_change_the_original():
    log = get_contextual_logger("orchestrator", portal="comprasnet", run_id=None)

    child = log.with_context(run_id="r1")

    assert log.context == {"portal": "comprasnet"}
    assert child.context == {"portal": "comprasnet", "run_id": "r1"}


def test_json_formatter_includes_context_fields():
    record = logging.LogRecord("bidwatch.fetch", logging.WARNING, __file__, 1, "HTTP %s", (503,), None)
    record.portal = "comprasnet"
    record.url = "https://comprasnet.gov.br/x"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "HTTP 503"
    assert entry["level"] == "WARNING"
    assert entry["portal"] == "comprasnet"
    assert entry["url"] == "https://comprasnet.gov.br/x"
    assert "run_id" not in entry


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "logs" / "bidwatch.log"
    logger = setup_logging(level="WARNING", log_file=log_file, rich_console=False)
    try:
        get_contextual_logger("reconcile", portal="comprasnet").debug("kept in the file")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["message"] == "kept in the file"
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
