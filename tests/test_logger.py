"""Tests for logging setup."""

import json
import logging
from pathlib import Path

import pytest

from notifyrouter.utils.logger import (
    ColorFormatter,
    JsonFormatter,
    get_logger,
    log_exception,
    setup_logging,
)


def make_record(msg: str = "hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("notifyrouter.test", level, __file__, 10, msg, None, None)


class TestFormatters:
    """Tests for the custom formatters."""

    def test_json_formatter(self) -> None:
        data = json.loads(JsonFormatter().format(make_record()))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "notifyrouter.test"

    def test_json_formatter_includes_extra(self) -> None:
        record = make_record()
        record.extra = {"path": "/tmp/x"}

        assert json.loads(JsonFormatter().format(record))["path"] == "/tmp/x"

    def test_color_formatter_leaves_record_untouched(self) -> None:
        record = make_record(level=logging.ERROR)
        output = ColorFormatter(fmt="%(levelname)s %(message)s").format(record)

        assert "\033[31m" in output
        assert record.levelname == "ERROR"


class TestSetupLogging:
    """Tests for setup_logging and helpers."""

    def test_file_handler(self, tmp_path: Path, restore_root_logger) -> None:
        log_file = tmp_path / "logs" / "watch.log"

        setup_logging(log_level="DEBUG", log_file=str(log_file), log_format="json")
        logging.getLogger("notifyrouter.test").info("written to file")
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert any(json.loads(line)["message"] == "written to file" for line in lines)
        assert restore_root_logger.level == logging.DEBUG

    def test_watchdog_logger_is_quieted(self, restore_root_logger) -> None:
        setup_logging(log_level="DEBUG")
        assert logging.getLogger("watchdog").level == logging.WARNING

    def test_get_logger_with_extra(self, caplog) -> None:
        logger = get_logger("notifyrouter.test", extra={"component": "cli"})
        with caplog.at_level(logging.INFO):
            logger.info("tagged")
        assert caplog.records[-1].extra == {"component": "cli"}

    def test_log_exception(self, caplog) -> None:
        logger = logging.getLogger("notifyrouter.test")
        try:
            raise RuntimeError("kaput")
        except RuntimeError as e:
            log_exception(logger, e, "Something failed")

        record = caplog.records[-1]
        assert record.getMessage() == "Something failed"
        assert record.exc_info[0] is RuntimeError
