"""Tests for structured logging."""

import logging

from recallforge.core.logging import (
    LogConfig,
    ReviewLogger,
    StructuredLogger,
    configure_logging,
    get_logger,
)


class TestStructuredLogger:
    def test_format_with_fields(self) -> None:
        logger = StructuredLogger("tests.format", LogConfig(console=False))
        message = logger._format_message("Saved", item_id="n1", score=4)
        assert message == "Saved | item_id=n1 | score=4"

    def test_bind_and_unbind(self) -> None:
        logger = StructuredLogger("tests.bind", LogConfig(console=False))
        logger.bind(session="s1")
        assert logger._format_message("x") == "x | session=s1"

        logger.unbind("session")
        assert logger._format_message("x") == "x"

    def test_file_handler(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "recallforge.log"
        logger = StructuredLogger(
            "tests.file", LogConfig(level="DEBUG", console=False, file_path=log_file)
        )
        logger.info("Reviewed", item_id="n1")
        for handler in logger.logger.handlers:
            handler.flush()

        assert "Reviewed | item_id=n1" in log_file.read_text(encoding="utf-8")


class TestGetLogger:
    def test_cached_by_name(self) -> None:
        assert get_logger("tests.cached") is get_logger("tests.cached")


class TestConfigureLogging:
    def test_reconfigures_existing_loggers(self) -> None:
        logger = get_logger("tests.reconfigure")
        try:
            configure_logging(level="DEBUG", console=False)
            assert logger.logger.level == logging.DEBUG
        finally:
            configure_logging(level="WARNING", console=False)
        assert logger.logger.level == logging.WARNING


class TestReviewLogger:
    def test_transition_logged_at_debug(self, caplog) -> None:
        rlog = ReviewLogger("n1")
        rlog.logger.logger.setLevel(logging.DEBUG)
        rlog.logger.logger.propagate = True

        with caplog.at_level(logging.DEBUG, logger="recallforge.study.transitions"):
            rlog.transition("immediate_retry", 1, 2.5, 2.6, score=5)

        assert "stage=immediate_retry->1" in caplog.text
        assert "ease=2.50->2.60" in caplog.text
