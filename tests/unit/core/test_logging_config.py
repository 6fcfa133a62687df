"""Unit tests for structured logging configuration."""

from __future__ import annotations

from structlog.testing import capture_logs

from core.logging_config import get_logger


def test_get_logger_drops_debug_events() -> None:
    """Debug events should be filtered while info events are kept."""
    logger = get_logger("tests.logging_config")

    with capture_logs() as captured:
        logger.debug("record_skipped", reason="unclassified")
        logger.info("migration_started", shards=1)

    assert [entry["event"] for entry in captured] == ["migration_started"]
    assert captured[0]["log_level"] == "info"
