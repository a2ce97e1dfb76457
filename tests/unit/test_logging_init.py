from __future__ import annotations

import logging

from classroom_batch.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    enable_debug,
    get_logger,
    kind_logger,
    log_summary,
    setup_logging,
)


def test_setup_is_idempotent():
    first = setup_logging()
    assert first.name == LOGGER_NAME
    assert setup_logging() is first
    assert get_logger() is first
    assert len(first.handlers) == 1
    assert first.propagate is False


def test_labels(capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logger.error("broken")
    log_summary("kind=student rows=1 registered=1 failed=0 elapsed_sec=0 throughput_rps=0")
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "INFO hello",
        "WARN careful",
        "ERROR broken",
        "SUMMARY kind=student rows=1 registered=1 failed=0 elapsed_sec=0 throughput_rps=0",
    ]
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"


def test_module_loggers_propagate_to_app_logger(capsys):
    setup_logging()
    logging.getLogger("classroom_batch.services.ingestion").warning("row 2 rejected")
    assert capsys.readouterr().out == "WARN row 2 rejected\n"


def test_debug_hidden_until_enabled(capsys):
    logger = setup_logging()
    logger.debug("quiet")
    assert capsys.readouterr().out == ""
    enable_debug()
    logger.debug("loud")
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG loud" in out


def test_exception_traceback_included(capsys):
    logger = setup_logging()
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("unexpected failure")
    out = capsys.readouterr().out
    assert out.startswith("ERROR unexpected failure")
    assert "ValueError: boom" in out


def test_kind_logger_prefixes_kind(capsys):
    setup_logging()
    log = kind_logger("classroom_batch.services.ingestion", "score")
    log.warning("row 3 NOT_FOUND: Subject not found: X")
    log.info("empty input accepted (scores.csv)")
    assert capsys.readouterr().out.splitlines() == [
        "WARN score: row 3 NOT_FOUND: Subject not found: X",
        "INFO score: empty input accepted (scores.csv)",
    ]
