"""Tests for document-scoped logging."""

from __future__ import annotations

import logging

import pytest

from researchviewer.logging import DocumentFilter, document_context, get_logger, log_exception


def _record(logger: logging.Logger, **extra: object) -> logging.LogRecord:
    record = logger.makeRecord(logger.name, logging.INFO, __file__, 1, "hello", None, None, extra=extra)
    DocumentFilter().filter(record)
    return record


def test_filter_stamps_bound_document_and_turn() -> None:
    """It should take doc and turn from the binding, keeping the outer turn when nested."""

    logger = get_logger("researchviewer.test")
    assert (_record(logger).doc, _record(logger).turn) == ("-", "-")

    with document_context(doc_id="doc-1", turn="turn-1"):
        with document_context(doc_id="doc-1"):
            record = _record(logger)
        assert record.turn == "turn-1"
    assert record.doc == "doc-1"
    assert _record(logger).doc == "-"


def test_filter_prefers_explicit_turn_and_renders_fields() -> None:
    """It should let extra override the bound turn and append the other extras as fields."""

    logger = get_logger("researchviewer.test")
    with document_context(doc_id="doc-1", turn="turn-1"):
        record = _record(logger, turn="turn-2", path="/tmp/a.pdf", flowables=3)

    assert record.turn == "turn-2"
    assert record.fields == " flowables=3 path=/tmp/a.pdf"


def test_log_exception_prefixes_clashing_keys(caplog: pytest.LogCaptureFixture) -> None:
    """It should log the traceback and keep context keys that clash with record attributes."""

    logger = get_logger("researchviewer.test")
    with caplog.at_level(logging.ERROR, logger="researchviewer.test"):
        try:
            raise OSError("disk full")
        except OSError:
            log_exception(logger, "Transcript export failed", filename="chat.md", doc_id="doc-1")

    record = caplog.records[-1]
    assert record.getMessage() == "Transcript export failed"
    assert record.exc_info is not None
    assert record.ctx_filename == "chat.md"  # type: ignore[attr-defined]
    assert record.doc_id == "doc-1"  # type: ignore[attr-defined]
