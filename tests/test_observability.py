"""
Structured logging tests.
"""

import io
import json
import logging

import pytest

from ordvault.hardening import CallResult, VaultErrorKind
from ordvault.observability import (
    StructuredHandler,
    VaultLayer,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    timed_operation,
)


@pytest.fixture
def captured():
    """A logger whose records land in a StringIO."""
    stream = io.StringIO()
    logger = get_logger("sample", VaultLayer.VAULT)
    handler = StructuredHandler(stream)
    logger._logger.addHandler(handler)
    logger._logger.setLevel(logging.DEBUG)
    yield logger, handler, stream
    logger._logger.removeHandler(handler)
    logger._logger.setLevel(logging.INFO)


def lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestStructuredHandler:

    def test_json_record(self, captured):
        logger, _, stream = captured
        token = set_correlation_id("corr-test")
        try:
            logger.info("Burn recorded", operation="record_burn", height=7)
        finally:
            token.var.reset(token)

        record = lines(stream)[-1]
        assert record["message"] == "Burn recorded"
        assert record["level"] == "info"
        assert record["layer"] == "vault"
        assert record["operation"] == "record_burn"
        assert record["correlation_id"] == "corr-test"
        assert record["context"] == {"height": 7}

    def test_text_record(self, captured):
        logger, handler, stream = captured
        handler.fmt = "text"
        logger.error("Claim failed", error_code="NOT_RECORDED", claim_id="abc")

        line = stream.getvalue().splitlines()[-1]
        assert "ERROR" in line
        assert "[NOT_RECORDED]" in line
        assert "claim_id=abc" in line

    def test_empty_fields_omitted(self, captured):
        logger, _, stream = captured
        logger.debug("quiet")
        record = lines(stream)[-1]
        assert "error_code" not in record
        assert "context" not in record


class TestCorrelation:

    def test_generated_once(self):
        token = set_correlation_id("")
        try:
            first = get_correlation_id()
            assert first.startswith("corr-")
            assert get_correlation_id() == first
        finally:
            token.var.reset(token)


class TestTimedOperation:

    def test_failed_result_logged_as_warning(self, captured):
        logger, _, stream = captured

        @timed_operation(logger, "claim_mint")
        def call(ok):
            return CallResult.success(1) if ok else CallResult.failure(VaultErrorKind.NOT_RECORDED)

        call(True)
        call(False)

        first, second = lines(stream)[-2:]
        assert first["level"] == "info"
        assert second["level"] == "warning"
        assert second["message"] == "Operation claim_mint failed"
        assert second["duration_ms"] >= 0

    def test_exception_propagates(self, captured):
        logger, _, stream = captured

        @timed_operation(logger, "explode")
        def call():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            call()
        assert lines(stream)[-1]["level"] == "warning"


class TestConfigureLogging:

    def test_sets_level_and_format(self):
        logger = get_logger("configured", VaultLayer.CLI)
        try:
            configure_logging(level="warning", fmt="text")
            assert logger._logger.level == logging.WARNING
            handlers = [h for h in logger._logger.handlers if isinstance(h, StructuredHandler)]
            assert handlers and all(h.fmt == "text" for h in handlers)
        finally:
            configure_logging(level="info", fmt="json")

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging(level="verbose")
