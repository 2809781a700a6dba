"""
Tests for structured logging: JSON formatter, LogContext and exception fields.
"""

import json
import logging

import pytest

from signoff_kernel.exceptions import WaitingOnOtherApprovalsError
from signoff_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record_factory):
    logger = get_logger("tests.logging")
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = _Collect()
    logger.addHandler(handler)
    try:
        record_factory(logger)
    finally:
        logger.removeHandler(handler)
    return [json.loads(StructuredFormatter().format(r)) for r in records]


class TestStructuredFormatter:
    def test_extra_fields_are_merged(self):
        [payload] = _format(lambda log: log.info("signature_approved", extra={"role": "ADVISOR"}))

        assert payload["message"] == "signature_approved"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "signoff_kernel.tests.logging"
        assert payload["role"] == "ADVISOR"

    def test_log_context_fields_included(self):
        with LogContext.bind(actor_id="a-1", document_version_id="dv-9"):
            [payload] = _format(lambda log: log.info("inside"))
        [outside] = _format(lambda log: log.info("outside"))

        assert payload["actor_id"] == "a-1"
        assert payload["document_version_id"] == "dv-9"
        assert "actor_id" not in outside

    def test_exception_code_flattened(self):
        def _raise(log):
            try:
                raise WaitingOnOtherApprovalsError("a-1", "dv-9", ["s-2"])
            except WaitingOnOtherApprovalsError:
                log.warning("gate_refused", exc_info=True)

        [payload] = _format(_raise)

        assert payload["exc_type"] == "WaitingOnOtherApprovalsError"
        assert payload["exc_code"] == "WAITING_ON_OTHER_APPROVALS"
        assert "traceback" in payload


class TestLogContext:
    def test_nested_binds_layer_and_restore(self):
        with LogContext.bind(actor_id="a-1", document_version_id="dv-9"):
            with LogContext.bind(signature_id="s-3", document_version_id=None):
                assert LogContext.get_all() == {
                    "actor_id": "a-1",
                    "document_version_id": "dv-9",
                    "signature_id": "s-3",
                }
            assert "signature_id" not in LogContext.get_all()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="lineage"):
            LogContext.bind(lineage="l-1")

    def test_context_wins_over_extra(self):
        with LogContext.bind(document_version_id="dv-9"):
            [payload] = _format(
                lambda log: log.info("approved", extra={"document_version_id": "other"})
            )
        assert payload["document_version_id"] == "dv-9"
