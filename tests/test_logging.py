"""Tests for the structured logging system (rental_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "rental_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("dues_generated", extra={"dues_created": 12, "status": "ok"})

        record = _parse_log(stream)
        assert record["dues_created"] == 12
        assert record["status"] == "ok"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        contract_id = uuid4()
        LogContext.set(correlation_id="abc-123", contract_id=contract_id)
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["contract_id"] == str(contract_id)

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "typed_values",
            extra={
                "flat": uid,
                "due_date": date(2024, 2, 29),
                "amount": Decimal("1000.50"),
                "contract_status": ContractStatus.EXPIRED,
            },
        )

        record = _parse_log(stream)
        assert record["flat"] == str(uid)
        assert record["due_date"] == "2024-02-29"
        assert record["amount"] == "1000.50"
        assert record["contract_status"] == "expired"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code attribute and structured fields."""
        from rental_kernel.exceptions import InvalidStateTransitionError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidStateTransitionError("expired", "active", contract_id="c-1")
        except InvalidStateTransitionError:
            get_logger("test").error("transition_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_STATE_TRANSITION"
        assert record["exc_current_status"] == "expired"
        assert record["exc_requested_status"] == "active"
        assert record["exc_contract_id"] == "c-1"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "contract_id" not in record

    def test_debug_suppressed_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", event_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "event_id": "y"}

    def test_none_values_ignored(self):
        LogContext.set(correlation_id="x", flat_id=None)
        assert LogContext.get_all() == {"correlation_id": "x"}

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(tenant="someone")

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner", flat_id="f-1"):
            assert LogContext.get_all() == {"actor_id": "inner", "flat_id": "f-1"}
        assert LogContext.get_all() == {"actor_id": "outer"}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        handlers = logging.getLogger("rental_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("batch.scheduler").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "rental_kernel.batch.scheduler"
