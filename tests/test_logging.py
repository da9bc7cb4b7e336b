"""Tests for JSON log lines and request-scoped log fields."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from pvz_kernel.domain.values import City, ReceptionStatus
from pvz_kernel.exceptions import LatestReceptionClosedError, StorageError
from pvz_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def log_lines():
    """Configure logging into a buffer and return a reader of parsed lines."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


class TestStructuredFormatter:
    def test_workflow_record_shape(self, log_lines):
        get_logger("services.reception").info(
            "reception_created", extra={"status": "in_progress"}
        )

        (record,) = log_lines()
        assert record["level"] == "INFO"
        assert record["logger"] == "pvz_kernel.services.reception"
        assert record["message"] == "reception_created"
        assert record["status"] == "in_progress"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_request_fields_stamped_on_record(self, log_lines):
        pvz_id = str(uuid4())
        with LogContext.bind(correlation_id="req-7", actor_role="employee", pvz_id=pvz_id):
            get_logger("services.product").info("product_added")

        (record,) = log_lines()
        assert record["correlation_id"] == "req-7"
        assert record["actor_role"] == "employee"
        assert record["pvz_id"] == pvz_id
        assert "reception_id" not in record

    def test_ids_timestamps_and_enums(self, log_lines):
        reception_id = uuid4()
        opened_at = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        get_logger("events").info(
            "domain_event",
            extra={
                "reception_id": reception_id,
                "occurred_at": opened_at,
                "city": City.KAZAN,
                "status": ReceptionStatus.CLOSED,
            },
        )

        (record,) = log_lines()
        assert record["reception_id"] == str(reception_id)
        assert record["occurred_at"] == "2025-03-01T09:30:00+00:00"
        assert record["city"] == "Kazan"
        assert record["status"] == ReceptionStatus.CLOSED.value

    def test_unknown_values_fall_back_to_str(self, log_lines):
        get_logger("test").info("odd_values", extra={"amount": Decimal("1.50")})

        (record,) = log_lines()
        assert record["amount"] == "1.50"

    def test_kernel_error_fields(self, log_lines):
        pvz_id, reception_id = str(uuid4()), str(uuid4())
        try:
            raise LatestReceptionClosedError(pvz_id, reception_id)
        except LatestReceptionClosedError:
            get_logger("services.product").warning("product_rejected", exc_info=True)

        (record,) = log_lines()
        assert record["exc_type"] == "LatestReceptionClosedError"
        assert record["exc_code"] == "RECEPTION_CLOSED"
        assert record["exc_kind"] == "conflict"
        assert record["exc_pvz_id"] == pvz_id
        assert record["exc_reception_id"] == reception_id
        assert "traceback" in record

    def test_foreign_error_has_no_code(self, log_lines):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = log_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record

    def test_storage_error_keeps_operation(self, log_lines):
        try:
            raise StorageError("commit", "database is locked")
        except StorageError:
            get_logger("db.transaction").error("commit_failed", exc_info=True)

        (record,) = log_lines()
        assert record["exc_kind"] == "infrastructure"
        assert record["exc_operation"] == "commit"
        assert record["exc_detail"] == "database is locked"

    def test_formatter_usable_on_foreign_logger(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        other = logging.getLogger("not_pvz")
        other.addHandler(handler)
        try:
            other.warning("plain")
        finally:
            other.removeHandler(handler)

        assert json.loads(stream.getvalue())["logger"] == "not_pvz"


class TestLogContext:
    def test_set_ignores_none(self):
        LogContext.set(correlation_id="x", pvz_id=None)
        assert LogContext.get_all() == {"correlation_id": "x"}

    def test_bind_restores_previous_values(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", reception_id="r-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "reception_id": "r-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(pvz_id="p-1"):
                raise RuntimeError("inside")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(tenant="acme")


class TestConfigureLogging:
    def test_second_call_is_noop(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("pvz_kernel").handlers) == 1

    def test_level_accepts_name(self):
        configure_logging(handler=logging.StreamHandler(StringIO()), level="warning")
        assert logging.getLogger("pvz_kernel").level == logging.WARNING

    def test_debug_dropped_at_default_level(self, log_lines):
        logger = get_logger("stores.reception")
        logger.debug("hidden")
        logger.info("shown")

        assert [r["message"] for r in log_lines()] == ["shown"]
