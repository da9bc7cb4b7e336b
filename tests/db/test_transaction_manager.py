"""
Unit-of-work semantics of TransactionManager.

Covers:
- commit on success, rollback on any exception (BaseException included)
- the original exception object propagates unchanged, even when rollback fails
- nested units of work join the outer transaction
- handles are unusable once their unit of work has finished
- cancellation before begin and before commit
- SQLAlchemy failures surface as StorageError
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pvz_kernel.db.transaction import TransactionHandle, TransactionManager
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.values import City
from pvz_kernel.exceptions import (
    ErrorKind,
    PVZNotFoundError,
    RequestCancelledError,
    StorageError,
)
from pvz_kernel.models import PickupPoint


class _Abort(BaseException):
    """Stands in for KeyboardInterrupt / SystemExit."""


class _LostConnectionSession(Session):
    """Rolls back, then reports the connection as gone."""

    def rollback(self) -> None:
        super().rollback()
        raise OperationalError("ROLLBACK", {}, Exception("connection lost"))


class TestRunExclusively:
    def test_commits_on_success(self, transactions, pvz_store, ctx):
        created = transactions.run_exclusively(
            ctx, lambda c, tx: pvz_store.create(c, City.MOSCOW, tx)
        )

        assert pvz_store.get_by_id(ctx, created.id).city == City.MOSCOW

    def test_returns_unit_of_work_result(self, transactions, ctx):
        assert transactions.run_exclusively(ctx, lambda c, tx: 42) == 42

    def test_rolls_back_and_reraises_same_exception(
        self, transactions, pvz_store, ctx, count_rows
    ):
        error = PVZNotFoundError("whatever")

        def work(c, tx):
            pvz_store.create(c, City.KAZAN, tx)
            raise error

        with pytest.raises(PVZNotFoundError) as excinfo:
            transactions.run_exclusively(ctx, work)

        assert excinfo.value is error
        assert count_rows(PickupPoint) == 0

    def test_rolls_back_on_base_exception(
        self, transactions, pvz_store, ctx, count_rows
    ):
        def work(c, tx):
            pvz_store.create(c, City.KAZAN, tx)
            raise _Abort()

        with pytest.raises(_Abort):
            transactions.run_exclusively(ctx, work)

        assert count_rows(PickupPoint) == 0

    def test_rollback_is_logged(self, transactions, ctx, captured_logs):
        def work(c, tx):
            raise PVZNotFoundError("x")

        with pytest.raises(PVZNotFoundError):
            transactions.run_exclusively(ctx, work)

        rollbacks = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert len(rollbacks) == 1
        assert rollbacks[0]["error_code"] == "PVZ_NOT_FOUND"

    def test_failed_rollback_keeps_original_error(self, db_engine, ctx, captured_logs):
        manager = TransactionManager(
            sessionmaker(bind=db_engine, class_=_LostConnectionSession)
        )
        error = PVZNotFoundError("gone")

        def work(c, tx):
            raise error

        with pytest.raises(PVZNotFoundError) as excinfo:
            manager.run_exclusively(ctx, work)

        assert excinfo.value is error
        failures = [
            r for r in captured_logs() if r["message"] == "transaction_rollback_failed"
        ]
        assert len(failures) == 1
        assert failures[0]["level"] == "ERROR"
        assert failures[0]["exc_type"] == "OperationalError"


class TestNesting:
    def test_nested_call_reuses_outer_handle(self, transactions, ctx):
        seen: list[TransactionHandle] = []

        def inner(c, tx):
            seen.append(tx)

        def outer(c, tx):
            seen.append(tx)
            transactions.run_exclusively(c, inner, tx)

        transactions.run_exclusively(ctx, outer)

        assert len(seen) == 2
        assert seen[0] is seen[1]

    def test_outer_failure_discards_inner_writes(
        self, transactions, pvz_store, ctx, count_rows
    ):
        def outer(c, tx):
            transactions.run_exclusively(
                c, lambda c2, tx2: pvz_store.create(c2, City.MOSCOW, tx2), tx
            )
            raise PVZNotFoundError("outer failed")

        with pytest.raises(PVZNotFoundError):
            transactions.run_exclusively(ctx, outer)

        assert count_rows(PickupPoint) == 0

    def test_inner_failure_propagates_through_outer(
        self, transactions, pvz_store, ctx, count_rows
    ):
        def inner(c, tx):
            pvz_store.create(c, City.MOSCOW, tx)
            raise PVZNotFoundError("inner failed")

        def outer(c, tx):
            pvz_store.create(c, City.KAZAN, tx)
            transactions.run_exclusively(c, inner, tx)

        with pytest.raises(PVZNotFoundError, match="inner failed"):
            transactions.run_exclusively(ctx, outer)

        assert count_rows(PickupPoint) == 0

    def test_nested_writes_commit_once_with_outer(
        self, transactions, pvz_store, ctx, count_rows
    ):
        def outer(c, tx):
            pvz_store.create(c, City.MOSCOW, tx)
            transactions.run_exclusively(
                c, lambda c2, tx2: pvz_store.create(c2, City.KAZAN, tx2), tx
            )

        transactions.run_exclusively(ctx, outer)

        assert count_rows(PickupPoint) == 2


class TestHandleLifetime:
    def test_handle_invalidated_after_commit(self, transactions, ctx):
        captured = transactions.run_exclusively(ctx, lambda c, tx: tx)

        assert not captured.is_active
        with pytest.raises(RuntimeError):
            captured.session

    def test_handle_invalidated_after_rollback(self, transactions, ctx):
        captured: list[TransactionHandle] = []

        def work(c, tx):
            captured.append(tx)
            raise PVZNotFoundError("x")

        with pytest.raises(PVZNotFoundError):
            transactions.run_exclusively(ctx, work)

        assert not captured[0].is_active

    def test_store_rejects_stale_handle(self, transactions, pvz_store, ctx):
        stale = transactions.run_exclusively(ctx, lambda c, tx: tx)

        with pytest.raises(RuntimeError):
            pvz_store.create(ctx, City.MOSCOW, stale)

    def test_stale_handle_starts_new_transaction(
        self, transactions, pvz_store, ctx, count_rows
    ):
        stale = transactions.run_exclusively(ctx, lambda c, tx: tx)

        fresh = transactions.run_exclusively(
            ctx,
            lambda c, tx: (tx, pvz_store.create(c, City.MOSCOW, tx))[0],
            stale,
        )

        assert fresh is not stale
        assert count_rows(PickupPoint) == 1


class TestCancellation:
    def test_cancelled_before_begin(self, transactions):
        ctx = RequestContext.background()
        ctx.cancel()
        calls: list[int] = []

        with pytest.raises(RequestCancelledError):
            transactions.run_exclusively(ctx, lambda c, tx: calls.append(1))

        assert calls == []

    def test_cancelled_inside_unit_of_work_rolls_back(
        self, transactions, pvz_store, count_rows, ctx
    ):
        request = RequestContext.background()

        def work(c, tx):
            pvz_store.create(c, City.MOSCOW, tx)
            c.cancel()

        with pytest.raises(RequestCancelledError) as excinfo:
            transactions.run_exclusively(request, work)

        assert excinfo.value.kind is ErrorKind.CANCELLED
        assert count_rows(PickupPoint) == 0

    def test_cancellation_observed_at_next_store_call(
        self, transactions, pvz_store, count_rows
    ):
        request = RequestContext.background()
        calls: list[str] = []

        def work(c, tx):
            pvz_store.create(c, City.MOSCOW, tx)
            c.cancel()
            calls.append("before second insert")
            pvz_store.create(c, City.KAZAN, tx)
            calls.append("after second insert")

        with pytest.raises(RequestCancelledError):
            transactions.run_exclusively(request, work)

        assert calls == ["before second insert"]
        assert count_rows(PickupPoint) == 0

    def test_expired_deadline(self, transactions, pvz_store):
        request = RequestContext.with_timeout(0)

        with pytest.raises(RequestCancelledError, match="deadline"):
            pvz_store.create(request, City.MOSCOW)


class TestStorageErrors:
    def test_sqlalchemy_error_wrapped(self, transactions, ctx):
        def work(c, tx):
            with transactions.querier(c, tx, operation="broken_query") as session:
                session.execute(text("SELECT * FROM no_such_table"))

        with pytest.raises(StorageError) as excinfo:
            transactions.run_exclusively(ctx, work)

        assert excinfo.value.operation == "broken_query"
        assert excinfo.value.kind is ErrorKind.INFRASTRUCTURE
        assert not excinfo.value.is_client_error
        assert isinstance(excinfo.value.__cause__, SQLAlchemyError)

    def test_querier_without_transaction_autocommits(
        self, transactions, pvz_store, ctx, count_rows
    ):
        pvz_store.create(ctx, City.SAINT_PETERSBURG)

        assert count_rows(PickupPoint) == 1
