"""
Module: pvz_kernel.db.transaction
Responsibility: The transactional execution context.  Gives workflow services
    one primitive -- ``run_exclusively`` -- that executes a unit of work inside
    a single transaction, starting one when the caller has none and joining
    the caller's transaction when units of work nest.  Also resolves "the
    querier for this call" for the entity stores.
Architecture position: Kernel > DB.  May import from db/engine.py,
    domain/context.py, exceptions.py and logging_config.py.  Services and
    stores depend on this module; it never imports them.

Invariants enforced:
    - Explicit handle: the active transaction is a ``TransactionHandle``
      passed as the ``tx`` argument next to the ``RequestContext``.  Nothing
      is looked up from ambient state.
    - Only the outermost ``run_exclusively`` owns the boundary.  A nested call
      that receives an active handle runs the unit of work on it and neither
      commits nor rolls back.
    - Any exception escaping the unit of work (BaseException included) rolls
      the transaction back and is re-raised unchanged, so callers match on
      the original domain error type.
    - Cancellation is observed before the transaction begins, before every
      store round-trip (``querier``) and again before commit; a cancelled
      request never commits.
    - SQLAlchemy failures are wrapped in ``StorageError`` with the original
      chained; domain errors pass through untouched.  Nothing is retried.

Failure modes:
    - RequestCancelledError when the context is cancelled or past deadline.
    - StorageError on connectivity, constraint or commit failures that no
      store translated into a domain error.
    - RuntimeError when a handle is used after its unit of work finished.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pvz_kernel.domain.context import RequestContext
from pvz_kernel.exceptions import PVZKernelError, StorageError
from pvz_kernel.logging_config import get_logger

logger = get_logger("db.transaction")

T = TypeVar("T")


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors raised in the block into StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        detail = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        logger.error(
            "storage_operation_failed",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        raise StorageError(operation, detail) from exc


def _rollback_quietly(session: Session) -> None:
    """Roll back; a failing rollback is logged so the caller's error survives."""
    try:
        session.rollback()
    except SQLAlchemyError:
        logger.error("transaction_rollback_failed", exc_info=True)


class TransactionHandle:
    """
    A transaction bound to one pooled session.

    Created only by ``TransactionManager.run_exclusively``; valid until the
    unit of work it was created for returns or raises.
    """

    def __init__(self, session: Session):
        self._session = session
        self._active = True

    @property
    def session(self) -> Session:
        if not self._active:
            raise RuntimeError(
                "TransactionHandle used after its unit of work finished"
            )
        return self._session

    @property
    def is_active(self) -> bool:
        return self._active

    def invalidate(self) -> None:
        self._active = False

    def __repr__(self) -> str:
        state = "active" if self._active else "finished"
        return f"<TransactionHandle {state}>"


class TransactionManager:
    """
    Runs units of work exclusively and hands stores their querier.

    Contract:
        ``unit_of_work(ctx, handle)`` performs its reads and writes through
        stores, passing ``handle`` as ``tx``.  Its return value is returned
        from ``run_exclusively`` after commit.

    Non-goals:
        - No retries.  Transient failures surface to the caller.
        - No savepoints.  Nested calls share the outer transaction wholesale.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def run_exclusively(
        self,
        ctx: RequestContext,
        unit_of_work: Callable[[RequestContext, TransactionHandle], T],
        tx: TransactionHandle | None = None,
    ) -> T:
        """
        Execute ``unit_of_work`` inside one transaction.

        Args:
            ctx: Request context (cancellation is honoured).
            unit_of_work: Callable receiving ``(ctx, handle)``.
            tx: The caller's active handle, if it already has a transaction.

        Returns:
            Whatever ``unit_of_work`` returns.

        Raises:
            Whatever ``unit_of_work`` raises, unchanged, after rollback.
            RequestCancelledError if cancelled before begin or commit.
            StorageError if the commit itself fails.
        """
        if tx is not None and tx.is_active:
            logger.debug("transaction_joined")
            return unit_of_work(ctx, tx)

        ctx.raise_if_cancelled()

        session = self._session_factory()
        handle = TransactionHandle(session)
        logger.debug("transaction_started")
        try:
            result = unit_of_work(ctx, handle)
            ctx.raise_if_cancelled()
            with storage_errors("commit"):
                session.commit()
        except BaseException as exc:
            _rollback_quietly(session)
            if isinstance(exc, PVZKernelError) and exc.is_client_error:
                logger.info(
                    "transaction_rolled_back",
                    extra={"error_code": exc.code, "error_kind": exc.kind},
                )
            else:
                logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            handle.invalidate()
            session.close()

        logger.debug("transaction_committed")
        return result

    @contextmanager
    def querier(
        self,
        ctx: RequestContext,
        tx: TransactionHandle | None = None,
        operation: str = "query",
    ) -> Iterator[Session]:
        """
        Yield the session a store should issue statements through.

        With an active ``tx`` this is the transaction's session and nothing is
        committed here.  Without one, a pooled session is opened for the
        block and committed on success (autocommit semantics), rolled back
        on error.
        """
        ctx.raise_if_cancelled()

        if tx is not None:
            session = tx.session  # RuntimeError on a finished handle
            with storage_errors(operation):
                yield session
            return

        session = self._session_factory()
        try:
            with storage_errors(operation):
                yield session
                session.commit()
        except BaseException:
            _rollback_quietly(session)
            raise
        finally:
            session.close()
