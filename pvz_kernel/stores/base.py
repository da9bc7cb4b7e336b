"""
BaseStore -- abstract base for the entity stores.

Responsibility:
    Provides the common constructor and querier-resolution contract for
    every store.  A store never decides whether it runs inside a
    transaction: each method takes ``tx`` and asks the TransactionManager
    for the matching session, so the same statement code runs with and
    without a caller-owned transaction.

Architecture position:
    Kernel > Stores -- imperative shell over the ORM models.

Invariants enforced:
    - Stores flush inside a caller's transaction and never commit or roll
      it back; only the TransactionManager does.
    - Stores return frozen DTOs, never ORM entities.
"""

from abc import ABC
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session

from pvz_kernel.db.transaction import TransactionHandle, TransactionManager
from pvz_kernel.domain.clock import Clock, SystemClock
from pvz_kernel.domain.context import RequestContext


class BaseStore(ABC):
    """
    Abstract base class for entity stores.

    Contract:
        Subclasses wrap every storage round-trip in ``self._querier(...)``.
    """

    def __init__(self, transactions: TransactionManager, clock: Clock | None = None):
        self._transactions = transactions
        self._clock = clock or SystemClock()

    def _querier(
        self,
        ctx: RequestContext,
        tx: TransactionHandle | None,
        operation: str,
    ) -> AbstractContextManager[Session]:
        return self._transactions.querier(ctx, tx, operation=operation)
