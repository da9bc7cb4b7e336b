"""
BaseService -- abstract base for the workflow services.

Responsibility:
    Provides the common constructor for every workflow service: the
    TransactionManager that runs its units of work, the event sink that
    receives its domain events, and the clock that stamps them.

Architecture position:
    Kernel > Services -- imperative shell.  Services compose store calls;
    they never issue SQL themselves.

Invariants enforced:
    - Mutating steps re-validate their preconditions inside the same unit
      of work that writes.  Checks made before the unit of work starts only
      produce the cheaper error early.
    - Domain events are emitted after ``run_exclusively`` returns, never from
      inside a unit of work.
"""

from abc import ABC
from typing import Any

from pvz_kernel.db.transaction import TransactionManager
from pvz_kernel.domain.clock import Clock, SystemClock
from pvz_kernel.events import DomainEvent, DomainEventSink, LoggingEventSink


class BaseService(ABC):
    """
    Abstract base class for workflow services.

    Non-goals:
        - Does NOT check caller roles; WorkflowGateway does that before
          delegating.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        events: DomainEventSink | None = None,
        clock: Clock | None = None,
    ):
        self._transactions = transactions
        self._events = events or LoggingEventSink()
        self._clock = clock or SystemClock()

    def _emit(self, name: str, **attributes: Any) -> None:
        self._events.emit(
            DomainEvent(name=name, occurred_at=self._clock.now(), attributes=attributes)
        )
