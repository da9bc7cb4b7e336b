"""
ReceptionService -- the per-pickup-point reception state machine.

Responsibility:
    Opens and closes receptions and answers "which reception is active".

    State machine per pickup point::

        none --create_reception--> in_progress --close_reception--> closed

    ``closed`` is terminal.  A new reception may be opened only while no
    other reception of the pickup point is in progress.

Architecture position:
    Kernel > Services.  Uses PVZStore and ReceptionStore.

Invariants enforced:
    - At most one IN_PROGRESS reception per pickup point.  create_reception
      locks the pickup point row and re-checks for an active reception in
      the unit of work that inserts; the partial unique index rejects
      whatever still slips through.
    - A reception is closed exactly once.  The close locks the reception
      row and re-reads its status before writing.

Failure modes:
    - PVZNotFoundError when the pickup point does not exist.
    - ActiveReceptionExistsError when opening a second reception.
    - NoActiveReceptionError when closing with nothing in progress
      (LatestReceptionClosedError when the latest reception is closed).
    - ReceptionClosedError when closing a reception that is already closed.
"""

from uuid import UUID

from pvz_kernel.db.transaction import TransactionHandle, TransactionManager
from pvz_kernel.domain.clock import Clock
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import ReceptionInfo
from pvz_kernel.events import (
    EVENT_RECEPTION_CLOSED,
    EVENT_RECEPTION_CREATED,
    DomainEventSink,
)
from pvz_kernel.exceptions import ActiveReceptionExistsError
from pvz_kernel.logging_config import get_logger
from pvz_kernel.services.base import BaseService
from pvz_kernel.stores.pvz_store import PVZStore
from pvz_kernel.stores.reception_store import ReceptionStore

logger = get_logger("services.reception")


class ReceptionService(BaseService):
    """
    Opens and closes receptions.

    Non-goals:
        - Receptions are never reopened or deleted.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        pvz_store: PVZStore,
        reception_store: ReceptionStore,
        events: DomainEventSink | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(transactions, events, clock)
        self._pvzs = pvz_store
        self._receptions = reception_store

    def create_reception(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Open a new reception at ``pvz_id``.

        Postconditions:
            - The returned reception is IN_PROGRESS and is the only
              IN_PROGRESS reception of the pickup point.

        Raises:
            PVZNotFoundError: If the pickup point does not exist.
            ActiveReceptionExistsError: If a reception is already in
                progress, including one opened concurrently.
        """
        # Pickup points are immutable once registered, so this read may run
        # outside the unit of work.
        self._pvzs.get_by_id(ctx, pvz_id, tx)

        def open_reception(c: RequestContext, handle: TransactionHandle) -> ReceptionInfo:
            self._pvzs.get_by_id(c, pvz_id, handle, for_update=True)
            existing = self._receptions.find_active(c, pvz_id, handle)
            if existing is not None:
                raise ActiveReceptionExistsError(str(pvz_id), str(existing.id))
            return self._receptions.create(c, pvz_id, handle)

        reception = self._transactions.run_exclusively(ctx, open_reception, tx)

        logger.info(
            "reception_created",
            extra={"pvz_id": str(pvz_id), "reception_id": str(reception.id)},
        )
        self._emit(
            EVENT_RECEPTION_CREATED,
            pvz_id=str(pvz_id),
            reception_id=str(reception.id),
        )
        return reception

    def close_reception(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Close the reception in progress at ``pvz_id``.

        Raises:
            NoActiveReceptionError: If nothing is in progress.  Raised as
                LatestReceptionClosedError, which is also a
                ReceptionClosedError, when the latest reception is closed.
            ReceptionClosedError: If a concurrent caller closed it first.
        """
        active = self._receptions.get_active(ctx, pvz_id, tx)
        return self._close(ctx, active.id, tx)

    def close_reception_by_id(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Close ``reception_id`` directly.

        Raises:
            ReceptionNotFoundError: If the reception does not exist.
            ReceptionClosedError: If it is already closed.
        """
        return self._close(ctx, reception_id, tx)

    def _close(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None,
    ) -> ReceptionInfo:
        reception = self._transactions.run_exclusively(
            ctx,
            lambda c, handle: self._receptions.close(c, reception_id, handle),
            tx,
        )

        logger.info(
            "reception_closed",
            extra={
                "pvz_id": str(reception.pvz_id),
                "reception_id": str(reception.id),
            },
        )
        self._emit(
            EVENT_RECEPTION_CLOSED,
            pvz_id=str(reception.pvz_id),
            reception_id=str(reception.id),
        )
        return reception

    def get_active_reception(self, ctx: RequestContext, pvz_id: UUID) -> ReceptionInfo:
        """
        Return the reception in progress at ``pvz_id``.

        Raises:
            PVZNotFoundError: If the pickup point does not exist.
            NoActiveReceptionError: If nothing is in progress.
        """
        self._pvzs.get_by_id(ctx, pvz_id)
        return self._receptions.get_active(ctx, pvz_id)

    def get_reception_by_id(self, ctx: RequestContext, reception_id: UUID) -> ReceptionInfo:
        return self._receptions.get_by_id(ctx, reception_id)
