"""
ReceptionStore -- persistence for receptions.

Responsibility:
    Inserts receptions, finds the active one for a pickup point, closes a
    reception and hands out product sequence numbers from the reception's
    high-water mark.

Architecture position:
    Kernel > Stores.  Called by ReceptionService and ProductService, always
    with the handle of the unit of work they run in when they write.

Invariants enforced:
    - At most one IN_PROGRESS reception per pickup point.  A violation of the
      partial unique index surfaces as ActiveReceptionExistsError, not as a
      storage failure.
    - close() and allocate_sequence_number() lock the reception row
      (FOR UPDATE on PostgreSQL) before reading its status.
    - Sequence numbers are taken from ``last_sequence_number`` and never
      decrease.

Failure modes:
    - ActiveReceptionExistsError on a concurrent insert for the same pickup
      point.
    - ReceptionNotFoundError / NoActiveReceptionError when nothing matches;
      LatestReceptionClosedError when the newest reception is closed.
    - ReceptionClosedError when closing or numbering a closed reception.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from pvz_kernel.db.transaction import TransactionHandle
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import ReceptionInfo
from pvz_kernel.domain.values import ReceptionStatus
from pvz_kernel.exceptions import (
    ActiveReceptionExistsError,
    LatestReceptionClosedError,
    NoActiveReceptionError,
    ReceptionClosedError,
    ReceptionNotFoundError,
)
from pvz_kernel.logging_config import get_logger
from pvz_kernel.models.reception import Reception
from pvz_kernel.stores.base import BaseStore

logger = get_logger("stores.reception")

# PostgreSQL reports the index name, SQLite the indexed column.
_ACTIVE_INDEX_MARKERS = ("uq_receptions_active_pvz", "receptions.pvz_id")


def _is_active_reception_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _ACTIVE_INDEX_MARKERS)


class ReceptionStore(BaseStore):
    """Reads and writes ``receptions`` rows."""

    def create(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Insert an IN_PROGRESS reception for ``pvz_id``.

        Raises:
            ActiveReceptionExistsError: If the database already holds an
                active reception for this pickup point.
        """
        row = Reception(
            pvz_id=pvz_id,
            opened_at=self._clock.now(),
            status=ReceptionStatus.IN_PROGRESS.value,
            last_sequence_number=0,
        )
        with self._querier(ctx, tx, "reception.create") as session:
            session.add(row)
            try:
                session.flush()
            except IntegrityError as exc:
                if not _is_active_reception_violation(exc):
                    raise
                logger.warning(
                    "active_reception_insert_rejected",
                    extra={"pvz_id": str(pvz_id)},
                )
                raise ActiveReceptionExistsError(str(pvz_id)) from exc
            return ReceptionInfo.from_model(row)

    def find_active(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo | None:
        """Return the newest IN_PROGRESS reception of ``pvz_id``, or None."""
        stmt = (
            select(Reception)
            .where(
                Reception.pvz_id == pvz_id,
                Reception.status == ReceptionStatus.IN_PROGRESS.value,
            )
            .order_by(Reception.opened_at.desc(), Reception.id.desc())
            .limit(2)
        )
        with self._querier(ctx, tx, "reception.find_active") as session:
            rows = session.execute(stmt).scalars().all()

        if not rows:
            return None
        if len(rows) > 1:
            logger.error(
                "active_reception_integrity_violation",
                extra={
                    "pvz_id": str(pvz_id),
                    "reception_ids": [str(r.id) for r in rows],
                },
            )
        return ReceptionInfo.from_model(rows[0])

    def get_active(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Return the active reception of ``pvz_id``.

        Raises:
            LatestReceptionClosedError: If the newest reception is closed.
            NoActiveReceptionError: If the pickup point has no receptions.
        """
        reception = self.find_active(ctx, pvz_id, tx)
        if reception is not None:
            return reception
        latest = self.find_latest(ctx, pvz_id, tx)
        if latest is not None and latest.is_closed:
            raise LatestReceptionClosedError(str(pvz_id), str(latest.id))
        raise NoActiveReceptionError(str(pvz_id))

    def find_latest(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo | None:
        """Return the most recently opened reception of ``pvz_id`` in any status."""
        stmt = (
            select(Reception)
            .where(Reception.pvz_id == pvz_id)
            .order_by(Reception.opened_at.desc(), Reception.id.desc())
            .limit(1)
        )
        with self._querier(ctx, tx, "reception.find_latest") as session:
            row = session.execute(stmt).scalars().first()
        return ReceptionInfo.from_model(row) if row is not None else None

    def get_by_id(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
        for_update: bool = False,
    ) -> ReceptionInfo:
        stmt = select(Reception).where(Reception.id == reception_id)
        if for_update:
            # Refresh rows the session already holds from an unlocked read
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        with self._querier(ctx, tx, "reception.get_by_id") as session:
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise ReceptionNotFoundError(str(reception_id))
            return ReceptionInfo.from_model(row)

    def close(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ReceptionInfo:
        """
        Move ``reception_id`` to CLOSED and stamp ``closed_at``.

        Raises:
            ReceptionNotFoundError: If the reception does not exist.
            ReceptionClosedError: If it is already closed.
        """
        with self._querier(ctx, tx, "reception.close") as session:
            row = self._locked(session, reception_id)
            if row.is_closed:
                raise ReceptionClosedError(str(reception_id))
            row.status = ReceptionStatus.CLOSED.value
            row.closed_at = self._clock.now()
            session.flush()
            return ReceptionInfo.from_model(row)

    def allocate_sequence_number(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> int:
        """
        Reserve the next product sequence number of ``reception_id``.

        Must run inside the unit of work that inserts the product, otherwise
        the reservation commits on its own and the number is skipped.
        """
        with self._querier(ctx, tx, "reception.allocate_sequence_number") as session:
            row = self._locked(session, reception_id)
            if row.is_closed:
                raise ReceptionClosedError(str(reception_id))
            row.last_sequence_number += 1
            session.flush()
            return row.last_sequence_number

    def list_for_pvzs(
        self,
        ctx: RequestContext,
        pvz_ids: Sequence[UUID],
        start: datetime | None = None,
        end: datetime | None = None,
        tx: TransactionHandle | None = None,
    ) -> dict[UUID, list[ReceptionInfo]]:
        """
        Receptions of every pickup point in ``pvz_ids``, newest first.

        ``start``/``end`` bound ``opened_at`` inclusively.  Pickup points with
        no matching receptions map to an empty list.
        """
        result: dict[UUID, list[ReceptionInfo]] = {pvz_id: [] for pvz_id in pvz_ids}
        if not pvz_ids:
            return result

        stmt = select(Reception).where(Reception.pvz_id.in_(list(pvz_ids)))
        if start is not None:
            stmt = stmt.where(Reception.opened_at >= start)
        if end is not None:
            stmt = stmt.where(Reception.opened_at <= end)
        stmt = stmt.order_by(Reception.opened_at.desc(), Reception.id)

        with self._querier(ctx, tx, "reception.list_for_pvzs") as session:
            for row in session.execute(stmt).scalars():
                result[row.pvz_id].append(ReceptionInfo.from_model(row))
        return result

    @staticmethod
    def _locked(session, reception_id: UUID) -> Reception:
        stmt = (
            select(Reception)
            .where(Reception.id == reception_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise ReceptionNotFoundError(str(reception_id))
        return row
