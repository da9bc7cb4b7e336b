"""
PVZStore -- persistence for pickup points.

Responsibility:
    Inserts pickup points, reads them by id (optionally locking the row so a
    caller can serialize per-pickup-point workflow steps), and pages through
    them for listings.

Invariants enforced:
    - registered_at comes from the injected clock at INSERT time.
    - Listing order is registered_at DESC, id as tiebreaker, so pages are
      stable.
"""

from uuid import UUID

from sqlalchemy import select

from pvz_kernel.db.transaction import TransactionHandle
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import PVZInfo, PVZListQuery
from pvz_kernel.domain.values import City
from pvz_kernel.exceptions import PVZNotFoundError
from pvz_kernel.logging_config import get_logger
from pvz_kernel.models.pickup_point import PickupPoint
from pvz_kernel.models.reception import Reception
from pvz_kernel.stores.base import BaseStore

logger = get_logger("stores.pvz")


class PVZStore(BaseStore):
    """Reads and writes ``pickup_points`` rows."""

    def create(
        self,
        ctx: RequestContext,
        city: City,
        tx: TransactionHandle | None = None,
    ) -> PVZInfo:
        row = PickupPoint(city=city.value, registered_at=self._clock.now())
        with self._querier(ctx, tx, "pvz.create") as session:
            session.add(row)
            session.flush()
            info = PVZInfo.from_model(row)

        logger.debug("pvz_row_inserted", extra={"pvz_id": str(info.id)})
        return info

    def get_by_id(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
        for_update: bool = False,
    ) -> PVZInfo:
        """
        Return the pickup point ``pvz_id``.

        With ``for_update`` the row stays locked until ``tx`` ends
        (PostgreSQL); this serializes reception creation per pickup point.

        Raises:
            PVZNotFoundError: If no such pickup point exists.
        """
        stmt = select(PickupPoint).where(PickupPoint.id == pvz_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        with self._querier(ctx, tx, "pvz.get_by_id") as session:
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise PVZNotFoundError(str(pvz_id))
            return PVZInfo.from_model(row)

    def list_page(
        self,
        ctx: RequestContext,
        query: PVZListQuery,
        tx: TransactionHandle | None = None,
    ) -> list[PVZInfo]:
        """
        Return one page of pickup points matching ``query``.

        ``query`` must already be normalized.  The date window filter keeps
        pickup points having at least one reception opened inside it.
        """
        stmt = select(PickupPoint)

        if query.city is not None:
            stmt = stmt.where(PickupPoint.city == query.city.value)

        if query.has_date_filter:
            window = [Reception.pvz_id == PickupPoint.id]
            if query.start_date is not None:
                window.append(Reception.opened_at >= query.start_date)
            if query.end_date is not None:
                window.append(Reception.opened_at <= query.end_date)
            stmt = stmt.where(select(Reception.id).where(*window).exists())

        stmt = (
            stmt.order_by(PickupPoint.registered_at.desc(), PickupPoint.id)
            .limit(query.limit)
            .offset(query.offset)
        )

        with self._querier(ctx, tx, "pvz.list_page") as session:
            rows = session.execute(stmt).scalars().all()
            return [PVZInfo.from_model(row) for row in rows]
