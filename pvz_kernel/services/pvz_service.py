"""
PVZService -- pickup point registration and the nested listing.

Responsibility:
    Registers pickup points in one of the supported cities and produces the
    paginated "pickup points with their receptions and products" listing.

Architecture position:
    Kernel > Services.  Uses PVZStore, ReceptionStore and ProductStore.

Invariants enforced:
    - City is validated before anything touches storage.
    - registered_at is assigned by the store from the injected clock.
    - Listing pagination is normalized (see PVZListQuery.normalized) and the
      whole listing is read inside one unit of work, so a pickup point,
      its receptions and their products come from the same snapshot.

Failure modes:
    - CityEmptyError / InvalidCityError on a bad city (creation or filter).
    - PVZNotFoundError from get_pvz_by_id.
"""

from dataclasses import replace
from uuid import UUID

from pvz_kernel.db.transaction import TransactionHandle, TransactionManager
from pvz_kernel.domain.clock import Clock
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import (
    PVZInfo,
    PVZListQuery,
    PVZWithReceptions,
    ReceptionWithProducts,
)
from pvz_kernel.domain.values import City, parse_city
from pvz_kernel.events import EVENT_PVZ_CREATED, DomainEventSink
from pvz_kernel.logging_config import get_logger
from pvz_kernel.services.base import BaseService
from pvz_kernel.stores.product_store import ProductStore
from pvz_kernel.stores.pvz_store import PVZStore
from pvz_kernel.stores.reception_store import ReceptionStore

logger = get_logger("services.pvz")


class PVZService(BaseService):
    """
    Registration and listing of pickup points.

    Non-goals:
        - Pickup points are never updated or deleted.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        pvz_store: PVZStore,
        reception_store: ReceptionStore,
        product_store: ProductStore,
        events: DomainEventSink | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(transactions, events, clock)
        self._pvzs = pvz_store
        self._receptions = reception_store
        self._products = product_store

    def create_pvz(
        self,
        ctx: RequestContext,
        city: "str | City | None",
        tx: TransactionHandle | None = None,
    ) -> PVZInfo:
        """
        Register a pickup point in ``city``.

        Russian city names are accepted and normalized.

        Raises:
            CityEmptyError: If ``city`` is blank.
            InvalidCityError: If ``city`` is not a supported city.
        """
        parsed = parse_city(city)

        pvz = self._transactions.run_exclusively(
            ctx,
            lambda c, handle: self._pvzs.create(c, parsed, handle),
            tx,
        )

        logger.info(
            "pvz_created",
            extra={"pvz_id": str(pvz.id), "city": pvz.city.value},
        )
        self._emit(EVENT_PVZ_CREATED, pvz_id=str(pvz.id), city=pvz.city.value)
        return pvz

    def get_pvz_by_id(self, ctx: RequestContext, pvz_id: UUID) -> PVZInfo:
        return self._pvzs.get_by_id(ctx, pvz_id)

    def list_pvzs(
        self,
        ctx: RequestContext,
        query: PVZListQuery | None = None,
    ) -> list[PVZWithReceptions]:
        """
        List pickup points with their receptions and products.

        Pickup points are ordered newest first, receptions newest first,
        products by ascending sequence number.  When the query has a date
        window, only pickup points with a reception opened inside it are
        listed, and only those receptions are attached.

        Args:
            ctx: Request context.
            query: Filters and pagination; ``None`` means the defaults.

        Returns:
            One PVZWithReceptions per pickup point on the requested page.

        Raises:
            InvalidCityError: If the city filter is not a supported city.
        """
        query = (query or PVZListQuery()).normalized()
        if query.city is not None:
            query = replace(query, city=parse_city(query.city))

        def load(c: RequestContext, handle: TransactionHandle) -> list[PVZWithReceptions]:
            pvzs = self._pvzs.list_page(c, query, handle)
            receptions_by_pvz = self._receptions.list_for_pvzs(
                c,
                [p.id for p in pvzs],
                query.start_date,
                query.end_date,
                handle,
            )
            reception_ids = [
                r.id for receptions in receptions_by_pvz.values() for r in receptions
            ]
            products_by_reception = self._products.list_for_receptions(
                c, reception_ids, handle
            )

            return [
                PVZWithReceptions(
                    pvz=pvz,
                    receptions=tuple(
                        ReceptionWithProducts(
                            reception=r,
                            products=tuple(products_by_reception[r.id]),
                        )
                        for r in receptions_by_pvz[pvz.id]
                    ),
                )
                for pvz in pvzs
            ]

        items = self._transactions.run_exclusively(ctx, load)

        logger.debug(
            "pvz_listed",
            extra={"page": query.page, "limit": query.limit, "count": len(items)},
        )
        return items
