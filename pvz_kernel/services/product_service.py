"""
ProductService -- the append/pop-last product log of a reception.

Responsibility:
    Appends products to the reception in progress at a pickup point,
    removes the most recently appended one, and reads a reception's
    products back in order.

Architecture position:
    Kernel > Services.  Uses PVZStore, ReceptionStore and ProductStore.

Invariants enforced:
    - Products are appended to and removed from IN_PROGRESS receptions only.
      The status is checked once before the unit of work for a fast failure
      and again, on the locked reception row, inside it.
    - Sequence numbers are 1, 2, 3, ... per reception and are never handed
      out twice, even after the product holding one was deleted.
    - Only the highest-sequence product may be removed.

Failure modes:
    - ProductTypeEmptyError / InvalidProductTypeError on a bad type.
    - PVZNotFoundError, NoActiveReceptionError, ReceptionClosedError.  With
      no reception in progress and the latest one closed, the error is
      LatestReceptionClosedError, which is both of the latter.
    - NoProductsToDeleteError when deleting from an empty reception.
    - ReceptionNotFoundError from get_products_by_reception.
"""

from uuid import UUID

from pvz_kernel.db.transaction import TransactionHandle, TransactionManager
from pvz_kernel.domain.clock import Clock
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import ProductInfo, ReceptionInfo
from pvz_kernel.domain.values import ProductType, parse_product_type
from pvz_kernel.events import EVENT_PRODUCT_ADDED, EVENT_PRODUCT_DELETED, DomainEventSink
from pvz_kernel.exceptions import NoProductsToDeleteError, ReceptionClosedError
from pvz_kernel.logging_config import get_logger
from pvz_kernel.services.base import BaseService
from pvz_kernel.stores.product_store import ProductStore
from pvz_kernel.stores.pvz_store import PVZStore
from pvz_kernel.stores.reception_store import ReceptionStore

logger = get_logger("services.product")


class ProductService(BaseService):
    """Appends and removes products of the reception in progress."""

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

    def _open_reception(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None,
    ) -> ReceptionInfo:
        """Pre-check outside the unit of work: pickup point, active reception."""
        self._pvzs.get_by_id(ctx, pvz_id, tx)
        return self._receptions.get_active(ctx, pvz_id, tx)

    def _relock_open(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle,
    ) -> ReceptionInfo:
        """Re-read the reception under a row lock; it must still be open."""
        reception = self._receptions.get_by_id(ctx, reception_id, tx, for_update=True)
        if reception.is_closed:
            raise ReceptionClosedError(str(reception_id))
        return reception

    def add_product(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        product_type: "str | ProductType | None",
        tx: TransactionHandle | None = None,
    ) -> ProductInfo:
        """
        Append a product of ``product_type`` to the reception in progress.

        Russian product type names are accepted and normalized.

        Returns:
            The new product, numbered one past the highest number ever
            assigned in its reception.

        Raises:
            ProductTypeEmptyError: If ``product_type`` is blank.
            InvalidProductTypeError: If it is not a supported type.
            PVZNotFoundError: If the pickup point does not exist.
            NoActiveReceptionError: If nothing is in progress.
            ReceptionClosedError: If the latest reception is closed or was
                closed meanwhile.
        """
        parsed = parse_product_type(product_type)
        reception = self._open_reception(ctx, pvz_id, tx)

        def append(c: RequestContext, handle: TransactionHandle) -> ProductInfo:
            self._relock_open(c, reception.id, handle)
            sequence_number = self._receptions.allocate_sequence_number(
                c, reception.id, handle
            )
            return self._products.add(c, reception.id, parsed, sequence_number, handle)

        product = self._transactions.run_exclusively(ctx, append, tx)

        logger.info(
            "product_added",
            extra={
                "pvz_id": str(pvz_id),
                "reception_id": str(reception.id),
                "product_id": str(product.id),
                "sequence_number": product.sequence_number,
            },
        )
        self._emit(
            EVENT_PRODUCT_ADDED,
            pvz_id=str(pvz_id),
            reception_id=str(reception.id),
            product_id=str(product.id),
            product_type=product.product_type.value,
            sequence_number=product.sequence_number,
        )
        return product

    def delete_last_product(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ProductInfo:
        """
        Remove the highest-sequence product of the reception in progress.

        Returns:
            The product that was removed.

        Raises:
            PVZNotFoundError: If the pickup point does not exist.
            NoActiveReceptionError: If nothing is in progress.
            ReceptionClosedError: If the latest reception is closed or was
                closed meanwhile.
            NoProductsToDeleteError: If the reception has no products.
        """
        reception = self._open_reception(ctx, pvz_id, tx)

        def pop_last(c: RequestContext, handle: TransactionHandle) -> ProductInfo:
            self._relock_open(c, reception.id, handle)
            last = self._products.find_last(c, reception.id, handle)
            if last is None:
                raise NoProductsToDeleteError(str(reception.id))
            self._products.delete(c, last.id, handle)
            return last

        removed = self._transactions.run_exclusively(ctx, pop_last, tx)

        logger.info(
            "product_deleted",
            extra={
                "pvz_id": str(pvz_id),
                "reception_id": str(reception.id),
                "product_id": str(removed.id),
                "sequence_number": removed.sequence_number,
            },
        )
        self._emit(
            EVENT_PRODUCT_DELETED,
            pvz_id=str(pvz_id),
            reception_id=str(reception.id),
            product_id=str(removed.id),
            sequence_number=removed.sequence_number,
        )
        return removed

    def get_products_by_reception(
        self,
        ctx: RequestContext,
        reception_id: UUID,
    ) -> tuple[ProductInfo, ...]:
        """Products of ``reception_id`` in ascending sequence order."""
        self._receptions.get_by_id(ctx, reception_id)
        return tuple(self._products.list_by_reception(ctx, reception_id))
