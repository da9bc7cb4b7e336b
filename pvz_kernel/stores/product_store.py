"""
ProductStore -- persistence for products within receptions.

Responsibility:
    Appends products, finds and removes the last one, and reads a
    reception's products in sequence order.

Invariants enforced:
    - Products are read back in ascending sequence_number.
    - The store does not check reception status; ProductService does that
      inside the unit of work that calls add()/delete().
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select

from pvz_kernel.db.transaction import TransactionHandle
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import ProductInfo
from pvz_kernel.domain.values import ProductType
from pvz_kernel.exceptions import ProductNotFoundError
from pvz_kernel.logging_config import get_logger
from pvz_kernel.models.product import Product
from pvz_kernel.stores.base import BaseStore

logger = get_logger("stores.product")


class ProductStore(BaseStore):
    """Reads and writes ``products`` rows."""

    def add(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        product_type: ProductType,
        sequence_number: int,
        tx: TransactionHandle | None = None,
    ) -> ProductInfo:
        row = Product(
            reception_id=reception_id,
            product_type=product_type.value,
            sequence_number=sequence_number,
            created_at=self._clock.now(),
        )
        with self._querier(ctx, tx, "product.add") as session:
            session.add(row)
            session.flush()
            return ProductInfo.from_model(row)

    def find_last(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> ProductInfo | None:
        """The highest-sequence product of ``reception_id``, or None if empty."""
        stmt = (
            select(Product)
            .where(Product.reception_id == reception_id)
            .order_by(Product.sequence_number.desc())
            .limit(1)
        )
        with self._querier(ctx, tx, "product.find_last") as session:
            row = session.execute(stmt).scalar_one_or_none()
            return ProductInfo.from_model(row) if row is not None else None

    def delete(
        self,
        ctx: RequestContext,
        product_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> None:
        """
        Delete ``product_id``.

        Raises:
            ProductNotFoundError: If no row was deleted.
        """
        stmt = delete(Product).where(Product.id == product_id)
        with self._querier(ctx, tx, "product.delete") as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise ProductNotFoundError(str(product_id))

        logger.debug("product_row_deleted", extra={"product_id": str(product_id)})

    def list_by_reception(
        self,
        ctx: RequestContext,
        reception_id: UUID,
        tx: TransactionHandle | None = None,
    ) -> list[ProductInfo]:
        stmt = (
            select(Product)
            .where(Product.reception_id == reception_id)
            .order_by(Product.sequence_number)
        )
        with self._querier(ctx, tx, "product.list_by_reception") as session:
            return [ProductInfo.from_model(row) for row in session.execute(stmt).scalars()]

    def list_for_receptions(
        self,
        ctx: RequestContext,
        reception_ids: Sequence[UUID],
        tx: TransactionHandle | None = None,
    ) -> dict[UUID, list[ProductInfo]]:
        """Products grouped by reception, each group in ascending sequence."""
        result: dict[UUID, list[ProductInfo]] = {rid: [] for rid in reception_ids}
        if not reception_ids:
            return result

        stmt = (
            select(Product)
            .where(Product.reception_id.in_(list(reception_ids)))
            .order_by(Product.reception_id, Product.sequence_number)
        )
        with self._querier(ctx, tx, "product.list_for_receptions") as session:
            for row in session.execute(stmt).scalars():
                result[row.reception_id].append(ProductInfo.from_model(row))
        return result
