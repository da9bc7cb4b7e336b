"""
pvz_services.gateway -- the single entry point transport adapters call.

Responsibility:
    For every workflow operation: check the caller's role against the
    access policy, bind request-scoped logging fields, and delegate to the
    kernel service.  Results and domain errors are passed back unchanged;
    mapping them to wire-level responses is the adapter's job (``kind`` on
    every error is the discriminant to switch on).

Architecture position:
    Services layer.  Sits between transport adapters and
    ``pvz_kernel.services``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import (
    ProductInfo,
    PVZInfo,
    PVZListQuery,
    PVZWithReceptions,
    ReceptionInfo,
)
from pvz_kernel.domain.values import Role
from pvz_kernel.exceptions import AccessDeniedError
from pvz_kernel.logging_config import LogContext, get_logger
from pvz_kernel.services.product_service import ProductService
from pvz_kernel.services.pvz_service import PVZService
from pvz_kernel.services.reception_service import ReceptionService
from pvz_services.access_policy import Operation, ensure_allowed

logger = get_logger("services.gateway")


class WorkflowGateway:
    """Role-checked facade over the three workflow services."""

    def __init__(
        self,
        pvz_service: PVZService,
        reception_service: ReceptionService,
        product_service: ProductService,
    ):
        self._pvz = pvz_service
        self._receptions = reception_service
        self._products = product_service

    @contextmanager
    def _authorized(
        self,
        ctx: RequestContext,
        operation: Operation,
        pvz_id: UUID | None = None,
        reception_id: UUID | None = None,
    ) -> Iterator[None]:
        with LogContext.bind(
            correlation_id=ctx.request_id,
            actor_role=ctx.role.value if isinstance(ctx.role, Role) else ctx.role,
            pvz_id=str(pvz_id) if pvz_id is not None else None,
            reception_id=str(reception_id) if reception_id is not None else None,
        ):
            try:
                ensure_allowed(ctx.role, operation)
            except AccessDeniedError:
                logger.warning("access_denied", extra={"operation": operation.value})
                raise
            yield

    # -- pickup points ------------------------------------------------------

    def create_pvz(self, ctx: RequestContext, city: str | None) -> PVZInfo:
        with self._authorized(ctx, Operation.CREATE_PVZ):
            return self._pvz.create_pvz(ctx, city)

    def list_pvzs(
        self,
        ctx: RequestContext,
        query: PVZListQuery | None = None,
    ) -> list[PVZWithReceptions]:
        with self._authorized(ctx, Operation.LIST_PVZS):
            return self._pvz.list_pvzs(ctx, query)

    def get_pvz(self, ctx: RequestContext, pvz_id: UUID) -> PVZInfo:
        with self._authorized(ctx, Operation.GET_PVZ, pvz_id=pvz_id):
            return self._pvz.get_pvz_by_id(ctx, pvz_id)

    # -- receptions ---------------------------------------------------------

    def create_reception(self, ctx: RequestContext, pvz_id: UUID) -> ReceptionInfo:
        with self._authorized(ctx, Operation.CREATE_RECEPTION, pvz_id=pvz_id):
            return self._receptions.create_reception(ctx, pvz_id)

    def close_reception(self, ctx: RequestContext, pvz_id: UUID) -> ReceptionInfo:
        with self._authorized(ctx, Operation.CLOSE_RECEPTION, pvz_id=pvz_id):
            return self._receptions.close_reception(ctx, pvz_id)

    def close_reception_by_id(
        self, ctx: RequestContext, reception_id: UUID
    ) -> ReceptionInfo:
        with self._authorized(
            ctx, Operation.CLOSE_RECEPTION, reception_id=reception_id
        ):
            return self._receptions.close_reception_by_id(ctx, reception_id)

    def get_active_reception(self, ctx: RequestContext, pvz_id: UUID) -> ReceptionInfo:
        with self._authorized(ctx, Operation.GET_RECEPTION, pvz_id=pvz_id):
            return self._receptions.get_active_reception(ctx, pvz_id)

    def get_reception(self, ctx: RequestContext, reception_id: UUID) -> ReceptionInfo:
        with self._authorized(ctx, Operation.GET_RECEPTION, reception_id=reception_id):
            return self._receptions.get_reception_by_id(ctx, reception_id)

    # -- products -----------------------------------------------------------

    def add_product(
        self,
        ctx: RequestContext,
        pvz_id: UUID,
        product_type: str | None,
    ) -> ProductInfo:
        with self._authorized(ctx, Operation.ADD_PRODUCT, pvz_id=pvz_id):
            return self._products.add_product(ctx, pvz_id, product_type)

    def delete_last_product(self, ctx: RequestContext, pvz_id: UUID) -> ProductInfo:
        with self._authorized(ctx, Operation.DELETE_LAST_PRODUCT, pvz_id=pvz_id):
            return self._products.delete_last_product(ctx, pvz_id)

    def get_products_by_reception(
        self, ctx: RequestContext, reception_id: UUID
    ) -> tuple[ProductInfo, ...]:
        with self._authorized(ctx, Operation.LIST_PRODUCTS, reception_id=reception_id):
            return self._products.get_products_by_reception(ctx, reception_id)
