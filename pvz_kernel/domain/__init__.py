"""Pure domain layer: values, DTOs, request context and clock."""

from pvz_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pvz_kernel.domain.context import RequestContext
from pvz_kernel.domain.dtos import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    ProductInfo,
    PVZInfo,
    PVZListQuery,
    PVZWithReceptions,
    ReceptionInfo,
    ReceptionWithProducts,
)
from pvz_kernel.domain.values import (
    City,
    ProductType,
    ReceptionStatus,
    Role,
    parse_city,
    parse_product_type,
    parse_role,
)

__all__ = [
    "City",
    "Clock",
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "DeterministicClock",
    "MAX_LIMIT",
    "ProductInfo",
    "ProductType",
    "PVZInfo",
    "PVZListQuery",
    "PVZWithReceptions",
    "ReceptionInfo",
    "ReceptionStatus",
    "ReceptionWithProducts",
    "RequestContext",
    "Role",
    "SystemClock",
    "parse_city",
    "parse_product_type",
    "parse_role",
]
