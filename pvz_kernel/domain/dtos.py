"""
DTOs -- immutable data returned by stores and services.

Responsibility:
    Defines the frozen records that cross the store/service boundary
    (``PVZInfo``, ``ReceptionInfo``, ``ProductInfo``), the nested listing
    shapes (``ReceptionWithProducts``, ``PVZWithReceptions``) and the listing
    query with its pagination policy (``PVZListQuery``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only by stores.

Invariants enforced:
    - Services return DTOs, never ORM entities.
    - Listing pagination: page <= 0 becomes 1; limit <= 0 or > MAX_LIMIT
      becomes DEFAULT_LIMIT.  MAX_LIMIT is a hard ceiling, a larger limit is
      not clamped down to it.
    - All timestamps are timezone-aware UTC (SQLite hands back naive values,
      which are tagged as UTC here).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from pvz_kernel.domain.values import City, ProductType, ReceptionStatus

if TYPE_CHECKING:
    from pvz_kernel.models.pickup_point import PickupPoint as PickupPointModel
    from pvz_kernel.models.product import Product as ProductModel
    from pvz_kernel.models.reception import Reception as ReceptionModel


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 30


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class PVZInfo:
    """A registered pickup point."""

    id: UUID
    registered_at: datetime
    city: City

    @classmethod
    def from_model(cls, model: PickupPointModel) -> PVZInfo:
        return cls(
            id=model.id,
            registered_at=as_utc(model.registered_at),
            city=City(model.city),
        )


@dataclass(frozen=True)
class ReceptionInfo:
    """A goods reception at a pickup point."""

    id: UUID
    opened_at: datetime
    pvz_id: UUID
    status: ReceptionStatus
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == ReceptionStatus.IN_PROGRESS

    @property
    def is_closed(self) -> bool:
        return self.status == ReceptionStatus.CLOSED

    @classmethod
    def from_model(cls, model: ReceptionModel) -> ReceptionInfo:
        return cls(
            id=model.id,
            opened_at=as_utc(model.opened_at),
            pvz_id=model.pvz_id,
            status=ReceptionStatus(model.status),
            closed_at=as_utc(model.closed_at),
        )


@dataclass(frozen=True)
class ProductInfo:
    """A product accepted within a reception."""

    id: UUID
    created_at: datetime
    product_type: ProductType
    reception_id: UUID
    sequence_number: int

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductInfo:
        return cls(
            id=model.id,
            created_at=as_utc(model.created_at),
            product_type=ProductType(model.product_type),
            reception_id=model.reception_id,
            sequence_number=model.sequence_number,
        )


@dataclass(frozen=True)
class ReceptionWithProducts:
    reception: ReceptionInfo
    products: tuple[ProductInfo, ...] = ()


@dataclass(frozen=True)
class PVZWithReceptions:
    pvz: PVZInfo
    receptions: tuple[ReceptionWithProducts, ...] = ()


@dataclass(frozen=True)
class PVZListQuery:
    """
    Filters and pagination for listing pickup points.

    ``start_date``/``end_date`` bound the reception ``opened_at`` (inclusive,
    either may be open-ended).  A pickup point is listed only if it has at
    least one reception inside the window; when neither bound is given every
    pickup point qualifies.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    city: City | None = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def has_date_filter(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def normalized(self) -> PVZListQuery:
        """Apply the pagination policy and UTC-normalise the date bounds."""
        page = self.page if self.page > 0 else DEFAULT_PAGE
        limit = self.limit if 0 < self.limit <= MAX_LIMIT else DEFAULT_LIMIT
        return replace(
            self,
            page=page,
            limit=limit,
            start_date=as_utc(self.start_date),
            end_date=as_utc(self.end_date),
        )
