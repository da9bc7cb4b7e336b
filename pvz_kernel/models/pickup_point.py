"""
Module: pvz_kernel.models.pickup_point
Responsibility: ORM persistence for pickup points (PVZ).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - city and registered_at are written once at INSERT and never updated.
    - Pickup points are never deleted by the kernel; receptions reference
      them by id.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pvz_kernel.db.base import Base


class PickupPoint(Base):
    """A pickup point.  Stable identity that receptions link against."""

    __tablename__ = "pickup_points"

    __table_args__ = (
        Index("idx_pickup_points_registered_at", "registered_at"),
        Index("idx_pickup_points_city", "city"),
    )

    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Stored as the City enum value
    city: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PickupPoint {self.id}: {self.city}>"
