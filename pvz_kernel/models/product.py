"""
Module: pvz_kernel.models.product
Responsibility: ORM persistence for products accepted within a reception.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (reception_id, sequence_number) is unique.
    - Rows are inserted by append and removed only by "delete last" while
      the owning reception is open; they are never updated.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pvz_kernel.db.base import Base, UUIDString


class Product(Base):
    """A product in a reception's append/pop-last log."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint(
            "reception_id", "sequence_number", name="uq_products_reception_sequence"
        ),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Stored as the ProductType enum value
    product_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    reception_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("receptions.id", ondelete="CASCADE"),
        nullable=False,
    )

    sequence_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Product {self.id}: #{self.sequence_number} {self.product_type}>"
