"""
Module: pvz_kernel.models.reception
Responsibility: ORM persistence for goods receptions and their product
    numbering high-water mark.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - At most one IN_PROGRESS reception per pickup point.  The workflow
      service re-checks this inside the inserting transaction; the partial
      unique index ``uq_receptions_active_pvz`` makes the database reject a
      second active row as well.
    - status moves IN_PROGRESS -> CLOSED once; closed_at is set at that moment.
    - last_sequence_number only grows.  It is the highest product sequence
      number ever handed out for this reception, so numbers freed by
      "delete last" are never reused.

Failure modes:
    - IntegrityError on uq_receptions_active_pvz, translated by the
      reception store into ActiveReceptionExistsError.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from pvz_kernel.db.base import Base, UUIDString
from pvz_kernel.domain.values import ReceptionStatus

_ACTIVE_PREDICATE = text(f"status = '{ReceptionStatus.IN_PROGRESS.value}'")


class Reception(Base):
    """A reception session at a pickup point."""

    __tablename__ = "receptions"

    __table_args__ = (
        Index(
            "uq_receptions_active_pvz",
            "pvz_id",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index("idx_receptions_pvz_opened_at", "pvz_id", "opened_at"),
    )

    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    pvz_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("pickup_points.id"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=ReceptionStatus.IN_PROGRESS.value,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_sequence_number: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Reception {self.id}: {self.status}>"

    @property
    def is_closed(self) -> bool:
        return self.status == ReceptionStatus.CLOSED.value
