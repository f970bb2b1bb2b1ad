"""
Module: rental_kernel.models.monthly_due
Responsibility:
    ORM table for monthly dues.  Created by due generation; amount and
    status are changed by payment processing (outside the kernel) and by
    cancellation.  Never deleted.

Invariants enforced:
    - Among non-cancelled dues, (flat_id, due_date) is unique: partial
      unique index ``uq_due_flat_date_live``.  A cancelled due keeps its
      row for the audit trail without blocking a replacement due on the
      same date.
    - ``contract_id`` references rental_contracts.id; a due belongs to
      exactly one contract.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.domain.dtos import DueStatus, MonthlyDueInfo

_LIVE_ONLY = text("status != 'cancelled'")


class MonthlyDueModel(TrackedBase):
    """One month's billing obligation generated from a contract."""

    __tablename__ = "rental_monthly_dues"

    __table_args__ = (
        Index(
            "uq_due_flat_date_live",
            "flat_id",
            "due_date",
            unique=True,
            postgresql_where=_LIVE_ONLY,
            sqlite_where=_LIVE_ONLY,
        ),
        Index("idx_due_contract_date", "contract_id", "due_date"),
        Index("idx_due_status_date", "status", "due_date"),
    )

    flat_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rental_contracts.id"),
        nullable=False,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DueStatus.UNPAID.value
    )
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_dto(self) -> MonthlyDueInfo:
        return MonthlyDueInfo(
            id=self.id,
            flat_id=self.flat_id,
            contract_id=self.contract_id,
            due_date=self.due_date,
            due_amount=self.due_amount,
            paid_amount=self.paid_amount,
            status=DueStatus(self.status),
            payment_date=self.payment_date,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<MonthlyDueModel {self.due_date} {self.due_amount} ({self.status})>"
