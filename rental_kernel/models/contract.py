"""
Module: rental_kernel.models.contract
Responsibility:
    ORM table for rental contracts.  Rows are mutated only through the
    lifecycle service and never deleted; terminal rows are history.

Invariants enforced:
    - At most one ACTIVE contract per flat: partial unique index
      ``uq_contract_active_flat`` (``WHERE status = 'active'``) on both
      PostgreSQL and SQLite.  Creates, renewals and modifications are
      already serialized per flat by ``FlatContractLockModel``; the index
      also covers status sweeps and direct writes.
    - ``end_date >= start_date`` (check constraint).
    - 1 <= ``day_of_month`` <= 31 (check constraint).
    - Optimistic locking: ``version`` is SQLAlchemy's ``version_id_col``;
      an UPDATE against a stale version raises StaleDataError.
    - ``previous_contract_id`` points only at an already-persisted row, so
      the renewal/modification chain is acyclic by construction.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.domain.dtos import CancellationCategory, ContractInfo

_ACTIVE_ONLY = text("status = 'active'")


class ContractModel(TrackedBase):
    """A rental agreement for one flat over an inclusive date range."""

    __tablename__ = "rental_contracts"

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_contract_date_range"),
        CheckConstraint(
            "day_of_month >= 1 AND day_of_month <= 31",
            name="ck_contract_day_of_month",
        ),
        Index(
            "uq_contract_active_flat",
            "flat_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index("idx_contract_flat_dates", "flat_id", "start_date", "end_date"),
        Index("idx_contract_status_end", "status", "end_date"),
        Index("idx_contract_previous", "previous_contract_id"),
    )

    flat_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    building_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_rent: Mapped[Decimal] = mapped_column(nullable=False)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContractStatus.PENDING.value
    )
    previous_contract_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("rental_contracts.id"),
        nullable=True,
        doc="Contract this one renews or supersedes",
    )

    security_deposit: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False)
    dues_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Tenant snapshot, captured at creation and independent of any live record
    tenant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tenant_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tenant_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cancellation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cancelled_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status_changed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status_change_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def contract_status(self) -> ContractStatus:
        return ContractStatus(self.status)

    def to_dto(self) -> ContractInfo:
        return ContractInfo(
            id=self.id,
            flat_id=self.flat_id,
            building_id=self.building_id,
            start_date=self.start_date,
            end_date=self.end_date,
            monthly_rent=self.monthly_rent,
            day_of_month=self.day_of_month,
            status=ContractStatus(self.status),
            security_deposit=self.security_deposit,
            auto_renew=self.auto_renew,
            dues_generated=self.dues_generated,
            version=self.version,
            previous_contract_id=self.previous_contract_id,
            tenant_name=self.tenant_name,
            tenant_contact=self.tenant_contact,
            tenant_email=self.tenant_email,
            notes=self.notes,
            cancellation_reason=self.cancellation_reason,
            cancellation_category=(
                CancellationCategory(self.cancellation_category)
                if self.cancellation_category
                else None
            ),
            cancellation_date=self.cancellation_date,
            cancelled_by_id=self.cancelled_by_id,
            status_changed_at=self.status_changed_at,
            status_changed_by_id=self.status_changed_by_id,
            status_change_reason=self.status_change_reason,
        )

    def __repr__(self) -> str:
        return (
            f"<ContractModel {self.id} flat={self.flat_id} "
            f"{self.start_date}..{self.end_date} ({self.status})>"
        )
