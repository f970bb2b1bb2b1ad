"""
Module: rental_kernel.models.audit_log
Responsibility:
    Append-only record of contract lifecycle actions and of the outcome of
    their side effects (due generation succeeded or failed).  Written by
    the audit listener in its own transaction after the lifecycle change
    has committed.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString


class ContractAuditLogModel(Base):
    __tablename__ = "rental_contract_audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_id", "occurred_at"),
        Index("idx_audit_action", "action"),
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, default="contract")
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ContractAuditLogModel {self.action} {self.entity_id}>"
