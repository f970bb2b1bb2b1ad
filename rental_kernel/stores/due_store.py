"""
SQLAlchemy due store (``rental_kernel.stores.due_store``).

Bulk status changes (cancellation, overdue marking) are single UPDATE
statements; they never delete rows.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import exists, func, or_, select, update
from sqlalchemy.orm import Session

from rental_kernel.domain.dtos import OPEN_DUE_STATUSES, PAID_DUE_STATUSES, DueStatus
from rental_kernel.models.monthly_due import MonthlyDueModel

_OPEN = [s.value for s in OPEN_DUE_STATUSES]
_PAID = [s.value for s in PAID_DUE_STATUSES]


class SqlDueStore:
    def __init__(self, session: Session):
        self._session = session

    def exists_for(self, flat_id: UUID, due_date: date) -> bool:
        """True when a non-cancelled due already occupies (flat, date)."""
        return bool(
            self._session.execute(
                select(
                    exists().where(
                        MonthlyDueModel.flat_id == flat_id,
                        MonthlyDueModel.due_date == due_date,
                        MonthlyDueModel.status != DueStatus.CANCELLED.value,
                    )
                )
            ).scalar()
        )

    def save(self, due: MonthlyDueModel) -> MonthlyDueModel:
        self._session.add(due)
        self._session.flush()
        return due

    def find_by_contract(self, contract_id: UUID) -> list[MonthlyDueModel]:
        return list(
            self._session.execute(
                select(MonthlyDueModel)
                .where(MonthlyDueModel.contract_id == contract_id)
                .order_by(MonthlyDueModel.due_date, MonthlyDueModel.status)
            ).scalars()
        )

    def cancel_unpaid(self, contract_id: UUID, from_date: date, actor_id: UUID) -> int:
        """Cancel the contract's UNPAID/OVERDUE dues dated on or after ``from_date``."""
        result = self._session.execute(
            update(MonthlyDueModel)
            .where(
                MonthlyDueModel.contract_id == contract_id,
                MonthlyDueModel.status.in_(_OPEN),
                MonthlyDueModel.due_date >= from_date,
            )
            .values(status=DueStatus.CANCELLED.value, updated_by_id=actor_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def count_paid(self, contract_id: UUID) -> int:
        """Dues against which any money has been received."""
        return self._session.execute(
            select(func.count())
            .select_from(MonthlyDueModel)
            .where(
                MonthlyDueModel.contract_id == contract_id,
                or_(
                    MonthlyDueModel.status.in_(_PAID),
                    MonthlyDueModel.paid_amount > 0,
                ),
            )
        ).scalar_one()

    def mark_overdue(self, today: date, actor_id: UUID) -> int:
        """UNPAID dues dated before ``today`` become OVERDUE."""
        result = self._session.execute(
            update(MonthlyDueModel)
            .where(
                MonthlyDueModel.status == DueStatus.UNPAID.value,
                MonthlyDueModel.due_date < today,
            )
            .values(status=DueStatus.OVERDUE.value, updated_by_id=actor_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
