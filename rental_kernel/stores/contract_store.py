"""
SQLAlchemy contract store (``rental_kernel.stores.contract_store``).

Thin query layer over ``ContractModel`` bound to one Session.  ``save``
flushes so constraint violations surface inside the caller's unit of work;
it never commits.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID, uuid4

from sqlalchemy import and_, exists, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from rental_kernel.domain.contract_state import (
    RANGE_RELEASING_STATUSES,
    ContractStatus,
)
from rental_kernel.domain.dtos import OPEN_DUE_STATUSES
from rental_kernel.models.contract import ContractModel
from rental_kernel.models.flat_lock import FlatContractLockModel
from rental_kernel.models.monthly_due import MonthlyDueModel

_RELEASED = [s.value for s in RANGE_RELEASING_STATUSES]
_OPEN_DUES = [s.value for s in OPEN_DUE_STATUSES]


class SqlContractStore:
    def __init__(self, session: Session):
        self._session = session

    def save(self, contract: ContractModel) -> ContractModel:
        self._session.add(contract)
        self._session.flush()
        return contract

    def find_by_id(self, contract_id: UUID) -> ContractModel | None:
        return self._session.get(ContractModel, contract_id)

    def find_active_by_flat(self, flat_id: UUID) -> ContractModel | None:
        return self._session.execute(
            select(ContractModel).where(
                ContractModel.flat_id == flat_id,
                ContractModel.status == ContractStatus.ACTIVE.value,
            )
        ).scalars().first()

    def find_overlapping(
        self,
        flat_id: UUID,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> list[ContractModel]:
        """Live contracts for the flat whose range shares at least one day."""
        stmt = select(ContractModel).where(
            ContractModel.flat_id == flat_id,
            ContractModel.status.not_in(_RELEASED),
            ContractModel.start_date <= end_date,
            ContractModel.end_date >= start_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(ContractModel.id != exclude_id)
        return list(
            self._session.execute(stmt.order_by(ContractModel.start_date)).scalars()
        )

    def find_needing_status_update(self, today: date) -> list[ContractModel]:
        """PENDING contracts that have started and ACTIVE ones that have ended.

        ACTIVE rows come first so a flat's outgoing contract expires before
        its successor is activated.
        """
        stmt = select(ContractModel).where(
            or_(
                and_(
                    ContractModel.status == ContractStatus.PENDING.value,
                    ContractModel.start_date <= today,
                ),
                and_(
                    ContractModel.status == ContractStatus.ACTIVE.value,
                    ContractModel.end_date < today,
                ),
            )
        )
        rows = list(self._session.execute(stmt).scalars())
        rows.sort(
            key=lambda c: (c.status != ContractStatus.ACTIVE.value, c.start_date)
        )
        return rows

    def find_expiring(self, today: date, days_ahead: int) -> list[ContractModel]:
        return list(
            self._session.execute(
                select(ContractModel)
                .where(
                    ContractModel.status == ContractStatus.ACTIVE.value,
                    ContractModel.end_date >= today,
                    ContractModel.end_date <= today + timedelta(days=days_ahead),
                )
                .order_by(ContractModel.end_date)
            ).scalars()
        )

    def find_renewable(self, today: date, days_ahead: int) -> list[ContractModel]:
        """Expiring contracts with no unpaid or overdue due dated before today."""
        arrears = exists().where(
            MonthlyDueModel.contract_id == ContractModel.id,
            MonthlyDueModel.status.in_(_OPEN_DUES),
            MonthlyDueModel.due_date < today,
        )
        return list(
            self._session.execute(
                select(ContractModel)
                .where(
                    ContractModel.status == ContractStatus.ACTIVE.value,
                    ContractModel.end_date >= today,
                    ContractModel.end_date <= today + timedelta(days=days_ahead),
                    ~arrears,
                )
                .order_by(ContractModel.end_date)
            ).scalars()
        )

    def find_by_flat(self, flat_id: UUID) -> list[ContractModel]:
        return list(
            self._session.execute(
                select(ContractModel)
                .where(ContractModel.flat_id == flat_id)
                .order_by(ContractModel.start_date)
            ).scalars()
        )

    def find_successor(self, contract_id: UUID) -> ContractModel | None:
        return self._session.execute(
            select(ContractModel).where(
                ContractModel.previous_contract_id == contract_id
            )
        ).scalars().first()

    def lock_flat(self, flat_id: UUID) -> None:
        """Serialize contract writes for ``flat_id`` until the transaction ends.

        Must run before any read the caller's decision depends on.
        """
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            insert_stmt = postgresql_insert(FlatContractLockModel)
        else:
            insert_stmt = sqlite_insert(FlatContractLockModel)
        self._session.execute(
            insert_stmt.values(id=uuid4(), flat_id=flat_id, write_count=0)
            .on_conflict_do_nothing(index_elements=["flat_id"])
        )
        self._session.execute(
            update(FlatContractLockModel)
            .where(FlatContractLockModel.flat_id == flat_id)
            .values(write_count=FlatContractLockModel.write_count + 1)
        )
