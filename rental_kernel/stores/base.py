"""
Collaborator interfaces consumed by the kernel services.

The SQLAlchemy adapters in ``rental_kernel.stores.contract_store`` and
``rental_kernel.stores.due_store`` implement the two stores.  The flat
directory belongs to the surrounding application (building and flat CRUD
is not part of the kernel); when none is wired, flat existence is not
checked and no building id is captured.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable
from uuid import UUID

from rental_kernel.domain.dtos import FlatRef
from rental_kernel.models.contract import ContractModel
from rental_kernel.models.monthly_due import MonthlyDueModel


@runtime_checkable
class ContractStore(Protocol):
    def save(self, contract: ContractModel) -> ContractModel: ...

    def find_by_id(self, contract_id: UUID) -> ContractModel | None: ...

    def find_active_by_flat(self, flat_id: UUID) -> ContractModel | None: ...

    def find_overlapping(
        self,
        flat_id: UUID,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> list[ContractModel]: ...

    def find_needing_status_update(self, today: date) -> list[ContractModel]: ...

    def lock_flat(self, flat_id: UUID) -> None: ...


@runtime_checkable
class DueStore(Protocol):
    def exists_for(self, flat_id: UUID, due_date: date) -> bool: ...

    def save(self, due: MonthlyDueModel) -> MonthlyDueModel: ...

    def find_by_contract(self, contract_id: UUID) -> list[MonthlyDueModel]: ...

    def cancel_unpaid(
        self, contract_id: UUID, from_date: date, actor_id: UUID
    ) -> int: ...

    def count_paid(self, contract_id: UUID) -> int: ...

    def mark_overdue(self, today: date, actor_id: UUID) -> int: ...


@runtime_checkable
class FlatDirectory(Protocol):
    def get_flat(self, flat_id: UUID) -> FlatRef | None: ...
