"""
DueGenerationService -- persists the monthly due schedule of a contract.

Responsibility:
    Turns ``compute_due_dates`` into MonthlyDue rows, skipping any
    (flat, date) pair that already has a live due.  Also owns the bulk
    status changes on dues (cancellation, overdue marking) and the paid
    dues check used by the modifiability rule.

Architecture position:
    Kernel > Services.  Works inside the caller's transaction through a
    ``DueStore``; never commits.

Guarantees:
    - Idempotent: a second run over the same contract and window creates
      nothing.  Safe for at-least-once event delivery and operator re-runs.
    - Returns only the dues actually created, so callers report exact
      counts.
    - Never deletes a due.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from rental_kernel.db.types import ZERO
from rental_kernel.domain.due_schedule import compute_due_dates, describe_due
from rental_kernel.domain.dtos import DueStatus, MonthlyDueInfo
from rental_kernel.logging_config import get_logger
from rental_kernel.models.contract import ContractModel
from rental_kernel.models.monthly_due import MonthlyDueModel
from rental_kernel.stores.base import DueStore

logger = get_logger("services.due_generation")


class DueGenerationService:
    def __init__(self, dues: DueStore):
        self._dues = dues

    def preview_due_dates(
        self, contract: ContractModel, from_date: date | None = None
    ) -> list[date]:
        return compute_due_dates(
            contract.day_of_month, contract.start_date, contract.end_date, from_date
        )

    def generate_dues(
        self,
        contract: ContractModel,
        actor_id: UUID,
        from_date: date | None = None,
    ) -> list[MonthlyDueInfo]:
        """Create the missing dues of ``contract`` from ``from_date`` on."""
        created: list[MonthlyDueInfo] = []
        skipped = 0

        for due_date in self.preview_due_dates(contract, from_date):
            if self._dues.exists_for(contract.flat_id, due_date):
                skipped += 1
                continue
            due = self._dues.save(
                MonthlyDueModel(
                    flat_id=contract.flat_id,
                    contract_id=contract.id,
                    due_date=due_date,
                    due_amount=contract.monthly_rent,
                    paid_amount=ZERO,
                    status=DueStatus.UNPAID.value,
                    description=describe_due(due_date),
                    created_by_id=actor_id,
                )
            )
            created.append(due.to_dto())

        logger.info(
            "dues_generated",
            extra={
                "contract_id": str(contract.id),
                "flat_id": str(contract.flat_id),
                "from_date": (from_date or contract.start_date).isoformat(),
                "dues_created": len(created),
                "skipped_existing": skipped,
            },
        )
        return created

    def cancel_unpaid_dues(self, contract_id: UUID, from_date: date, actor_id: UUID) -> int:
        cancelled = self._dues.cancel_unpaid(contract_id, from_date, actor_id)
        logger.info(
            "dues_cancelled",
            extra={
                "contract_id": str(contract_id),
                "from_date": from_date.isoformat(),
                "cancelled": cancelled,
            },
        )
        return cancelled

    def count_paid_dues(self, contract_id: UUID) -> int:
        return self._dues.count_paid(contract_id)

    def has_paid_dues(self, contract_id: UUID) -> bool:
        return self.count_paid_dues(contract_id) > 0

    def mark_overdue_dues(self, today: date, actor_id: UUID) -> int:
        marked = self._dues.mark_overdue(today, actor_id)
        if marked:
            logger.info(
                "dues_marked_overdue",
                extra={"as_of": today.isoformat(), "marked": marked},
            )
        return marked

    def dues_for_contract(self, contract_id: UUID) -> list[MonthlyDueInfo]:
        return [due.to_dto() for due in self._dues.find_by_contract(contract_id)]
