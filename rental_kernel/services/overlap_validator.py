"""
OverlapValidator -- date-range conflicts for one flat.

Two ranges conflict when ``start1 <= end2 and start2 <= end1`` (sharing a
single day counts) and the existing contract has not released its range
(cancelled and superseded contracts have).  All conflicts are reported,
not just the first.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.domain.dtos import OverlapCheckResult, OverlapConflict
from rental_kernel.exceptions import ContractOverlapError
from rental_kernel.logging_config import get_logger
from rental_kernel.stores.base import ContractStore

logger = get_logger("services.overlap_validator")


class OverlapValidator:
    def __init__(self, contracts: ContractStore):
        self._contracts = contracts

    def validate_no_overlap(
        self,
        flat_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
    ) -> OverlapCheckResult:
        rows = self._contracts.find_overlapping(
            flat_id, start_date, end_date, exclude_contract_id
        )
        conflicts = tuple(
            OverlapConflict(
                contract_id=row.id,
                start_date=row.start_date,
                end_date=row.end_date,
                status=ContractStatus(row.status),
            )
            for row in rows
        )
        if conflicts:
            logger.info(
                "contract_overlap_detected",
                extra={
                    "flat_id": str(flat_id),
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "conflict_ids": [str(c.contract_id) for c in conflicts],
                },
            )
        return OverlapCheckResult(flat_id=flat_id, conflicts=conflicts)

    def require_no_overlap(
        self,
        flat_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
    ) -> None:
        result = self.validate_no_overlap(
            flat_id, start_date, end_date, exclude_contract_id
        )
        if not result.is_valid:
            raise ContractOverlapError(flat_id, result.conflicts)

    def has_active_contract(self, flat_id: UUID) -> bool:
        return self._contracts.find_active_by_flat(flat_id) is not None
