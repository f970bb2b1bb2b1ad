"""
ContractAuditService -- writes contract audit records.

Each record is committed in its own transaction, after (and independently
of) the lifecycle change it describes.  A failed audit write is a side
effect failure: it propagates to the dispatcher, which logs it.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.logging_config import get_logger
from rental_kernel.models.audit_log import ContractAuditLogModel

logger = get_logger("services.audit")


class AuditAction(str, Enum):
    CONTRACT_CREATED = "contract_created"
    CONTRACT_RENEWED = "contract_renewed"
    CONTRACT_CANCELLED = "contract_cancelled"
    CONTRACT_MODIFIED = "contract_modified"
    CONTRACT_STATUS_CHANGED = "contract_status_changed"
    DUES_GENERATED = "dues_generated"
    DUES_GENERATION_FAILED = "dues_generation_failed"
    DUES_CANCELLED = "dues_cancelled"
    RENEWAL_DUES_GENERATED = "renewal_dues_generated"
    MODIFICATION_DUES_UPDATED = "modification_dues_updated"


class ContractAuditService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def record(
        self,
        action: AuditAction,
        contract_id: UUID,
        actor_id: UUID,
        *,
        success: bool = True,
        detail: str | None = None,
        event_id: UUID | None = None,
    ) -> None:
        session = self._session_factory()
        try:
            session.add(
                ContractAuditLogModel(
                    action=action.value,
                    entity_type="contract",
                    entity_id=contract_id,
                    actor_id=actor_id,
                    success=success,
                    detail=detail,
                    event_id=event_id,
                    occurred_at=self._clock.now(),
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.debug(
            "audit_recorded",
            extra={
                "action": action.value,
                "contract_id": str(contract_id),
                "success": success,
            },
        )

    def history(self, contract_id: UUID) -> list[tuple[str, bool, str | None]]:
        """(action, success, detail) for a contract, oldest first."""
        session = self._session_factory()
        try:
            rows = session.execute(
                select(ContractAuditLogModel)
                .where(ContractAuditLogModel.entity_id == contract_id)
                .order_by(ContractAuditLogModel.occurred_at)
            ).scalars()
            return [(row.action, row.success, row.detail) for row in rows]
        finally:
            session.close()
