"""
Post-commit contract event listeners.

Responsibility:
    The side effects of a committed lifecycle change:

    * ``DueGenerationListener``   -- dues for created / renewed / modified
      contracts, idempotently, in a fresh transaction.
    * ``AuditListener``           -- one audit record per event.
    * ``NotificationListener``    -- tenant notices, best effort.
    * ``CacheInvalidationListener`` -- evicts building and flat cache keys.

Failure modes:
    Listeners raise freely.  The dispatcher isolates each one, wraps the
    error in ``SideEffectError`` and logs it; the lifecycle change that
    produced the event stays committed.  Due generation also records a
    ``dues_generation_failed`` audit entry before re-raising, so the gap
    is visible to whoever reconciles it.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

from sqlalchemy.orm import Session

from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.domain.events import (
    ContractCancelled,
    ContractCreated,
    ContractEvent,
    ContractModified,
    ContractRenewed,
    ContractStatusChanged,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.services.audit import AuditAction, ContractAuditService
from rental_kernel.services.cache import (
    FLAT_ACTIVE_CONTRACT,
    FLAT_OCCUPANCY_SUMMARY,
    FLATS_WITH_CONTRACTS,
    CacheRegistry,
)
from rental_kernel.services.due_generation import DueGenerationService
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.services.notification import ContractNotificationService
from rental_kernel.services.unit_of_work import ContractUnitOfWork

logger = get_logger("services.contract_listeners")


class DueGenerationListener:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        audit: ContractAuditService | None = None,
    ):
        self._session_factory = session_factory
        self._audit = audit

    def on_created(self, event: ContractCreated) -> None:
        if not event.generate_dues:
            return
        # Dues already generated in the creating transaction: re-running is a no-op
        self._generate(event, from_date=None, action=AuditAction.DUES_GENERATED)

    def on_renewed(self, event: ContractRenewed) -> None:
        if not event.generate_dues:
            return
        self._generate(
            event,
            from_date=event.dues_from_date,
            action=AuditAction.RENEWAL_DUES_GENERATED,
        )

    def on_modified(self, event: ContractModified) -> None:
        if not event.regenerate_dues:
            return
        self._generate(
            event,
            from_date=event.effective_date,
            action=AuditAction.MODIFICATION_DUES_UPDATED,
        )

    def _generate(
        self,
        event: ContractEvent,
        from_date: date | None,
        action: AuditAction,
    ) -> None:
        try:
            with ContractUnitOfWork(self._session_factory) as uow:
                contract = uow.contracts.find_by_id(event.contract_id)
                if contract is None:
                    raise LookupError(f"contract {event.contract_id} not found")
                if ContractStatus(contract.status).is_terminated:
                    logger.info(
                        "due_generation_skipped_terminated",
                        extra={"status": contract.status},
                    )
                    return
                created = DueGenerationService(uow.dues).generate_dues(
                    contract, event.actor_id, from_date=from_date
                )
                if not contract.dues_generated:
                    contract.dues_generated = True
                    contract.updated_by_id = event.actor_id
                uow.commit()
        except Exception as exc:
            self._record(
                AuditAction.DUES_GENERATION_FAILED,
                event,
                success=False,
                detail=f"{type(exc).__name__}: {exc}",
            )
            raise

        self._record(action, event, detail=f"created={len(created)}")

    def _record(
        self,
        action: AuditAction,
        event: ContractEvent,
        *,
        success: bool = True,
        detail: str | None = None,
    ) -> None:
        if self._audit is None:
            return
        try:
            self._audit.record(
                action,
                event.contract_id,
                event.actor_id,
                success=success,
                detail=detail,
                event_id=event.event_id,
            )
        except Exception:
            logger.exception("due_generation_audit_failed", extra={"action": action.value})


class AuditListener:
    _ACTIONS: dict[type[ContractEvent], AuditAction] = {
        ContractCreated: AuditAction.CONTRACT_CREATED,
        ContractRenewed: AuditAction.CONTRACT_RENEWED,
        ContractCancelled: AuditAction.CONTRACT_CANCELLED,
        ContractModified: AuditAction.CONTRACT_MODIFIED,
        ContractStatusChanged: AuditAction.CONTRACT_STATUS_CHANGED,
    }

    def __init__(self, audit: ContractAuditService):
        self._audit = audit

    def __call__(self, event: ContractEvent) -> None:
        action = self._ACTIONS[type(event)]
        self._audit.record(
            action,
            event.contract_id,
            event.actor_id,
            detail=describe_event(event),
            event_id=event.event_id,
        )
        if isinstance(event, ContractCancelled) and event.cancelled_dues:
            self._audit.record(
                AuditAction.DUES_CANCELLED,
                event.contract_id,
                event.actor_id,
                detail=f"cancelled={event.cancelled_dues} from={event.effective_date.isoformat()}",
                event_id=event.event_id,
            )


def describe_event(event: ContractEvent) -> str:
    if isinstance(event, ContractCreated):
        return (
            f"status={event.status} {event.start_date.isoformat()}..{event.end_date.isoformat()} "
            f"rent={event.monthly_rent} dues_created={event.dues_created}"
        )
    if isinstance(event, ContractRenewed):
        return (
            f"renewed from {event.previous_contract_id} "
            f"until {event.end_date.isoformat()} rent={event.monthly_rent}"
        )
    if isinstance(event, ContractCancelled):
        return f"[{event.category}] {event.reason}"
    if isinstance(event, ContractModified):
        return (
            f"supersedes {event.previous_contract_id} from {event.effective_date.isoformat()} "
            f"({event.reason}) rent {event.old_monthly_rent} -> {event.new_monthly_rent}"
        )
    if isinstance(event, ContractStatusChanged):
        origin = "automatic" if event.automatic_change else "manual"
        summary = f"{event.old_status} -> {event.new_status} ({origin})"
        return f"{summary}: {event.reason}" if event.reason else summary
    return event.event_type


class NotificationListener:
    def __init__(self, notifications: ContractNotificationService):
        self._notifications = notifications

    def __call__(self, event: ContractEvent) -> None:
        if isinstance(event, ContractCreated):
            self._notifications.notify_created(event)
        elif isinstance(event, ContractRenewed):
            self._notifications.notify_renewed(event)
        elif isinstance(event, ContractCancelled):
            self._notifications.notify_cancelled(event)
        elif isinstance(event, ContractModified):
            self._notifications.notify_modified(event)
        elif isinstance(event, ContractStatusChanged):
            self._notifications.notify_status_changed(event)


class CacheInvalidationListener:
    def __init__(self, cache: CacheRegistry):
        self._cache = cache

    def __call__(self, event: ContractEvent) -> None:
        if event.building_id is not None:
            self._cache.evict(FLATS_WITH_CONTRACTS, event.building_id)
        self._cache.evict(FLAT_ACTIVE_CONTRACT, event.flat_id)
        self._cache.evict(FLAT_OCCUPANCY_SUMMARY, event.flat_id)


def register_contract_listeners(
    dispatcher: EventDispatcher,
    *,
    session_factory: Callable[[], Session],
    audit: ContractAuditService | None = None,
    notifications: ContractNotificationService | None = None,
    cache: CacheRegistry | None = None,
) -> None:
    """Subscribe the standard listeners. Omitted collaborators are skipped."""
    dues = DueGenerationListener(session_factory, audit)
    dispatcher.subscribe(ContractCreated, dues.on_created, name="due_generation.created")
    dispatcher.subscribe(ContractRenewed, dues.on_renewed, name="due_generation.renewed")
    dispatcher.subscribe(ContractModified, dues.on_modified, name="due_generation.modified")

    if audit is not None:
        dispatcher.subscribe(ContractEvent, AuditListener(audit), name="audit")
    if notifications is not None:
        dispatcher.subscribe(ContractEvent, NotificationListener(notifications), name="notification")
    if cache is not None:
        dispatcher.subscribe(ContractEvent, CacheInvalidationListener(cache), name="cache_invalidation")

    logger.info(
        "contract_listeners_registered",
        extra={
            "audit": audit is not None,
            "notifications": notifications is not None,
            "cache": cache is not None,
        },
    )
