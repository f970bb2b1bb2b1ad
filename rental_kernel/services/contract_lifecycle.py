"""
Contract Lifecycle Service (``rental_kernel.services.contract_lifecycle``).

Responsibility
--------------
The public API of the kernel: create, renew, cancel and modify contracts,
advance statuses from the calendar (the sweep), and answer the expiring /
renewable queries the sweeper needs.  Composes request validation, the
overlap validator, the state machine and due generation, commits, and
publishes the resulting domain event.

Architecture position
---------------------
**Kernel services layer**.  Every mutating method owns exactly one
``ContractUnitOfWork`` (the sweep owns one per contract), so the
transaction boundary is explicit at each call site.

Invariants enforced
-------------------
* Validation and state-machine checks run before anything is written.
* At most one ACTIVE contract per flat: checked against the store, and
  backed by the partial unique index when two creates race.
* A contract whose dues have been paid is never superseded
  (``is_modifiable``).
* Events reach handlers only after commit; handler failures never undo
  or fail the lifecycle call.
* Actor ids are explicit parameters.  Sweeps act as ``SYSTEM_ACTOR_ID``.

Failure modes
-------------
* ``ContractValidationError`` -- malformed request.
* ``ContractNotFoundError`` / ``FlatNotFoundError`` -- unknown id.
* ``ContractOverlapError`` / ``ActiveContractExistsError`` -- calendar
  collision.
* ``InvalidStateTransitionError`` and subclasses -- illegal for status.
* ``OptimisticLockError`` / ``StorageConflictError`` -- concurrent write;
  the transaction was rolled back and the caller may retry.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from rental_kernel.domain.calendar import add_months
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.contract_state import (
    ContractStatus,
    apply_transition,
    initial_status,
    is_modifiable,
    validate_transition,
)
from rental_kernel.domain.dtos import (
    CancellationRequest,
    ContractInfo,
    CreateContractRequest,
    FlatRef,
    ModificationRequest,
    MonthlyDueInfo,
    OverlapCheckResult,
    OverlapConflict,
    RenewalRequest,
    SweepResult,
)
from rental_kernel.domain.events import (
    ContractCancelled,
    ContractCreated,
    ContractModified,
    ContractRenewed,
    ContractStatusChanged,
)
from rental_kernel.domain.validation import (
    FieldError,
    require_valid,
    resolve_monthly_rent,
    validate_cancellation_request,
    validate_create_request,
    validate_modification_request,
    validate_renewal_request,
)
from rental_kernel.exceptions import (
    ActiveContractExistsError,
    ConcurrencyError,
    ContractAlreadyRenewedError,
    ContractNotFoundError,
    ContractNotModifiableError,
    ContractOverlapError,
    FlatNotFoundError,
    InvalidStateTransitionError,
    StorageConflictError,
)
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.contract import ContractModel
from rental_kernel.services.due_generation import DueGenerationService
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.services.overlap_validator import OverlapValidator
from rental_kernel.services.unit_of_work import ContractUnitOfWork
from rental_kernel.stores.base import FlatDirectory

logger = get_logger("services.contract_lifecycle")

SYSTEM_ACTOR_ID = UUID(int=0)

T = TypeVar("T")


def _override(value: T | None, fallback: T) -> T:
    return fallback if value is None else value


class ContractLifecycleService:
    """
    Orchestrates contract lifecycle changes.

    Contract
    --------
    * Mutating methods return the resulting ``ContractInfo`` snapshot (for
      renew and modify: the new contract) or raise a typed error.
    * Query methods open a read-only unit of work and return snapshots.

    Guarantees
    ----------
    * ``create_contract`` with ``generate_dues_immediately`` writes the
      contract, its dues and ``dues_generated`` in one transaction.
    * Creates, renewals and modifications for one flat are serialized on
      the flat lock row, so of two overlapping writers only one commits.
    * ``update_contract_statuses`` is idempotent: a second run on the same
      day changes nothing.

    Non-goals
    ---------
    * Payment recording.  Dues are marked paid by the payment subsystem.
    * Retrying conflicts.  Callers decide whether to retry.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: EventDispatcher | None = None,
        clock: Clock | None = None,
        flat_directory: FlatDirectory | None = None,
        default_renewal_months: int = 12,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._flats = flat_directory
        self._default_renewal_months = default_renewal_months

    def _unit_of_work(self) -> ContractUnitOfWork:
        return ContractUnitOfWork(self._session_factory, self._dispatcher)

    # =========================================================================
    # Create
    # =========================================================================

    def create_contract(
        self, request: CreateContractRequest, actor_id: UUID
    ) -> ContractInfo:
        today = self._clock.today()
        flat = self._lookup_flat(request.flat_id)
        require_valid(validate_create_request(request, today, flat))
        monthly_rent = resolve_monthly_rent(request, flat)
        status = initial_status(request.start_date, today)

        with LogContext.bind(flat_id=request.flat_id, actor_id=actor_id):
            try:
                with self._unit_of_work() as uow:
                    uow.contracts.lock_flat(request.flat_id)
                    self._check_create_conflicts(uow, request, status)

                    contract = ContractModel(
                        id=uuid4(),
                        flat_id=request.flat_id,
                        building_id=flat.building_id if flat else None,
                        start_date=request.start_date,
                        end_date=request.end_date,
                        monthly_rent=monthly_rent,
                        day_of_month=request.day_of_month,
                        status=status.value,
                        security_deposit=request.security_deposit,
                        auto_renew=request.auto_renew,
                        dues_generated=request.generate_dues_immediately,
                        notes=request.notes,
                        tenant_name=request.tenant_name,
                        tenant_contact=request.tenant_contact,
                        tenant_email=request.tenant_email,
                        status_changed_at=self._clock.now(),
                        status_changed_by_id=actor_id,
                        status_change_reason="Contract created",
                        created_by_id=actor_id,
                    )
                    uow.contracts.save(contract)

                    created_dues: list[MonthlyDueInfo] = []
                    if request.generate_dues_immediately:
                        created_dues = DueGenerationService(uow.dues).generate_dues(
                            contract, actor_id
                        )

                    uow.publish_after_commit(
                        ContractCreated(
                            contract_id=contract.id,
                            flat_id=contract.flat_id,
                            building_id=contract.building_id,
                            actor_id=actor_id,
                            occurred_at=self._clock.now(),
                            tenant_name=contract.tenant_name,
                            tenant_email=contract.tenant_email,
                            start_date=contract.start_date,
                            end_date=contract.end_date,
                            monthly_rent=contract.monthly_rent,
                            day_of_month=contract.day_of_month,
                            status=contract.status,
                            dues_generated=contract.dues_generated,
                            dues_created=len(created_dues),
                            generate_dues=request.generate_dues_immediately,
                        )
                    )
                    info = contract.to_dto()
                    uow.commit()
            except StorageConflictError as exc:
                # Lost a race: another writer activated a contract for this flat
                logger.warning(
                    "contract_create_conflict",
                    extra={"detail": exc.detail},
                )
                raise ActiveContractExistsError(request.flat_id) from exc

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(info.id),
                "status": info.status.value,
                "start_date": info.start_date.isoformat(),
                "end_date": info.end_date.isoformat(),
                "monthly_rent": str(info.monthly_rent),
                "dues_created": len(created_dues),
            },
        )
        return info

    def _check_create_conflicts(
        self,
        uow: ContractUnitOfWork,
        request: CreateContractRequest,
        status: ContractStatus,
    ) -> None:
        result = OverlapValidator(uow.contracts).validate_no_overlap(
            request.flat_id, request.start_date, request.end_date
        )
        active = uow.contracts.find_active_by_flat(request.flat_id)
        if active is not None:
            collides = any(c.contract_id == active.id for c in result.conflicts)
            if collides or status == ContractStatus.ACTIVE:
                conflicts = result.conflicts or (
                    OverlapConflict(
                        contract_id=active.id,
                        start_date=active.start_date,
                        end_date=active.end_date,
                        status=ContractStatus.ACTIVE,
                    ),
                )
                raise ActiveContractExistsError(request.flat_id, active.id, conflicts)
        if not result.is_valid:
            raise ContractOverlapError(request.flat_id, result.conflicts)

    # =========================================================================
    # Renew
    # =========================================================================

    def renew_contract(
        self, contract_id: UUID, request: RenewalRequest, actor_id: UUID
    ) -> ContractInfo:
        """Continue an ACTIVE contract with a new one starting the next day.

        Dues for the new contract cover only the extension and are created
        after commit by the due generation listener.
        """
        today = self._clock.today()
        now = self._clock.now()

        with LogContext.bind(contract_id=contract_id, actor_id=actor_id):
            with self._unit_of_work() as uow:
                old = self._load(uow, contract_id)
                uow.contracts.lock_flat(old.flat_id)
                require_valid(validate_renewal_request(request, old.end_date))
                validate_transition(old.status, ContractStatus.RENEWED, contract_id=old.id)
                successor = uow.contracts.find_successor(old.id)
                if successor is not None:
                    raise ContractAlreadyRenewedError(old.id, old.status, successor.id)

                new_start = old.end_date + timedelta(days=1)
                new_end = _override(
                    request.new_end_date,
                    add_months(old.end_date, self._default_renewal_months),
                )
                OverlapValidator(uow.contracts).require_no_overlap(
                    old.flat_id, new_start, new_end, exclude_contract_id=old.id
                )

                apply_transition(
                    old,
                    ContractStatus.RENEWED,
                    actor_id=actor_id,
                    reason="Contract renewed",
                    changed_at=now,
                )
                # Old row must leave ACTIVE before the successor is inserted
                uow.flush()

                new = ContractModel(
                    id=uuid4(),
                    flat_id=old.flat_id,
                    building_id=old.building_id,
                    start_date=new_start,
                    end_date=new_end,
                    monthly_rent=_override(request.new_monthly_rent, old.monthly_rent),
                    day_of_month=_override(request.new_day_of_month, old.day_of_month),
                    status=initial_status(new_start, today).value,
                    previous_contract_id=old.id,
                    security_deposit=_override(
                        request.new_security_deposit, old.security_deposit
                    ),
                    auto_renew=old.auto_renew,
                    dues_generated=False,
                    notes=_override(request.renewal_notes, old.notes),
                    tenant_name=old.tenant_name,
                    tenant_contact=old.tenant_contact,
                    tenant_email=old.tenant_email,
                    status_changed_at=now,
                    status_changed_by_id=actor_id,
                    status_change_reason=f"Renewal of contract {old.id}",
                    created_by_id=actor_id,
                )
                uow.contracts.save(new)

                uow.publish_after_commit(
                    ContractRenewed(
                        contract_id=new.id,
                        flat_id=new.flat_id,
                        building_id=new.building_id,
                        actor_id=actor_id,
                        occurred_at=now,
                        tenant_name=new.tenant_name,
                        tenant_email=new.tenant_email,
                        previous_contract_id=old.id,
                        previous_end_date=old.end_date,
                        start_date=new.start_date,
                        end_date=new.end_date,
                        monthly_rent=new.monthly_rent,
                        day_of_month=new.day_of_month,
                        generate_dues=request.generate_dues,
                    )
                )
                info = new.to_dto()
                uow.commit()

        logger.info(
            "contract_renewed",
            extra={
                "previous_contract_id": str(contract_id),
                "new_contract_id": str(info.id),
                "start_date": info.start_date.isoformat(),
                "end_date": info.end_date.isoformat(),
            },
        )
        return info

    # =========================================================================
    # Cancel
    # =========================================================================

    def cancel_contract(
        self, contract_id: UUID, request: CancellationRequest, actor_id: UUID
    ) -> ContractInfo:
        """Cancel a PENDING or ACTIVE contract.

        With ``cancel_unpaid_dues`` the contract's UNPAID and OVERDUE dues
        dated on or after the effective date are cancelled in the same
        transaction.  Paid and partially paid dues are left alone.
        """
        today = self._clock.today()
        now = self._clock.now()
        require_valid(validate_cancellation_request(request, today))
        effective_date = _override(request.effective_date, today)

        with LogContext.bind(contract_id=contract_id, actor_id=actor_id):
            with self._unit_of_work() as uow:
                contract = self._load(uow, contract_id)
                previous_status = contract.status
                apply_transition(
                    contract,
                    ContractStatus.CANCELLED,
                    actor_id=actor_id,
                    reason=request.reason,
                    changed_at=now,
                )
                contract.cancellation_reason = request.reason
                contract.cancellation_category = request.category.value
                contract.cancellation_date = effective_date
                contract.cancelled_by_id = actor_id
                if request.notes:
                    contract.notes = (
                        f"{contract.notes}\n{request.notes}" if contract.notes else request.notes
                    )

                cancelled_dues = 0
                if request.cancel_unpaid_dues:
                    cancelled_dues = DueGenerationService(uow.dues).cancel_unpaid_dues(
                        contract.id, effective_date, actor_id
                    )

                uow.publish_after_commit(
                    ContractCancelled(
                        contract_id=contract.id,
                        flat_id=contract.flat_id,
                        building_id=contract.building_id,
                        actor_id=actor_id,
                        occurred_at=now,
                        tenant_name=contract.tenant_name,
                        tenant_email=contract.tenant_email,
                        previous_status=previous_status,
                        reason=request.reason,
                        category=request.category.value,
                        effective_date=effective_date,
                        cancelled_dues=cancelled_dues,
                        refund_security_deposit=request.refund_security_deposit,
                    )
                )
                uow.flush()
                info = contract.to_dto()
                uow.commit()

        logger.info(
            "contract_cancelled",
            extra={
                "contract_id": str(contract_id),
                "previous_status": previous_status,
                "effective_date": effective_date.isoformat(),
                "cancelled_dues": cancelled_dues,
            },
        )
        return info

    # =========================================================================
    # Modify
    # =========================================================================

    def modify_contract(
        self, contract_id: UUID, request: ModificationRequest, actor_id: UUID
    ) -> ContractInfo:
        """Supersede a contract with one carrying the new terms.

        The new contract starts on the effective date (or the old start, if
        later).  An ACTIVE contract is replaced by an ACTIVE one, so the
        tenancy never has a gap.  With ``regenerate_dues`` the old
        contract's open dues from the effective date are cancelled here and
        the new contract's dues for that span are created after commit.
        """
        today = self._clock.today()
        now = self._clock.now()
        require_valid(validate_modification_request(request, today))

        with LogContext.bind(contract_id=contract_id, actor_id=actor_id):
            with self._unit_of_work() as uow:
                old = self._load(uow, contract_id)
                uow.contracts.lock_flat(old.flat_id)
                dues = DueGenerationService(uow.dues)
                old_status = ContractStatus(old.status)

                paid = dues.count_paid_dues(old.id)
                if not is_modifiable(old_status, old.dues_generated, paid > 0):
                    if old_status in (ContractStatus.PENDING, ContractStatus.ACTIVE):
                        raise ContractNotModifiableError(old.id, old.status, paid)
                    validate_transition(old_status, ContractStatus.SUPERSEDED, contract_id=old.id)

                new_start = max(request.effective_date, old.start_date)
                new_end = _override(request.new_end_date, old.end_date)
                if new_end < new_start:
                    require_valid([
                        FieldError("new_end_date", "must not be before the new start date")
                    ])
                OverlapValidator(uow.contracts).require_no_overlap(
                    old.flat_id, new_start, new_end, exclude_contract_id=old.id
                )

                apply_transition(
                    old,
                    ContractStatus.SUPERSEDED,
                    actor_id=actor_id,
                    reason=f"Superseded by modification ({request.reason.value})",
                    changed_at=now,
                )
                cancelled_dues = 0
                if request.regenerate_dues:
                    cancelled_dues = dues.cancel_unpaid_dues(
                        old.id, request.effective_date, actor_id
                    )
                uow.flush()

                if old_status == ContractStatus.ACTIVE:
                    new_status = ContractStatus.ACTIVE
                else:
                    new_status = initial_status(new_start, today)

                new = ContractModel(
                    id=uuid4(),
                    flat_id=old.flat_id,
                    building_id=old.building_id,
                    start_date=new_start,
                    end_date=new_end,
                    monthly_rent=_override(request.new_monthly_rent, old.monthly_rent),
                    day_of_month=_override(request.new_day_of_month, old.day_of_month),
                    status=new_status.value,
                    previous_contract_id=old.id,
                    security_deposit=_override(
                        request.new_security_deposit, old.security_deposit
                    ),
                    auto_renew=old.auto_renew,
                    dues_generated=False,
                    notes=_override(request.notes, old.notes),
                    tenant_name=old.tenant_name,
                    tenant_contact=old.tenant_contact,
                    tenant_email=old.tenant_email,
                    status_changed_at=now,
                    status_changed_by_id=actor_id,
                    status_change_reason=(
                        request.modification_details
                        or f"Modification of contract {old.id}"
                    ),
                    created_by_id=actor_id,
                )
                uow.contracts.save(new)

                uow.publish_after_commit(
                    ContractModified(
                        contract_id=new.id,
                        flat_id=new.flat_id,
                        building_id=new.building_id,
                        actor_id=actor_id,
                        occurred_at=now,
                        tenant_name=new.tenant_name,
                        tenant_email=new.tenant_email,
                        previous_contract_id=old.id,
                        effective_date=request.effective_date,
                        reason=request.reason.value,
                        old_monthly_rent=old.monthly_rent,
                        new_monthly_rent=new.monthly_rent,
                        regenerate_dues=request.regenerate_dues,
                        cancelled_dues=cancelled_dues,
                    )
                )
                info = new.to_dto()
                uow.commit()

        logger.info(
            "contract_modified",
            extra={
                "previous_contract_id": str(contract_id),
                "new_contract_id": str(info.id),
                "effective_date": request.effective_date.isoformat(),
                "cancelled_dues": cancelled_dues,
            },
        )
        return info

    # =========================================================================
    # Sweep
    # =========================================================================

    def update_contract_statuses(self) -> SweepResult:
        """Activate started PENDING contracts and expire ended ACTIVE ones.

        Each contract is advanced in its own transaction.  A contract that
        loses a concurrent-write race is logged and left for the next run.
        """
        today = self._clock.today()
        with self._unit_of_work() as uow:
            candidate_ids = [
                c.id for c in uow.contracts.find_needing_status_update(today)
            ]

        activated = expired = conflicts = 0
        for contract_id in candidate_ids:
            try:
                changes = self._advance_status(contract_id, today)
            except (ConcurrencyError, InvalidStateTransitionError):
                conflicts += 1
                logger.warning(
                    "status_sweep_conflict",
                    exc_info=True,
                    extra={"contract_id": str(contract_id)},
                )
                continue
            activated += changes.count(ContractStatus.ACTIVE)
            expired += changes.count(ContractStatus.EXPIRED)

        result = SweepResult(
            checked=len(candidate_ids),
            activated=activated,
            expired=expired,
            conflicts=conflicts,
        )
        logger.info(
            "contract_statuses_updated",
            extra={
                "as_of": today.isoformat(),
                "checked": result.checked,
                "activated": result.activated,
                "expired": result.expired,
                "conflicts": result.conflicts,
            },
        )
        return result

    def _advance_status(self, contract_id: UUID, today: date) -> list[ContractStatus]:
        now = self._clock.now()
        changes: list[ContractStatus] = []
        with self._unit_of_work() as uow:
            contract = uow.contracts.find_by_id(contract_id)
            if contract is None:
                return changes

            if contract.status == ContractStatus.PENDING.value and contract.start_date <= today:
                self._auto_transition(
                    uow, contract, ContractStatus.ACTIVE, "Contract activated on start date", now
                )
                changes.append(ContractStatus.ACTIVE)
            if contract.status == ContractStatus.ACTIVE.value and contract.end_date < today:
                self._auto_transition(
                    uow, contract, ContractStatus.EXPIRED, "Contract expired", now
                )
                changes.append(ContractStatus.EXPIRED)

            if changes:
                uow.commit()
        return changes

    def _auto_transition(
        self,
        uow: ContractUnitOfWork,
        contract: ContractModel,
        target: ContractStatus,
        reason: str,
        now: datetime,
    ) -> None:
        old_status = contract.status
        apply_transition(
            contract, target, actor_id=SYSTEM_ACTOR_ID, reason=reason, changed_at=now
        )
        uow.publish_after_commit(
            ContractStatusChanged(
                contract_id=contract.id,
                flat_id=contract.flat_id,
                building_id=contract.building_id,
                actor_id=SYSTEM_ACTOR_ID,
                occurred_at=now,
                tenant_name=contract.tenant_name,
                tenant_email=contract.tenant_email,
                old_status=old_status,
                new_status=target.value,
                reason=reason,
                automatic_change=True,
                end_date=contract.end_date,
            )
        )

    def mark_overdue_dues(self) -> int:
        """UNPAID dues dated before today become OVERDUE."""
        today = self._clock.today()
        with self._unit_of_work() as uow:
            marked = DueGenerationService(uow.dues).mark_overdue_dues(today, SYSTEM_ACTOR_ID)
            uow.commit()
        return marked

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def generate_missing_dues(
        self,
        contract_id: UUID,
        actor_id: UUID,
        from_date: date | None = None,
    ) -> list[MonthlyDueInfo]:
        """Re-run due generation for a contract (idempotent).

        The operational fix when a post-commit due generation failed.
        """
        with LogContext.bind(contract_id=contract_id, actor_id=actor_id):
            with self._unit_of_work() as uow:
                contract = self._load(uow, contract_id)
                if ContractStatus(contract.status).is_terminated:
                    raise InvalidStateTransitionError(
                        contract.status,
                        contract.status,
                        contract_id=contract.id,
                        reason="dues are not generated for terminated contracts",
                    )
                created = DueGenerationService(uow.dues).generate_dues(
                    contract, actor_id, from_date=from_date
                )
                if not contract.dues_generated:
                    contract.dues_generated = True
                    contract.updated_by_id = actor_id
                uow.commit()
        return created

    # =========================================================================
    # Queries
    # =========================================================================

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        with self._unit_of_work() as uow:
            return self._load(uow, contract_id).to_dto()

    def get_active_contract_for_flat(self, flat_id: UUID) -> ContractInfo | None:
        with self._unit_of_work() as uow:
            contract = uow.contracts.find_active_by_flat(flat_id)
            return contract.to_dto() if contract else None

    def has_active_contract(self, flat_id: UUID) -> bool:
        with self._unit_of_work() as uow:
            return OverlapValidator(uow.contracts).has_active_contract(flat_id)

    def get_contracts_for_flat(self, flat_id: UUID) -> list[ContractInfo]:
        with self._unit_of_work() as uow:
            return [c.to_dto() for c in uow.contracts.find_by_flat(flat_id)]

    def get_contract_history(self, contract_id: UUID) -> list[ContractInfo]:
        """The contract and its predecessors, oldest first."""
        chain: list[ContractInfo] = []
        with self._unit_of_work() as uow:
            contract = self._load(uow, contract_id)
            while contract is not None:
                chain.append(contract.to_dto())
                if contract.previous_contract_id is None:
                    break
                contract = uow.contracts.find_by_id(contract.previous_contract_id)
        chain.reverse()
        return chain

    def get_dues_for_contract(self, contract_id: UUID) -> list[MonthlyDueInfo]:
        with self._unit_of_work() as uow:
            self._load(uow, contract_id)
            return DueGenerationService(uow.dues).dues_for_contract(contract_id)

    def get_expiring_contracts(self, days_ahead: int) -> list[ContractInfo]:
        """ACTIVE contracts ending between today and ``days_ahead`` days out."""
        self._check_days_ahead(days_ahead)
        today = self._clock.today()
        with self._unit_of_work() as uow:
            return [c.to_dto() for c in uow.contracts.find_expiring(today, days_ahead)]

    def get_renewable_contracts(self, days_ahead: int) -> list[ContractInfo]:
        """Expiring contracts whose tenant has no unpaid or overdue past dues."""
        self._check_days_ahead(days_ahead)
        today = self._clock.today()
        with self._unit_of_work() as uow:
            return [c.to_dto() for c in uow.contracts.find_renewable(today, days_ahead)]

    def validate_contract_dates(
        self,
        flat_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
    ) -> OverlapCheckResult:
        with self._unit_of_work() as uow:
            return OverlapValidator(uow.contracts).validate_no_overlap(
                flat_id, start_date, end_date, exclude_contract_id
            )

    # =========================================================================
    # Internal
    # =========================================================================

    @staticmethod
    def _check_days_ahead(days_ahead: int) -> None:
        if days_ahead < 0:
            require_valid([FieldError("days_ahead", "must not be negative")])

    @staticmethod
    def _load(uow: ContractUnitOfWork, contract_id: UUID) -> ContractModel:
        contract = uow.contracts.find_by_id(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        return contract

    def _lookup_flat(self, flat_id: UUID) -> FlatRef | None:
        if self._flats is None or flat_id is None:
            return None
        flat = self._flats.get_flat(flat_id)
        if flat is None:
            raise FlatNotFoundError(flat_id)
        return flat
