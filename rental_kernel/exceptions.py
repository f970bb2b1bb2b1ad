"""
Typed exception hierarchy for the rental kernel.

Every failure a caller can observe is a subclass of ``RentalKernelError``
with a machine-readable ``code`` class attribute and structured
attributes, so callers catch by type and read fields instead of parsing
messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RentalKernelError (base)
    |
    +-- ContractValidationError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- FlatNotFoundError
    |
    +-- ContractOverlapError
    |   +-- ActiveContractExistsError
    |
    +-- InvalidStateTransitionError
    |   +-- ContractNotModifiableError
    |   +-- ContractAlreadyRenewedError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |   +-- StorageConflictError
    |
    +-- SideEffectError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | CONTRACT_VALIDATION_FAILED  | Malformed or missing request fields
----------------|-----------------------------|-----------------------------------------
Not found       | CONTRACT_NOT_FOUND          | Contract id unknown
                | FLAT_NOT_FOUND              | Flat id unknown to the flat directory
----------------|-----------------------------|-----------------------------------------
Overlap         | CONTRACT_OVERLAP            | Date range collides with a live contract
                | ACTIVE_CONTRACT_EXISTS      | Flat already has an ACTIVE contract
----------------|-----------------------------|-----------------------------------------
State           | INVALID_STATE_TRANSITION    | Operation illegal for current status
                | CONTRACT_NOT_MODIFIABLE     | Dues generated and at least one paid
                | CONTRACT_ALREADY_RENEWED    | Contract already has a successor
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Stale version on update (retryable)
                | STORAGE_CONFLICT            | Uniqueness violation or locked database
----------------|-----------------------------|-----------------------------------------
Side effect     | SIDE_EFFECT_FAILED          | Post-commit handler failed (logged only)

Validation, state and overlap errors are raised before anything is
written.  Concurrency errors are raised after a failed flush or commit;
the transaction has already been rolled back.  ``SideEffectError`` is
never raised into a lifecycle call; the event dispatcher records and logs
it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class RentalKernelError(Exception):
    """Base exception for all rental kernel errors."""

    code: str = "RENTAL_KERNEL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Validation
# =============================================================================


class ContractValidationError(RentalKernelError):
    """One or more request fields failed validation.

    ``errors`` holds the complete list of field errors so the caller can
    report every problem in a single round trip.
    """

    code: str = "CONTRACT_VALIDATION_FAILED"

    def __init__(self, errors: Sequence[Any]):
        self.errors = tuple(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Contract request is invalid: {summary}")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(RentalKernelError):
    """Base for unknown identifiers."""

    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: Any):
        self.contract_id = str(contract_id)
        super().__init__(f"Contract not found: {contract_id}")


class FlatNotFoundError(NotFoundError):
    code: str = "FLAT_NOT_FOUND"

    def __init__(self, flat_id: Any):
        self.flat_id = str(flat_id)
        super().__init__(f"Flat not found: {flat_id}")


# =============================================================================
# Overlap
# =============================================================================


class ContractOverlapError(RentalKernelError):
    """Candidate date range collides with one or more live contracts.

    ``conflicts`` lists every colliding contract (id, range, status), not
    just the first one found.
    """

    code: str = "CONTRACT_OVERLAP"

    def __init__(self, flat_id: Any, conflicts: Sequence[Any]):
        self.flat_id = str(flat_id)
        self.conflicts = tuple(conflicts)
        ranges = ", ".join(
            f"{c.contract_id} [{c.start_date.isoformat()}..{c.end_date.isoformat()}]"
            for c in self.conflicts
        )
        super().__init__(
            f"Flat {flat_id} already has contracts in this period: {ranges}"
        )


class ActiveContractExistsError(ContractOverlapError):
    """Flat already has an ACTIVE contract."""

    code: str = "ACTIVE_CONTRACT_EXISTS"

    def __init__(
        self,
        flat_id: Any,
        existing_contract_id: Any = None,
        conflicts: Sequence[Any] = (),
    ):
        self.existing_contract_id = (
            str(existing_contract_id) if existing_contract_id is not None else None
        )
        super().__init__(flat_id, conflicts)
        self.message = (
            f"Flat {flat_id} already has an active contract"
            + (f": {existing_contract_id}" if existing_contract_id else "")
        )
        self.args = (self.message,)


# =============================================================================
# State
# =============================================================================


class InvalidStateTransitionError(RentalKernelError):
    """Requested operation is illegal for the contract's current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        contract_id: Any = None,
        reason: str | None = None,
    ):
        self.current_status = str(current_status)
        self.requested_status = str(requested_status)
        self.contract_id = str(contract_id) if contract_id is not None else None
        message = (
            f"Cannot move contract from {self.current_status} "
            f"to {self.requested_status}"
        )
        if contract_id is not None:
            message = f"{message} (contract {contract_id})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ContractNotModifiableError(InvalidStateTransitionError):
    """Dues were generated and money has already been paid against them."""

    code: str = "CONTRACT_NOT_MODIFIABLE"

    def __init__(self, contract_id: Any, current_status: str, paid_due_count: int):
        self.paid_due_count = paid_due_count
        super().__init__(
            current_status,
            "superseded",
            contract_id=contract_id,
            reason=f"{paid_due_count} due(s) already paid",
        )


class ContractAlreadyRenewedError(InvalidStateTransitionError):
    code: str = "CONTRACT_ALREADY_RENEWED"

    def __init__(self, contract_id: Any, current_status: str, successor_id: Any):
        self.successor_id = str(successor_id)
        super().__init__(
            current_status,
            "renewed",
            contract_id=contract_id,
            reason=f"already continued by contract {successor_id}",
        )


# =============================================================================
# Concurrency
# =============================================================================


class ConcurrencyError(RentalKernelError):
    """Base for write conflicts. Callers may retry the whole operation."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Row version changed between read and write."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: Any = None):
        self.entity_type = entity_type
        self.entity_id = str(entity_id) if entity_id is not None else None
        super().__init__(
            f"Concurrent update detected on {entity_type}"
            + (f" {entity_id}" if entity_id is not None else "")
        )


class StorageConflictError(ConcurrencyError):
    """Storage rejected the write (uniqueness violation, busy database)."""

    code: str = "STORAGE_CONFLICT"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Storage conflict: {detail}")


# =============================================================================
# Side effects
# =============================================================================


class SideEffectError(RentalKernelError):
    """A post-commit event handler failed.

    Never propagated into the lifecycle call path; recorded by the
    dispatcher so operators can reconcile (e.g. re-run due generation).
    """

    code: str = "SIDE_EFFECT_FAILED"

    def __init__(
        self,
        handler_name: str,
        event_type: str,
        event_id: Any,
        cause: str,
        contract_id: Any = None,
    ):
        self.handler_name = handler_name
        self.event_type = event_type
        self.event_id = str(event_id)
        self.contract_id = str(contract_id) if contract_id is not None else None
        self.cause = cause
        super().__init__(
            f"Handler {handler_name} failed for {event_type} {event_id}: {cause}"
        )
