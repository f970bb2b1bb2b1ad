"""
Contract state machine (``rental_kernel.domain.contract_state``).

Responsibility
--------------
Owns the contract statuses, the table of legal transitions, and the single
modifiability predicate.  Every status change in the kernel goes through
``apply_transition``, which validates before it touches any field.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ``apply_transition`` mutates whatever
object it is handed (an ORM row in practice) but performs no I/O.

Transitions
-----------
::

    pending --activate--> active --expire--> expired
    pending|active --cancel--> cancelled
    active --renew--> renewed
    pending|active --supersede--> superseded

``expired``, ``cancelled``, ``renewed`` and ``superseded`` are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from rental_kernel.exceptions import InvalidStateTransitionError


class ContractStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    RENEWED = "renewed"
    SUPERSEDED = "superseded"

    @property
    def is_terminated(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    ContractStatus.EXPIRED,
    ContractStatus.CANCELLED,
    ContractStatus.RENEWED,
    ContractStatus.SUPERSEDED,
})

# Statuses that still occupy the flat's calendar for overlap purposes.
# Expired and renewed contracts keep their (past) ranges; cancelled and
# superseded ones give theirs up.
RANGE_RELEASING_STATUSES = frozenset({
    ContractStatus.CANCELLED,
    ContractStatus.SUPERSEDED,
})


@dataclass(frozen=True)
class ContractTransition:
    """One legal edge in the contract lifecycle.

    ``automatic`` transitions are driven by the sweep from dates alone;
    the others need an explicit caller action.
    """

    from_status: ContractStatus
    to_status: ContractStatus
    action: str
    automatic: bool = False
    requires_reason: bool = False


CONTRACT_TRANSITIONS: tuple[ContractTransition, ...] = (
    ContractTransition(ContractStatus.PENDING, ContractStatus.ACTIVE, "activate", automatic=True),
    ContractTransition(ContractStatus.ACTIVE, ContractStatus.EXPIRED, "expire", automatic=True),
    ContractTransition(ContractStatus.PENDING, ContractStatus.CANCELLED, "cancel", requires_reason=True),
    ContractTransition(ContractStatus.ACTIVE, ContractStatus.CANCELLED, "cancel", requires_reason=True),
    ContractTransition(ContractStatus.ACTIVE, ContractStatus.RENEWED, "renew"),
    ContractTransition(ContractStatus.PENDING, ContractStatus.SUPERSEDED, "supersede"),
    ContractTransition(ContractStatus.ACTIVE, ContractStatus.SUPERSEDED, "supersede"),
)

_TRANSITION_INDEX: dict[tuple[ContractStatus, ContractStatus], ContractTransition] = {
    (t.from_status, t.to_status): t for t in CONTRACT_TRANSITIONS
}


def allowed_targets(current: ContractStatus | str) -> frozenset[ContractStatus]:
    current = ContractStatus(current)
    return frozenset(t.to_status for t in CONTRACT_TRANSITIONS if t.from_status == current)


def validate_transition(
    current: ContractStatus | str,
    requested: ContractStatus | str,
    contract_id: UUID | None = None,
    reason: str | None = None,
) -> ContractTransition:
    """Return the matching transition or raise ``InvalidStateTransitionError``."""
    current = ContractStatus(current)
    requested = ContractStatus(requested)
    transition = _TRANSITION_INDEX.get((current, requested))
    if transition is None:
        detail = (
            f"{current.value} is terminal" if current.is_terminated else None
        )
        raise InvalidStateTransitionError(
            current.value, requested.value, contract_id=contract_id, reason=detail
        )
    if transition.requires_reason and not (reason and reason.strip()):
        raise InvalidStateTransitionError(
            current.value,
            requested.value,
            contract_id=contract_id,
            reason="a reason is required",
        )
    return transition


def apply_transition(
    contract: Any,
    requested: ContractStatus,
    *,
    actor_id: UUID,
    reason: str | None,
    changed_at: datetime,
) -> ContractTransition:
    """Validate, then move ``contract`` to ``requested``.

    ``contract`` needs ``id``, ``status``, ``status_changed_at``,
    ``status_changed_by_id``, ``status_change_reason`` and
    ``updated_by_id`` attributes.  Nothing is written when validation fails.
    """
    transition = validate_transition(
        contract.status, requested, contract_id=contract.id, reason=reason
    )
    contract.status = requested.value
    contract.status_changed_at = changed_at
    contract.status_changed_by_id = actor_id
    contract.status_change_reason = reason
    contract.updated_by_id = actor_id
    return transition


def initial_status(start_date: date, today: date) -> ContractStatus:
    """Status a new contract is created in."""
    if start_date <= today:
        return ContractStatus.ACTIVE
    return ContractStatus.PENDING


def is_modifiable(
    status: ContractStatus | str,
    dues_generated: bool,
    has_paid_dues: bool,
) -> bool:
    """Whether a contract may be superseded by a modification.

    Only PENDING and ACTIVE contracts qualify.  Generated dues alone do not
    block a modification (unpaid dues are cancelled and regenerated); once
    any due has been paid, the contract is frozen.
    """
    if ContractStatus(status) not in (ContractStatus.PENDING, ContractStatus.ACTIVE):
        return False
    return not (dues_generated and has_paid_dues)
