"""
Contract domain events (``rental_kernel.domain.events``).

Immutable records of lifecycle changes.  They are published through the
unit of work and delivered to handlers only after the originating
transaction commits.  Each event carries enough payload (ids, amounts,
dates, actor, tenant contact) for a handler to act without re-querying.
Events are not persisted by the kernel; the audit listener records them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4


@dataclass(frozen=True, kw_only=True)
class ContractEvent:
    """Common envelope for every contract event."""

    event_type: ClassVar[str] = "contract.event"

    contract_id: UUID
    flat_id: UUID
    actor_id: UUID
    occurred_at: datetime
    building_id: UUID | None = None
    tenant_name: str | None = None
    tenant_email: str | None = None
    event_id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True, kw_only=True)
class ContractCreated(ContractEvent):
    event_type: ClassVar[str] = "contract.created"

    start_date: date
    end_date: date
    monthly_rent: Decimal
    day_of_month: int
    status: str
    dues_generated: bool
    dues_created: int = 0
    generate_dues: bool = True


@dataclass(frozen=True, kw_only=True)
class ContractRenewed(ContractEvent):
    """``contract_id`` is the new contract; ``previous_contract_id`` the old."""

    event_type: ClassVar[str] = "contract.renewed"

    previous_contract_id: UUID
    previous_end_date: date
    start_date: date
    end_date: date
    monthly_rent: Decimal
    day_of_month: int
    generate_dues: bool = True

    @property
    def dues_from_date(self) -> date:
        return self.start_date


@dataclass(frozen=True, kw_only=True)
class ContractCancelled(ContractEvent):
    event_type: ClassVar[str] = "contract.cancelled"

    previous_status: str
    reason: str
    category: str
    effective_date: date
    cancelled_dues: int = 0
    refund_security_deposit: bool = False


@dataclass(frozen=True, kw_only=True)
class ContractModified(ContractEvent):
    """``contract_id`` is the new contract; ``previous_contract_id`` the old."""

    event_type: ClassVar[str] = "contract.modified"

    previous_contract_id: UUID
    effective_date: date
    reason: str
    old_monthly_rent: Decimal
    new_monthly_rent: Decimal
    regenerate_dues: bool
    cancelled_dues: int = 0


@dataclass(frozen=True, kw_only=True)
class ContractStatusChanged(ContractEvent):
    event_type: ClassVar[str] = "contract.status_changed"

    old_status: str
    new_status: str
    reason: str | None = None
    automatic_change: bool = False
    end_date: date | None = None
