"""
Data transfer objects (``rental_kernel.domain.dtos``).

Frozen dataclasses that cross the service boundary.  Services return these
snapshots instead of ORM rows, so callers never hold a live session object.
Request objects are the inputs of the lifecycle operations; they are
validated by ``rental_kernel.domain.validation``, not on construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from rental_kernel.db.types import ZERO, round_money
from rental_kernel.domain.calendar import (
    clamp_day_to_month,
    days_until,
    months_between,
    periods_overlap,
)
from rental_kernel.domain.contract_state import ContractStatus


class DueStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Dues that still represent money owed and may be cancelled or marked overdue
OPEN_DUE_STATUSES = (DueStatus.UNPAID, DueStatus.OVERDUE)

# Dues against which money has moved
PAID_DUE_STATUSES = (DueStatus.PAID, DueStatus.PARTIALLY_PAID)


class AmountMode(str, Enum):
    """How the monthly rent of a new contract is determined."""

    FIXED = "fixed"  # request.monthly_rent
    RENT_DERIVED = "rent_derived"  # flat's listed rent, else fallback_amount


class CancellationCategory(str, Enum):
    TENANT_REQUEST = "tenant_request"
    NON_PAYMENT = "non_payment"
    LEASE_VIOLATION = "lease_violation"
    PROPERTY_SALE = "property_sale"
    MUTUAL_AGREEMENT = "mutual_agreement"
    OTHER = "other"


class ModificationReason(str, Enum):
    ANNUAL_INCREASE = "annual_increase"
    MARKET_ADJUSTMENT = "market_adjustment"
    NEGOTIATED_CHANGE = "negotiated_change"
    SERVICE_ADDITION = "service_addition"
    SERVICE_REMOVAL = "service_removal"
    ERROR_CORRECTION = "error_correction"
    OTHER = "other"


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True)
class ContractInfo:
    """Read-only snapshot of a contract."""

    id: UUID
    flat_id: UUID
    building_id: UUID | None
    start_date: date
    end_date: date
    monthly_rent: Decimal
    day_of_month: int
    status: ContractStatus
    security_deposit: Decimal
    auto_renew: bool
    dues_generated: bool
    version: int
    previous_contract_id: UUID | None = None
    tenant_name: str | None = None
    tenant_contact: str | None = None
    tenant_email: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancellation_category: CancellationCategory | None = None
    cancellation_date: date | None = None
    cancelled_by_id: UUID | None = None
    status_changed_at: datetime | None = None
    status_changed_by_id: UUID | None = None
    status_change_reason: str | None = None

    @property
    def is_terminated(self) -> bool:
        return self.status.is_terminated

    def overlaps_with_period(self, start_date: date, end_date: date) -> bool:
        return periods_overlap(self.start_date, self.end_date, start_date, end_date)

    def contract_length_in_months(self) -> int:
        return months_between(self.start_date, self.end_date, inclusive=True)

    def adjusted_due_date_for_month(self, year: int, month: int) -> date:
        return clamp_day_to_month(self.day_of_month, year, month)

    def total_contract_value(self) -> Decimal:
        return round_money(self.monthly_rent * self.contract_length_in_months())

    def total_with_deposit(self) -> Decimal:
        return self.total_contract_value() + (self.security_deposit or ZERO)

    def is_currently_active(self, today: date) -> bool:
        return (
            self.status == ContractStatus.ACTIVE
            and self.start_date <= today <= self.end_date
        )

    def days_until_expiry(self, today: date) -> int:
        return days_until(today, self.end_date)

    def is_expiring_within(self, days: int, today: date) -> bool:
        return (
            self.status == ContractStatus.ACTIVE
            and 0 <= self.days_until_expiry(today) <= days
        )

    def is_eligible_for_auto_renewal(self, today: date, window_days: int = 30) -> bool:
        return self.auto_renew and self.is_expiring_within(window_days, today)


@dataclass(frozen=True)
class MonthlyDueInfo:
    id: UUID
    flat_id: UUID
    contract_id: UUID
    due_date: date
    due_amount: Decimal
    paid_amount: Decimal
    status: DueStatus
    payment_date: date | None = None
    description: str | None = None

    @property
    def outstanding_amount(self) -> Decimal:
        if self.status == DueStatus.CANCELLED:
            return ZERO
        return self.due_amount - self.paid_amount


@dataclass(frozen=True)
class FlatRef:
    """What the kernel needs to know about a flat from the flat directory."""

    flat_id: UUID
    building_id: UUID | None = None
    is_active: bool = True
    monthly_rent: Decimal | None = None


@dataclass(frozen=True)
class OverlapConflict:
    contract_id: UUID
    start_date: date
    end_date: date
    status: ContractStatus


@dataclass(frozen=True)
class OverlapCheckResult:
    flat_id: UUID
    conflicts: tuple[OverlapConflict, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.conflicts


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one ``update_contract_statuses`` pass."""

    checked: int
    activated: int
    expired: int
    conflicts: int

    @property
    def changed(self) -> int:
        return self.activated + self.expired


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class CreateContractRequest:
    flat_id: UUID
    start_date: date
    end_date: date
    day_of_month: int
    monthly_rent: Decimal | None = None
    amount_mode: AmountMode = AmountMode.FIXED
    fallback_amount: Decimal | None = None
    security_deposit: Decimal = ZERO
    tenant_name: str | None = None
    tenant_contact: str | None = None
    tenant_email: str | None = None
    notes: str | None = None
    auto_renew: bool = False
    generate_dues_immediately: bool = True


@dataclass(frozen=True)
class RenewalRequest:
    """Continue an ACTIVE contract from the day after its end date.

    Unset fields carry over from the contract being renewed.  With no
    ``new_end_date`` the term is the configured default renewal length.
    """

    new_end_date: date | None = None
    new_monthly_rent: Decimal | None = None
    new_security_deposit: Decimal | None = None
    new_day_of_month: int | None = None
    renewal_notes: str | None = None
    generate_dues: bool = True


@dataclass(frozen=True)
class CancellationRequest:
    reason: str
    category: CancellationCategory = CancellationCategory.OTHER
    effective_date: date | None = None  # defaults to today
    cancel_unpaid_dues: bool = True
    refund_security_deposit: bool = False
    notes: str | None = None


@dataclass(frozen=True)
class ModificationRequest:
    effective_date: date
    reason: ModificationReason
    new_monthly_rent: Decimal | None = None
    new_security_deposit: Decimal | None = None
    new_day_of_month: int | None = None
    new_end_date: date | None = None
    modification_details: str | None = None
    notes: str | None = None
    regenerate_dues: bool = True

    @property
    def changes_terms(self) -> bool:
        return any(
            value is not None
            for value in (
                self.new_monthly_rent,
                self.new_security_deposit,
                self.new_day_of_month,
                self.new_end_date,
            )
        )
