"""
Request validation (``rental_kernel.domain.validation``).

Explicit validation functions, one per lifecycle request.  Each returns the
complete list of ``FieldError`` found (empty when valid) so callers report
every problem at once; ``require_valid`` turns a non-empty list into a
``ContractValidationError``.  Pure: the caller supplies ``today``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from rental_kernel.domain.dtos import (
    AmountMode,
    CancellationRequest,
    CreateContractRequest,
    FlatRef,
    ModificationRequest,
    RenewalRequest,
)
from rental_kernel.exceptions import ContractValidationError

MAX_NAME_LENGTH = 255
MAX_REASON_LENGTH = 1000
MAX_NOTES_LENGTH = 4000

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def require_valid(errors: list[FieldError]) -> None:
    if errors:
        raise ContractValidationError(errors)


# =============================================================================
# Field helpers
# =============================================================================


def _check_day_of_month(errors: list[FieldError], field: str, value: int | None) -> None:
    if value is None:
        errors.append(FieldError(field, "is required"))
    elif isinstance(value, bool) or not isinstance(value, int):
        errors.append(FieldError(field, "must be an integer"))
    elif not 1 <= value <= 31:
        errors.append(FieldError(field, "must be between 1 and 31"))


def _check_amount(
    errors: list[FieldError],
    field: str,
    value: Decimal | None,
    *,
    allow_zero: bool,
) -> None:
    if value is None:
        return
    if not isinstance(value, (Decimal, int)) or isinstance(value, bool):
        errors.append(FieldError(field, "must be a Decimal amount"))
    elif allow_zero and value < 0:
        errors.append(FieldError(field, "must not be negative"))
    elif not allow_zero and value <= 0:
        errors.append(FieldError(field, "must be positive"))


def _check_length(errors: list[FieldError], field: str, value: str | None, limit: int) -> None:
    if value is not None and len(value) > limit:
        errors.append(FieldError(field, f"must be at most {limit} characters"))


# =============================================================================
# Requests
# =============================================================================


def validate_create_request(
    request: CreateContractRequest,
    today: date,
    flat: FlatRef | None = None,
) -> list[FieldError]:
    """Validate a new contract.

    A start date in the past is accepted (back-dated paperwork); the end
    date must not be.  In rent-derived mode the flat's listed rent is used,
    and ``fallback_amount`` must be positive when the flat has none.
    """
    errors: list[FieldError] = []

    if request.flat_id is None:
        errors.append(FieldError("flat_id", "is required"))
    if request.start_date is None:
        errors.append(FieldError("start_date", "is required"))
    if request.end_date is None:
        errors.append(FieldError("end_date", "is required"))
    if request.start_date is not None and request.end_date is not None:
        if request.end_date < request.start_date:
            errors.append(FieldError("end_date", "must not be before start_date"))
        elif request.end_date < today:
            errors.append(FieldError("end_date", "must not be in the past"))

    _check_day_of_month(errors, "day_of_month", request.day_of_month)

    if request.amount_mode == AmountMode.FIXED:
        if request.monthly_rent is None:
            errors.append(FieldError("monthly_rent", "is required"))
        else:
            _check_amount(errors, "monthly_rent", request.monthly_rent, allow_zero=False)
    else:
        _check_amount(errors, "fallback_amount", request.fallback_amount, allow_zero=False)
        listed = flat.monthly_rent if flat is not None else None
        has_listed = listed is not None and listed > 0
        has_fallback = request.fallback_amount is not None and request.fallback_amount > 0
        if not (has_listed or has_fallback):
            errors.append(
                FieldError(
                    "fallback_amount",
                    "must be positive when the flat has no listed rent",
                )
            )

    _check_amount(errors, "security_deposit", request.security_deposit, allow_zero=True)
    _check_length(errors, "tenant_name", request.tenant_name, MAX_NAME_LENGTH)
    _check_length(errors, "tenant_contact", request.tenant_contact, MAX_NAME_LENGTH)
    _check_length(errors, "notes", request.notes, MAX_NOTES_LENGTH)
    if request.tenant_email and not _EMAIL_PATTERN.match(request.tenant_email):
        errors.append(FieldError("tenant_email", "is not a valid email address"))

    if flat is not None and not flat.is_active:
        errors.append(FieldError("flat_id", "flat is not active"))

    return errors


def resolve_monthly_rent(request: CreateContractRequest, flat: FlatRef | None) -> Decimal:
    """Rent for a new contract; call only after ``validate_create_request``."""
    if request.amount_mode == AmountMode.FIXED:
        return request.monthly_rent
    if flat is not None and flat.monthly_rent is not None and flat.monthly_rent > 0:
        return flat.monthly_rent
    return request.fallback_amount


def validate_renewal_request(
    request: RenewalRequest,
    current_end_date: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if request.new_end_date is not None and request.new_end_date <= current_end_date:
        errors.append(
            FieldError("new_end_date", "must be after the current contract's end date")
        )
    _check_amount(errors, "new_monthly_rent", request.new_monthly_rent, allow_zero=False)
    _check_amount(
        errors, "new_security_deposit", request.new_security_deposit, allow_zero=True
    )
    if request.new_day_of_month is not None:
        _check_day_of_month(errors, "new_day_of_month", request.new_day_of_month)
    _check_length(errors, "renewal_notes", request.renewal_notes, MAX_NOTES_LENGTH)
    return errors


def validate_cancellation_request(
    request: CancellationRequest,
    today: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if not request.reason or not request.reason.strip():
        errors.append(FieldError("reason", "is required"))
    _check_length(errors, "reason", request.reason, MAX_REASON_LENGTH)
    if request.effective_date is not None and request.effective_date > today:
        errors.append(FieldError("effective_date", "must not be in the future"))
    _check_length(errors, "notes", request.notes, MAX_NOTES_LENGTH)
    return errors


def validate_modification_request(
    request: ModificationRequest,
    today: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if request.effective_date is None:
        errors.append(FieldError("effective_date", "is required"))
    elif request.effective_date < today:
        errors.append(FieldError("effective_date", "must not be in the past"))
    if request.reason is None:
        errors.append(FieldError("reason", "is required"))
    if not request.changes_terms:
        errors.append(FieldError("request", "must change at least one term"))
    _check_amount(errors, "new_monthly_rent", request.new_monthly_rent, allow_zero=False)
    _check_amount(
        errors, "new_security_deposit", request.new_security_deposit, allow_zero=True
    )
    if request.new_day_of_month is not None:
        _check_day_of_month(errors, "new_day_of_month", request.new_day_of_month)
    if (
        request.new_end_date is not None
        and request.effective_date is not None
        and request.new_end_date < request.effective_date
    ):
        errors.append(FieldError("new_end_date", "must not be before effective_date"))
    _check_length(errors, "modification_details", request.modification_details, MAX_NOTES_LENGTH)
    _check_length(errors, "notes", request.notes, MAX_NOTES_LENGTH)
    return errors
