"""
Tests for request validation.

Every validator returns the full list of field errors; require_valid turns
a non-empty list into ContractValidationError.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.domain.dtos import (
    AmountMode,
    CancellationRequest,
    CreateContractRequest,
    FlatRef,
    ModificationReason,
    ModificationRequest,
    RenewalRequest,
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
from rental_kernel.exceptions import ContractValidationError

TODAY = date(2024, 1, 1)


def _request(**overrides) -> CreateContractRequest:
    fields = dict(
        flat_id=uuid4(),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        day_of_month=1,
        monthly_rent=Decimal("1000.00"),
    )
    fields.update(overrides)
    return CreateContractRequest(**fields)


def _fields(errors: list[FieldError]) -> set[str]:
    return {e.field for e in errors}


# =============================================================================
# Create
# =============================================================================


class TestValidateCreateRequest:
    def test_valid_request(self):
        assert validate_create_request(_request(), TODAY) == []

    def test_back_dated_start_accepted(self):
        assert validate_create_request(_request(start_date=date(2023, 6, 1)), TODAY) == []

    def test_end_before_start(self):
        errors = validate_create_request(
            _request(start_date=date(2024, 6, 1), end_date=date(2024, 5, 31)), TODAY
        )
        assert _fields(errors) == {"end_date"}

    def test_end_in_the_past(self):
        errors = validate_create_request(
            _request(start_date=date(2023, 1, 1), end_date=date(2023, 12, 31)), TODAY
        )
        assert errors == [FieldError("end_date", "must not be in the past")]

    @pytest.mark.parametrize("day", [0, 32])
    def test_day_of_month_range(self, day):
        assert _fields(validate_create_request(_request(day_of_month=day), TODAY)) == {
            "day_of_month"
        }

    @pytest.mark.parametrize("rent", [Decimal("0"), Decimal("-5.00"), None])
    def test_fixed_mode_needs_positive_rent(self, rent):
        assert _fields(validate_create_request(_request(monthly_rent=rent), TODAY)) == {
            "monthly_rent"
        }

    def test_negative_deposit(self):
        errors = validate_create_request(_request(security_deposit=Decimal("-1")), TODAY)
        assert _fields(errors) == {"security_deposit"}

    def test_bad_email(self):
        errors = validate_create_request(_request(tenant_email="not-an-email"), TODAY)
        assert _fields(errors) == {"tenant_email"}

    def test_inactive_flat(self):
        flat = FlatRef(flat_id=uuid4(), is_active=False)
        errors = validate_create_request(_request(flat_id=flat.flat_id), TODAY, flat)
        assert _fields(errors) == {"flat_id"}

    def test_reports_every_problem(self):
        errors = validate_create_request(
            _request(
                day_of_month=40,
                monthly_rent=Decimal("0"),
                security_deposit=Decimal("-1"),
                tenant_name="x" * 300,
            ),
            TODAY,
        )
        assert _fields(errors) == {
            "day_of_month",
            "monthly_rent",
            "security_deposit",
            "tenant_name",
        }


class TestRentDerivedMode:
    def test_uses_flat_rent(self):
        flat = FlatRef(flat_id=uuid4(), monthly_rent=Decimal("1350.00"))
        request = _request(
            flat_id=flat.flat_id, monthly_rent=None, amount_mode=AmountMode.RENT_DERIVED
        )
        assert validate_create_request(request, TODAY, flat) == []
        assert resolve_monthly_rent(request, flat) == Decimal("1350.00")

    def test_falls_back_when_flat_has_no_rent(self):
        flat = FlatRef(flat_id=uuid4(), monthly_rent=None)
        request = _request(
            flat_id=flat.flat_id,
            monthly_rent=None,
            amount_mode=AmountMode.RENT_DERIVED,
            fallback_amount=Decimal("900.00"),
        )
        assert validate_create_request(request, TODAY, flat) == []
        assert resolve_monthly_rent(request, flat) == Decimal("900.00")

    def test_no_rent_and_no_fallback(self):
        flat = FlatRef(flat_id=uuid4(), monthly_rent=None)
        request = _request(
            flat_id=flat.flat_id, monthly_rent=None, amount_mode=AmountMode.RENT_DERIVED
        )
        assert _fields(validate_create_request(request, TODAY, flat)) == {"fallback_amount"}


# =============================================================================
# Renew / cancel / modify
# =============================================================================


class TestValidateRenewalRequest:
    def test_defaults_are_valid(self):
        assert validate_renewal_request(RenewalRequest(), date(2024, 12, 31)) == []

    def test_new_end_must_extend(self):
        errors = validate_renewal_request(
            RenewalRequest(new_end_date=date(2024, 12, 31)), date(2024, 12, 31)
        )
        assert _fields(errors) == {"new_end_date"}

    def test_new_rent_must_be_positive(self):
        errors = validate_renewal_request(
            RenewalRequest(new_monthly_rent=Decimal("0")), date(2024, 12, 31)
        )
        assert _fields(errors) == {"new_monthly_rent"}


class TestValidateCancellationRequest:
    def test_reason_required(self):
        errors = validate_cancellation_request(CancellationRequest(reason=" "), TODAY)
        assert _fields(errors) == {"reason"}

    def test_future_effective_date_rejected(self):
        errors = validate_cancellation_request(
            CancellationRequest(reason="moving", effective_date=date(2024, 1, 2)), TODAY
        )
        assert _fields(errors) == {"effective_date"}

    def test_past_effective_date_accepted(self):
        assert (
            validate_cancellation_request(
                CancellationRequest(reason="moving", effective_date=date(2023, 12, 1)), TODAY
            )
            == []
        )


class TestValidateModificationRequest:
    def test_valid(self):
        request = ModificationRequest(
            effective_date=date(2024, 7, 1),
            reason=ModificationReason.ANNUAL_INCREASE,
            new_monthly_rent=Decimal("1100.00"),
        )
        assert validate_modification_request(request, TODAY) == []

    def test_must_change_something(self):
        request = ModificationRequest(
            effective_date=date(2024, 7, 1), reason=ModificationReason.OTHER
        )
        assert _fields(validate_modification_request(request, TODAY)) == {"request"}

    def test_effective_date_not_in_past(self):
        request = ModificationRequest(
            effective_date=date(2023, 12, 31),
            reason=ModificationReason.OTHER,
            new_day_of_month=5,
        )
        assert _fields(validate_modification_request(request, TODAY)) == {"effective_date"}

    def test_new_end_before_effective(self):
        request = ModificationRequest(
            effective_date=date(2024, 7, 1),
            reason=ModificationReason.OTHER,
            new_end_date=date(2024, 6, 30),
        )
        assert _fields(validate_modification_request(request, TODAY)) == {"new_end_date"}


def test_require_valid_raises_with_all_errors():
    errors = [FieldError("a", "bad"), FieldError("b", "worse")]
    with pytest.raises(ContractValidationError) as exc_info:
        require_valid(errors)
    assert exc_info.value.errors == tuple(errors)
    assert exc_info.value.code == "CONTRACT_VALIDATION_FAILED"
    require_valid([])
