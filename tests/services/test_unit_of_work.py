"""
Tests for ContractUnitOfWork storage error translation.

Stale versions become OptimisticLockError; uniqueness violations and a
busy database become StorageConflictError.  The flat lock row serializes
contract writes per flat.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.exceptions import (
    ConcurrencyError,
    OptimisticLockError,
    StorageConflictError,
)
from rental_kernel.models.contract import ContractModel
from rental_kernel.models.flat_lock import FlatContractLockModel
from rental_kernel.services.unit_of_work import ContractUnitOfWork, translate_storage_error


def _contract(flat_id, actor_id, status=ContractStatus.ACTIVE) -> ContractModel:
    return ContractModel(
        id=uuid4(),
        flat_id=flat_id,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        monthly_rent=Decimal("900.00"),
        day_of_month=1,
        status=status.value,
        created_by_id=actor_id,
    )


class TestOptimisticLocking:
    def test_version_starts_at_one_and_increments(self, session_factory, actor_id):
        contract = _contract(uuid4(), actor_id)
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.save(contract)
            uow.commit()
        assert contract.version == 1

        with ContractUnitOfWork(session_factory) as uow:
            stored = uow.contracts.find_by_id(contract.id)
            stored.notes = "updated"
            uow.commit()
            assert stored.version == 2

    def test_stale_write_raises_optimistic_lock_error(self, session_factory, actor_id):
        contract = _contract(uuid4(), actor_id)
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.save(contract)
            uow.commit()

        with ContractUnitOfWork(session_factory) as slow:
            stale = slow.contracts.find_by_id(contract.id)

            with ContractUnitOfWork(session_factory) as fast:
                fast.contracts.find_by_id(contract.id).notes = "first writer"
                fast.commit()

            stale.notes = "second writer"
            with pytest.raises(OptimisticLockError) as exc_info:
                slow.commit()

        assert isinstance(exc_info.value, ConcurrencyError)
        assert exc_info.value.code == "OPTIMISTIC_LOCK_CONFLICT"
        with ContractUnitOfWork(session_factory) as uow:
            assert uow.contracts.find_by_id(contract.id).notes == "first writer"


class TestStorageConflicts:
    def test_second_active_contract_for_flat_is_rejected(self, session_factory, actor_id):
        flat_id = uuid4()
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.save(_contract(flat_id, actor_id))
            uow.commit()

        with pytest.raises(StorageConflictError):
            with ContractUnitOfWork(session_factory) as uow:
                uow.contracts.save(_contract(flat_id, actor_id))
                uow.commit()

    def test_many_pending_contracts_for_flat_allowed(self, session_factory, actor_id):
        flat_id = uuid4()
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.save(_contract(flat_id, actor_id, ContractStatus.PENDING))
            uow.contracts.save(_contract(flat_id, actor_id, ContractStatus.PENDING))
            uow.commit()
            assert len(uow.contracts.find_by_flat(flat_id)) == 2


def _write_counts(session_factory, flat_id) -> list[int]:
    with ContractUnitOfWork(session_factory) as uow:
        return list(
            uow.session.execute(
                select(FlatContractLockModel.write_count).where(
                    FlatContractLockModel.flat_id == flat_id
                )
            ).scalars()
        )


class TestFlatLock:
    def test_row_created_once_and_counted(self, session_factory):
        flat_id = uuid4()
        for _ in range(2):
            with ContractUnitOfWork(session_factory) as uow:
                uow.contracts.lock_flat(flat_id)
                uow.commit()

        assert _write_counts(session_factory, flat_id) == [2]

    def test_rolled_back_lock_leaves_no_trace(self, session_factory):
        flat_id = uuid4()
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.lock_flat(flat_id)

        assert _write_counts(session_factory, flat_id) == []

    def test_flats_are_locked_independently(self, session_factory):
        first, second = uuid4(), uuid4()
        with ContractUnitOfWork(session_factory) as uow:
            uow.contracts.lock_flat(first)
            uow.contracts.lock_flat(second)
            uow.commit()

        assert _write_counts(session_factory, first) == [1]
        assert _write_counts(session_factory, second) == [1]


class TestTranslateStorageError:
    def test_stale_data(self):
        assert isinstance(translate_storage_error(StaleDataError("gone")), OptimisticLockError)

    def test_integrity(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        translated = translate_storage_error(error)
        assert isinstance(translated, StorageConflictError)
        assert translated.detail == "UNIQUE constraint failed"

    def test_locked_database(self):
        error = OperationalError("UPDATE", {}, Exception("database is locked"))
        assert isinstance(translate_storage_error(error), StorageConflictError)

    def test_other_operational_errors_pass_through(self):
        error = OperationalError("SELECT", {}, Exception("no such table: x"))
        assert translate_storage_error(error) is error
