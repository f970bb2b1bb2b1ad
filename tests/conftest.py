"""
Pytest fixtures for the rental kernel test suite.

Provides:
- A file-backed SQLite database per test (fresh tables, real transactions,
  so concurrency tests exercise the storage-level constraints)
- A deterministic clock fixed on TODAY, a synchronous event dispatcher,
  an in-memory flat directory and a recording notifier
- A fully wired ContractLifecycleService with the standard listeners

SQLite is used in file mode rather than ``:memory:`` so that every session
gets its own connection, as it would against PostgreSQL.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from rental_kernel.db.engine import build_engine, create_tables
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.domain.dtos import CreateContractRequest, DueStatus, FlatRef
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rental_kernel.models.monthly_due import MonthlyDueModel
from rental_kernel.services.audit import ContractAuditService
from rental_kernel.services.cache import InMemoryCacheRegistry
from rental_kernel.services.contract_lifecycle import ContractLifecycleService
from rental_kernel.services.contract_listeners import register_contract_listeners
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.services.notification import ContractNotificationService, Notification


# Test actor ID for all test operations
TEST_ACTOR_ID = UUID("11111111-1111-1111-1111-111111111111")

TODAY = date(2024, 1, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture rental_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, lifecycle):
            lifecycle.create_contract(...)
            logs = captured_logs()
            assert any(r["message"] == "contract_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'rental_test.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


# =============================================================================
# Collaborators
# =============================================================================


class InMemoryFlatDirectory:
    """FlatDirectory test double."""

    def __init__(self):
        self._flats: dict[UUID, FlatRef] = {}

    def add(
        self,
        monthly_rent: Decimal | None = None,
        is_active: bool = True,
        building_id: UUID | None = None,
    ) -> FlatRef:
        flat = FlatRef(
            flat_id=uuid4(),
            building_id=building_id or uuid4(),
            is_active=is_active,
            monthly_rent=monthly_rent,
        )
        self._flats[flat.flat_id] = flat
        return flat

    def get_flat(self, flat_id: UUID) -> FlatRef | None:
        return self._flats.get(flat_id)


class RecordingNotifier:
    """Notifier test double that keeps what it was sent."""

    def __init__(self):
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)


@pytest.fixture
def actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock.on(TODAY)


@pytest.fixture
def dispatcher():
    dispatcher = EventDispatcher(synchronous=True)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def flats() -> InMemoryFlatDirectory:
    return InMemoryFlatDirectory()


@pytest.fixture
def flat(flats):
    return flats.add(monthly_rent=Decimal("1200.00"))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def cache() -> InMemoryCacheRegistry:
    return InMemoryCacheRegistry()


@pytest.fixture
def audit(session_factory, clock) -> ContractAuditService:
    return ContractAuditService(session_factory, clock)


@pytest.fixture
def notifications(notifier, clock) -> ContractNotificationService:
    return ContractNotificationService(notifier, clock)


@pytest.fixture
def lifecycle(session_factory, dispatcher, clock, flats, audit, notifications, cache):
    """ContractLifecycleService with due generation, audit, notification and
    cache listeners registered on a synchronous dispatcher."""
    register_contract_listeners(
        dispatcher,
        session_factory=session_factory,
        audit=audit,
        notifications=notifications,
        cache=cache,
    )
    return ContractLifecycleService(
        session_factory,
        dispatcher=dispatcher,
        clock=clock,
        flat_directory=flats,
    )


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def contract_request(flat):
    """Factory for CreateContractRequest on the default flat.

    Defaults: the whole of 2024, due on the 1st, rent 1000.00.
    """

    def _make(
        start_date: date = date(2024, 1, 1),
        end_date: date = date(2024, 12, 31),
        day_of_month: int = 1,
        monthly_rent: Decimal | None = Decimal("1000.00"),
        flat_id: UUID | None = None,
        **overrides,
    ) -> CreateContractRequest:
        return CreateContractRequest(
            flat_id=flat_id or flat.flat_id,
            start_date=start_date,
            end_date=end_date,
            day_of_month=day_of_month,
            monthly_rent=monthly_rent,
            **overrides,
        )

    return _make


@pytest.fixture
def pay_due(session_factory):
    """Mark a due paid (in full, or partially when ``amount`` is short)."""

    def _pay(due_id: UUID, amount: Decimal | None = None, paid_on: date = TODAY) -> None:
        session = session_factory()
        try:
            due = session.execute(
                select(MonthlyDueModel).where(MonthlyDueModel.id == due_id)
            ).scalar_one()
            paid = due.due_amount if amount is None else amount
            due.paid_amount = paid
            due.payment_date = paid_on
            due.status = (
                DueStatus.PAID.value if paid >= due.due_amount else DueStatus.PARTIALLY_PAID.value
            )
            session.commit()
        finally:
            session.close()

    return _pay
