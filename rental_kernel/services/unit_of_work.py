"""
ContractUnitOfWork -- one transaction, then post-commit event dispatch.

Responsibility:
    Opens a Session, exposes the contract and due stores bound to it,
    buffers events published during the operation, and hands them to the
    dispatcher only once ``commit()`` has succeeded.

Guarantees:
    - Events are never delivered for a transaction that rolled back; the
      discarded events are logged (``events_discarded_on_rollback``).
    - Storage failures leave the unit as typed kernel errors:
        StaleDataError               -> OptimisticLockError
        IntegrityError               -> StorageConflictError
        OperationalError ("locked")  -> StorageConflictError
      Anything else propagates unchanged.
    - The session is always closed on exit.

Usage::

    with ContractUnitOfWork(session_factory, dispatcher) as uow:
        contract = uow.contracts.find_by_id(contract_id)
        ...
        uow.publish_after_commit(event)
        uow.commit()
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rental_kernel.domain.events import ContractEvent
from rental_kernel.exceptions import OptimisticLockError, StorageConflictError
from rental_kernel.logging_config import get_logger
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.stores.contract_store import SqlContractStore
from rental_kernel.stores.due_store import SqlDueStore

logger = get_logger("services.unit_of_work")

_LOCKED_MARKERS = ("database is locked", "could not obtain lock", "deadlock detected")


def translate_storage_error(exc: SQLAlchemyError, entity_type: str = "contract") -> Exception:
    """Map a SQLAlchemy failure to the kernel's concurrency errors."""
    if isinstance(exc, StaleDataError):
        return OptimisticLockError(entity_type)
    if isinstance(exc, IntegrityError):
        return StorageConflictError(str(exc.orig))
    if isinstance(exc, OperationalError):
        message = str(exc.orig).lower()
        if any(marker in message for marker in _LOCKED_MARKERS):
            return StorageConflictError(str(exc.orig))
    return exc


class ContractUnitOfWork:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: EventDispatcher | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._events: list[ContractEvent] = []
        self._committed = False
        self.session: Session | None = None

    def __enter__(self) -> "ContractUnitOfWork":
        self.session = self._session_factory()
        self.contracts = SqlContractStore(self.session)
        self.dues = SqlDueStore(self.session)
        self._events = []
        self._committed = False
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if not self._committed:
                self.rollback()
        finally:
            self.session.close()

        if isinstance(exc, SQLAlchemyError):
            translated = translate_storage_error(exc)
            if translated is not exc:
                raise translated from exc
        return False

    def publish_after_commit(self, event: ContractEvent) -> None:
        self._events.append(event)

    @property
    def pending_events(self) -> tuple[ContractEvent, ...]:
        return tuple(self._events)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            translated = translate_storage_error(exc)
            if translated is exc:
                raise
            raise translated from exc

        self._committed = True
        events, self._events = self._events, []
        logger.debug("transaction_committed", extra={"event_count": len(events)})
        if self._dispatcher is not None and events:
            self._dispatcher.dispatch_all(events)

    def rollback(self) -> None:
        self.session.rollback()
        if self._events:
            logger.info(
                "events_discarded_on_rollback",
                extra={
                    "event_count": len(self._events),
                    "event_types": [e.event_type for e in self._events],
                    "contract_ids": [str(e.contract_id) for e in self._events],
                },
            )
            self._events = []
