"""
EventDispatcher -- post-commit delivery of contract events.

Responsibility:
    Runs every handler subscribed to an event's type on a bounded worker
    pool.  The unit of work calls ``dispatch_all`` only after its
    transaction has committed, so handlers always observe committed state.

Guarantees:
    - Handler isolation: an exception in one handler is wrapped in
      ``SideEffectError``, logged and recorded; other handlers still run
      and nothing reaches the code that published the event.
    - Ordering between handlers of one event is not guaranteed.
    - ``synchronous=True`` runs handlers inline on the publishing thread
      (tests and single-threaded tools); the isolation rules are the same.

Non-goals:
    - No durable queue: events pending in the pool are lost if the
      process dies.  Due generation is idempotent, so an operator re-run
      reconciles.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from rental_kernel.domain.events import ContractEvent
from rental_kernel.exceptions import SideEffectError
from rental_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.event_dispatcher")

EventHandler = Callable[[ContractEvent], None]


class EventDispatcher:
    def __init__(
        self,
        max_workers: int = 4,
        synchronous: bool = False,
        max_recorded_failures: int = 1000,
    ):
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self._synchronous = synchronous
        self._executor: ThreadPoolExecutor | None = (
            None
            if synchronous
            else ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="contract-events"
            )
        )
        self._handlers: dict[type[ContractEvent], list[tuple[str, EventHandler]]] = (
            defaultdict(list)
        )
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._failures: list[SideEffectError] = []
        self._max_recorded_failures = max_recorded_failures
        self._closed = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        event_type: type[ContractEvent],
        handler: EventHandler,
        name: str | None = None,
    ) -> None:
        """Register ``handler`` for ``event_type`` and its subclasses."""
        handler_name = name or getattr(handler, "__qualname__", repr(handler))
        with self._lock:
            self._handlers[event_type].append((handler_name, handler))

    def handlers_for(self, event: ContractEvent) -> list[tuple[str, EventHandler]]:
        with self._lock:
            matched: list[tuple[str, EventHandler]] = []
            for registered_type, handlers in self._handlers.items():
                if isinstance(event, registered_type):
                    matched.extend(handlers)
            return matched

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, event: ContractEvent) -> None:
        handlers = self.handlers_for(event)
        logger.debug(
            "event_dispatched",
            extra={
                "event_type": event.event_type,
                "event_id": str(event.event_id),
                "handler_count": len(handlers),
            },
        )
        for name, handler in handlers:
            if self._executor is None:
                self._run_handler(name, handler, event)
                continue
            with self._lock:
                if self._closed:
                    logger.warning(
                        "event_dropped_dispatcher_closed",
                        extra={"event_type": event.event_type, "handler": name},
                    )
                    continue
                future = self._executor.submit(self._run_handler, name, handler, event)
                self._pending.add(future)
            future.add_done_callback(self._forget)

    def dispatch_all(self, events: list[ContractEvent]) -> None:
        for event in events:
            self.dispatch(event)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run_handler(self, name: str, handler: EventHandler, event: ContractEvent) -> None:
        with LogContext.bind(
            event_id=event.event_id,
            contract_id=event.contract_id,
            flat_id=event.flat_id,
            actor_id=event.actor_id,
        ):
            try:
                handler(event)
            except Exception as exc:
                failure = SideEffectError(
                    handler_name=name,
                    event_type=event.event_type,
                    event_id=event.event_id,
                    cause=f"{type(exc).__name__}: {exc}",
                    contract_id=event.contract_id,
                )
                with self._lock:
                    if len(self._failures) >= self._max_recorded_failures:
                        self._failures.pop(0)
                    self._failures.append(failure)
                logger.exception(
                    "side_effect_failed",
                    extra={
                        "handler": name,
                        "event_type": event.event_type,
                        "error_code": failure.code,
                    },
                )

    # -------------------------------------------------------------------------
    # Inspection and shutdown
    # -------------------------------------------------------------------------

    @property
    def failures(self) -> tuple[SideEffectError, ...]:
        with self._lock:
            return tuple(self._failures)

    def flush(self, timeout: float | None = 30.0) -> bool:
        """Wait for in-flight handlers. Returns False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        with self._lock:
            self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait_for_pending)
        logger.info("event_dispatcher_stopped")
