"""
rental_kernel.services -- Package init and public API.

Responsibility:
    Orchestration over the domain rules and the stores.  This is the only
    kernel layer that opens sessions, commits, or publishes events.

Architecture position:
    Services -- stateful orchestration over domain + stores.

    Dependency direction:
        rental_kernel.services -> rental_kernel.domain  (allowed)
        rental_kernel.services -> rental_kernel.stores  (allowed)
        rental_kernel.domain   -> rental_kernel.services (FORBIDDEN)

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.
"""

from rental_kernel.services.audit import AuditAction, ContractAuditService
from rental_kernel.services.cache import CacheRegistry, InMemoryCacheRegistry
from rental_kernel.services.contract_lifecycle import (
    SYSTEM_ACTOR_ID,
    ContractLifecycleService,
)
from rental_kernel.services.contract_listeners import register_contract_listeners
from rental_kernel.services.due_generation import DueGenerationService
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.services.notification import (
    ContractNotificationService,
    LoggingNotifier,
    Notification,
    Notifier,
)
from rental_kernel.services.overlap_validator import OverlapValidator
from rental_kernel.services.unit_of_work import ContractUnitOfWork

__all__ = [
    "SYSTEM_ACTOR_ID",
    "AuditAction",
    "CacheRegistry",
    "ContractAuditService",
    "ContractLifecycleService",
    "ContractNotificationService",
    "ContractUnitOfWork",
    "DueGenerationService",
    "EventDispatcher",
    "InMemoryCacheRegistry",
    "LoggingNotifier",
    "Notification",
    "Notifier",
    "OverlapValidator",
    "register_contract_listeners",
]
