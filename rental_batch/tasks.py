"""
Sweep tasks and the TaskRegistry.

Contract:
    A ``SweepTask`` has a unique ``name`` and a ``run()`` that performs one
    complete pass and returns counters for the log.  Tasks own no
    transactions: each delegates to a kernel service that opens its own
    units of work.

Default tasks:
    contracts.update_statuses         activate / expire, then mark overdue dues
    contracts.expiry_notices          notices for contracts ending within 30 days
    contracts.urgent_expiry_notices   notices for contracts ending within 7 days
    contracts.renewal_scan            log renewable contracts ending within 30 days
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rental_kernel.config import RentalConfig
from rental_kernel.logging_config import get_logger
from rental_kernel.services.contract_lifecycle import ContractLifecycleService
from rental_kernel.services.notification import ContractNotificationService

from rental_batch.domain.schedule import SweepSchedule

logger = get_logger("batch.tasks")

STATUS_SWEEP = "contracts.update_statuses"
EXPIRY_NOTICES = "contracts.expiry_notices"
URGENT_EXPIRY_NOTICES = "contracts.urgent_expiry_notices"
RENEWAL_SCAN = "contracts.renewal_scan"


@runtime_checkable
class SweepTask(Protocol):
    name: str
    description: str

    def run(self) -> dict[str, int]: ...


class StatusSweepTask:
    name = STATUS_SWEEP
    description = "Activate started contracts, expire ended ones, mark overdue dues"

    def __init__(self, lifecycle: ContractLifecycleService):
        self._lifecycle = lifecycle

    def run(self) -> dict[str, int]:
        result = self._lifecycle.update_contract_statuses()
        overdue = self._lifecycle.mark_overdue_dues()
        return {
            "checked": result.checked,
            "activated": result.activated,
            "expired": result.expired,
            "conflicts": result.conflicts,
            "overdue_marked": overdue,
        }


class ExpiryNoticeTask:
    def __init__(
        self,
        name: str,
        lifecycle: ContractLifecycleService,
        notifications: ContractNotificationService,
        days_ahead: int,
    ):
        self.name = name
        self.description = f"Notify tenants whose contract ends within {days_ahead} days"
        self._lifecycle = lifecycle
        self._notifications = notifications
        self._days_ahead = days_ahead

    def run(self) -> dict[str, int]:
        contracts = self._lifecycle.get_expiring_contracts(self._days_ahead)
        sent = self._notifications.send_expiry_notices(contracts)
        return {"candidates": len(contracts), "sent": sent}


class RenewalScanTask:
    name = RENEWAL_SCAN

    def __init__(self, lifecycle: ContractLifecycleService, days_ahead: int):
        self.description = f"Find renewable contracts ending within {days_ahead} days"
        self._lifecycle = lifecycle
        self._days_ahead = days_ahead

    def run(self) -> dict[str, int]:
        contracts = self._lifecycle.get_renewable_contracts(self._days_ahead)
        for contract in contracts:
            logger.info(
                "renewal_candidate",
                extra={
                    "contract_id": str(contract.id),
                    "flat_id": str(contract.flat_id),
                    "end_date": contract.end_date.isoformat(),
                    "auto_renew": contract.auto_renew,
                },
            )
        return {
            "candidates": len(contracts),
            "auto_renew": sum(1 for c in contracts if c.auto_renew),
        }


class TaskRegistry:
    """Sweep tasks keyed by name. One task per name."""

    def __init__(self) -> None:
        self._tasks: dict[str, SweepTask] = {}

    def register(self, task: SweepTask) -> None:
        if task.name in self._tasks:
            raise ValueError(f"task '{task.name}' is already registered")
        self._tasks[task.name] = task

    def get(self, name: str) -> SweepTask:
        try:
            return self._tasks[name]
        except KeyError:
            raise KeyError(f"unknown task '{name}'") from None

    def list_tasks(self) -> list[SweepTask]:
        return list(self._tasks.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks


def build_default_tasks(
    lifecycle: ContractLifecycleService,
    notifications: ContractNotificationService,
    config: RentalConfig,
) -> TaskRegistry:
    registry = TaskRegistry()
    registry.register(StatusSweepTask(lifecycle))
    registry.register(
        ExpiryNoticeTask(EXPIRY_NOTICES, lifecycle, notifications, config.expiry_notice_days)
    )
    registry.register(
        ExpiryNoticeTask(
            URGENT_EXPIRY_NOTICES, lifecycle, notifications, config.urgent_expiry_notice_days
        )
    )
    registry.register(RenewalScanTask(lifecycle, config.renewal_scan_days))
    return registry


def build_default_schedules(config: RentalConfig) -> list[SweepSchedule]:
    return [
        SweepSchedule("daily_status_sweep", STATUS_SWEEP, config.status_sweep_cron),
        SweepSchedule("daily_expiry_notices", EXPIRY_NOTICES, config.expiry_notice_cron),
        SweepSchedule(
            "daily_urgent_expiry_notices",
            URGENT_EXPIRY_NOTICES,
            config.urgent_expiry_notice_cron,
        ),
        SweepSchedule("weekly_renewal_scan", RENEWAL_SCAN, config.renewal_scan_cron),
    ]
