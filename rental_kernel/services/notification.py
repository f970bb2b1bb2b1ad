"""
Contract notifications.

``ContractNotificationService`` turns contract events and expiring
contracts into ``Notification`` records and hands them to a ``Notifier``.
Delivery is best effort: the kernel ships ``LoggingNotifier``; email or
SMS transports are supplied by the surrounding application.

Expiry urgency:
    URGENT   fewer than 7 days left
    WARNING  fewer than 14 days left
    INFO     otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.domain.dtos import ContractInfo
from rental_kernel.domain.events import (
    ContractCancelled,
    ContractCreated,
    ContractModified,
    ContractRenewed,
    ContractStatusChanged,
)
from rental_kernel.logging_config import get_logger

logger = get_logger("services.notification")


class NotificationKind(str, Enum):
    CONTRACT_CREATED = "contract_created"
    CONTRACT_RENEWED = "contract_renewed"
    CONTRACT_CANCELLED = "contract_cancelled"
    CONTRACT_MODIFIED = "contract_modified"
    CONTRACT_EXPIRED = "contract_expired"
    CONTRACT_EXPIRING = "contract_expiring"


class ExpiryUrgency(str, Enum):
    URGENT = "urgent"
    WARNING = "warning"
    INFO = "info"


def expiry_urgency(days_until_expiry: int) -> ExpiryUrgency:
    if days_until_expiry < 7:
        return ExpiryUrgency.URGENT
    if days_until_expiry < 14:
        return ExpiryUrgency.WARNING
    return ExpiryUrgency.INFO


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    contract_id: UUID
    recipient: str | None
    subject: str
    body: str
    urgency: ExpiryUrgency | None = None


@dataclass(frozen=True)
class ContractExpiryNotice:
    contract_id: UUID
    flat_id: UUID
    building_id: UUID | None
    tenant_name: str | None
    tenant_email: str | None
    tenant_contact: str | None
    end_date: date
    days_until_expiry: int
    monthly_rent: Decimal
    auto_renew: bool
    urgency: ExpiryUrgency

    @property
    def renewal_recommended(self) -> bool:
        return not self.auto_renew and self.urgency != ExpiryUrgency.INFO

    @classmethod
    def from_contract(cls, contract: ContractInfo, today: date) -> "ContractExpiryNotice":
        days = contract.days_until_expiry(today)
        return cls(
            contract_id=contract.id,
            flat_id=contract.flat_id,
            building_id=contract.building_id,
            tenant_name=contract.tenant_name,
            tenant_email=contract.tenant_email,
            tenant_contact=contract.tenant_contact,
            end_date=contract.end_date,
            days_until_expiry=days,
            monthly_rent=contract.monthly_rent,
            auto_renew=contract.auto_renew,
            urgency=expiry_urgency(days),
        )


@runtime_checkable
class Notifier(Protocol):
    def send(self, notification: Notification) -> None: ...


class LoggingNotifier:
    """Notifier that writes each notification to the structured log."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "notification_sent",
            extra={
                "kind": notification.kind.value,
                "contract_id": str(notification.contract_id),
                "recipient": notification.recipient,
                "subject": notification.subject,
                "urgency": notification.urgency.value if notification.urgency else None,
            },
        )


class ContractNotificationService:
    def __init__(self, notifier: Notifier | None = None, clock: Clock | None = None):
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Lifecycle events
    # -------------------------------------------------------------------------

    def notify_created(self, event: ContractCreated) -> None:
        self._send(
            NotificationKind.CONTRACT_CREATED,
            event.contract_id,
            event.tenant_email,
            "Your rental contract has been created",
            f"Contract from {event.start_date.isoformat()} to "
            f"{event.end_date.isoformat()}, monthly rent {event.monthly_rent}, "
            f"due on day {event.day_of_month} of each month.",
        )

    def notify_renewed(self, event: ContractRenewed) -> None:
        self._send(
            NotificationKind.CONTRACT_RENEWED,
            event.contract_id,
            event.tenant_email,
            "Your rental contract has been renewed",
            f"Renewed until {event.end_date.isoformat()} at monthly rent "
            f"{event.monthly_rent}.",
        )

    def notify_cancelled(self, event: ContractCancelled) -> None:
        self._send(
            NotificationKind.CONTRACT_CANCELLED,
            event.contract_id,
            event.tenant_email,
            "Your rental contract has been cancelled",
            f"Cancelled effective {event.effective_date.isoformat()}: {event.reason}",
        )

    def notify_modified(self, event: ContractModified) -> None:
        self._send(
            NotificationKind.CONTRACT_MODIFIED,
            event.contract_id,
            event.tenant_email,
            "Your rental contract has been modified",
            f"New terms effective {event.effective_date.isoformat()}; monthly rent "
            f"{event.old_monthly_rent} -> {event.new_monthly_rent}.",
        )

    def notify_status_changed(self, event: ContractStatusChanged) -> None:
        """Only expiry is announced; other status changes have their own notices."""
        if event.new_status != ContractStatus.EXPIRED.value:
            return
        self._send(
            NotificationKind.CONTRACT_EXPIRED,
            event.contract_id,
            event.tenant_email,
            "Your rental contract has expired",
            f"The contract ended on {event.end_date.isoformat() if event.end_date else 'its end date'}.",
        )

    # -------------------------------------------------------------------------
    # Expiry notices
    # -------------------------------------------------------------------------

    def build_expiry_notices(
        self, contracts: list[ContractInfo]
    ) -> list[ContractExpiryNotice]:
        today = self._clock.today()
        return [ContractExpiryNotice.from_contract(c, today) for c in contracts]

    def send_expiry_notices(self, contracts: list[ContractInfo]) -> int:
        """Send one notice per contract. Returns the number handed to the notifier.

        A failure for one contract is logged and does not stop the rest.
        """
        sent = 0
        for notice in self.build_expiry_notices(contracts):
            try:
                self._notifier.send(
                    Notification(
                        kind=NotificationKind.CONTRACT_EXPIRING,
                        contract_id=notice.contract_id,
                        recipient=notice.tenant_email,
                        subject=f"Your rental contract expires in {notice.days_until_expiry} day(s)",
                        body=(
                            f"The contract ends on {notice.end_date.isoformat()}."
                            + (" Please contact us about renewal." if notice.renewal_recommended else "")
                        ),
                        urgency=notice.urgency,
                    )
                )
                sent += 1
            except Exception:
                logger.exception(
                    "expiry_notice_failed",
                    extra={"contract_id": str(notice.contract_id)},
                )
        logger.info(
            "expiry_notices_sent",
            extra={"candidates": len(contracts), "sent": sent},
        )
        return sent

    def _send(
        self,
        kind: NotificationKind,
        contract_id: UUID,
        recipient: str | None,
        subject: str,
        body: str,
    ) -> None:
        self._notifier.send(
            Notification(
                kind=kind,
                contract_id=contract_id,
                recipient=recipient,
                subject=subject,
                body=body,
            )
        )
