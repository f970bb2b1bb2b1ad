"""Tests for expiry urgency and expiry notices."""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.domain.contract_state import ContractStatus
from rental_kernel.domain.dtos import ContractInfo
from rental_kernel.services.notification import (
    ContractExpiryNotice,
    ContractNotificationService,
    ExpiryUrgency,
    NotificationKind,
    Notifier,
    expiry_urgency,
)

TODAY = date(2024, 1, 1)


def _contract(days_left: int, **overrides) -> ContractInfo:
    fields = dict(
        id=uuid4(),
        flat_id=uuid4(),
        building_id=None,
        start_date=date(2023, 1, 1),
        end_date=TODAY + timedelta(days=days_left),
        monthly_rent=Decimal("950.00"),
        day_of_month=1,
        status=ContractStatus.ACTIVE,
        security_deposit=Decimal("0"),
        auto_renew=False,
        dues_generated=True,
        version=1,
        tenant_email="tenant@example.com",
    )
    fields.update(overrides)
    return ContractInfo(**fields)


@pytest.mark.parametrize(
    "days, urgency",
    [
        (0, ExpiryUrgency.URGENT),
        (6, ExpiryUrgency.URGENT),
        (7, ExpiryUrgency.WARNING),
        (13, ExpiryUrgency.WARNING),
        (14, ExpiryUrgency.INFO),
        (30, ExpiryUrgency.INFO),
    ],
)
def test_expiry_urgency_thresholds(days, urgency):
    assert expiry_urgency(days) == urgency


class TestExpiryNotice:
    def test_from_contract(self):
        contract = _contract(5)
        notice = ContractExpiryNotice.from_contract(contract, TODAY)

        assert notice.days_until_expiry == 5
        assert notice.urgency == ExpiryUrgency.URGENT
        assert notice.renewal_recommended

    def test_auto_renew_needs_no_recommendation(self):
        notice = ContractExpiryNotice.from_contract(_contract(5, auto_renew=True), TODAY)
        assert not notice.renewal_recommended

    def test_distant_expiry_needs_no_recommendation(self):
        notice = ContractExpiryNotice.from_contract(_contract(20), TODAY)
        assert notice.urgency == ExpiryUrgency.INFO
        assert not notice.renewal_recommended


class TestSendExpiryNotices:
    def test_one_notice_per_contract(self, notifications, notifier):
        contracts = [_contract(3), _contract(10), _contract(25)]

        sent = notifications.send_expiry_notices(contracts)

        assert sent == 3
        assert [n.kind for n in notifier.sent] == [NotificationKind.CONTRACT_EXPIRING] * 3
        assert [n.urgency for n in notifier.sent] == [
            ExpiryUrgency.URGENT,
            ExpiryUrgency.WARNING,
            ExpiryUrgency.INFO,
        ]
        assert notifier.sent[0].subject == "Your rental contract expires in 3 day(s)"
        assert "renewal" in notifier.sent[0].body

    def test_failure_for_one_contract_does_not_stop_the_rest(self, clock, captured_logs):
        class FlakyNotifier:
            def __init__(self):
                self.sent = []

            def send(self, notification):
                if notification.recipient == "broken@example.com":
                    raise ConnectionError("bounced")
                self.sent.append(notification)

        notifier = FlakyNotifier()
        service = ContractNotificationService(notifier, clock)
        good = _contract(3)
        bad = replace(_contract(4), tenant_email="broken@example.com")

        assert service.send_expiry_notices([bad, good]) == 1
        assert [n.contract_id for n in notifier.sent] == [good.id]
        failed = [r for r in captured_logs() if r["message"] == "expiry_notice_failed"]
        assert failed[0]["contract_id"] == str(bad.id)

    def test_recording_notifier_satisfies_protocol(self, notifier):
        assert isinstance(notifier, Notifier)
