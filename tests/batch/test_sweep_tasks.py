"""Tests for the default sweep tasks, run against a wired lifecycle service."""

from datetime import date

import pytest

from rental_kernel.config import RentalConfig

from rental_batch.tasks import (
    EXPIRY_NOTICES,
    RENEWAL_SCAN,
    STATUS_SWEEP,
    URGENT_EXPIRY_NOTICES,
    StatusSweepTask,
    SweepTask,
    TaskRegistry,
    build_default_schedules,
    build_default_tasks,
)


@pytest.fixture
def registry(lifecycle, notifications):
    return build_default_tasks(lifecycle, notifications, RentalConfig())


class TestTaskRegistry:
    def test_default_tasks(self, registry):
        assert {t.name for t in registry.list_tasks()} == {
            STATUS_SWEEP,
            EXPIRY_NOTICES,
            URGENT_EXPIRY_NOTICES,
            RENEWAL_SCAN,
        }
        assert all(isinstance(t, SweepTask) for t in registry.list_tasks())

    def test_duplicate_registration(self, lifecycle):
        registry = TaskRegistry()
        registry.register(StatusSweepTask(lifecycle))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(StatusSweepTask(lifecycle))

    def test_unknown_task(self, registry):
        assert "contracts.nothing" not in registry
        with pytest.raises(KeyError, match="unknown task"):
            registry.get("contracts.nothing")

    def test_default_schedules_refer_to_default_tasks(self, registry):
        schedules = build_default_schedules(RentalConfig())
        assert [s.name for s in schedules] == [
            "daily_status_sweep",
            "daily_expiry_notices",
            "daily_urgent_expiry_notices",
            "weekly_renewal_scan",
        ]
        assert all(s.task_name in registry for s in schedules)


class TestStatusSweepTask:
    def test_hands_over_the_flat(self, registry, lifecycle, contract_request, actor_id, clock):
        outgoing = lifecycle.create_contract(
            contract_request(end_date=date(2024, 1, 31)), actor_id
        )
        incoming = lifecycle.create_contract(
            contract_request(start_date=date(2024, 2, 1)), actor_id
        )
        clock.advance_days(31)

        result = registry.get(STATUS_SWEEP).run()

        assert result == {
            "checked": 2,
            "activated": 1,
            "expired": 1,
            "conflicts": 0,
            "overdue_marked": 1,
        }
        assert lifecycle.get_active_contract_for_flat(outgoing.flat_id).id == incoming.id


class TestExpiryNoticeTasks:
    def test_windows(self, registry, lifecycle, contract_request, actor_id, flats, notifier):
        lifecycle.create_contract(contract_request(end_date=date(2024, 1, 5)), actor_id)
        other = flats.add()
        lifecycle.create_contract(
            contract_request(flat_id=other.flat_id, end_date=date(2024, 1, 20)), actor_id
        )
        notifier.sent.clear()

        assert registry.get(EXPIRY_NOTICES).run() == {"candidates": 2, "sent": 2}
        assert registry.get(URGENT_EXPIRY_NOTICES).run() == {"candidates": 1, "sent": 1}
        assert len(notifier.sent) == 3


class TestRenewalScanTask:
    def test_counts_candidates(
        self, registry, lifecycle, contract_request, actor_id, captured_logs
    ):
        info = lifecycle.create_contract(
            contract_request(end_date=date(2024, 1, 20), auto_renew=True), actor_id
        )

        assert registry.get(RENEWAL_SCAN).run() == {"candidates": 1, "auto_renew": 1}
        candidates = [r for r in captured_logs() if r["message"] == "renewal_candidate"]
        assert candidates[0]["contract_id"] == str(info.id)
