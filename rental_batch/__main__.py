"""Command-line entry point: ``python -m rental_batch``."""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading

import yaml

from rental_kernel.config import load_config
from rental_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from rental_kernel.domain.clock import SystemClock
from rental_kernel.logging_config import configure_logging, get_logger
from rental_kernel.services.audit import ContractAuditService
from rental_kernel.services.contract_lifecycle import ContractLifecycleService
from rental_kernel.services.contract_listeners import register_contract_listeners
from rental_kernel.services.event_dispatcher import EventDispatcher
from rental_kernel.services.notification import ContractNotificationService, LoggingNotifier

from rental_batch.scheduler import SweepScheduler
from rental_batch.tasks import build_default_schedules, build_default_tasks

logger = get_logger("batch.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m rental_batch",
        description="Run scheduled rental contract sweeps.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python -m rental_batch --config rental.yaml\n"
            "  python -m rental_batch --config rental.yaml --once\n"
            "  python -m rental_batch --task contracts.update_statuses\n"
            "  python -m rental_batch --init-db --once\n"
        ),
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML configuration file (default: built-in defaults)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once", action="store_true",
        help="Run every task once and exit",
    )
    mode.add_argument(
        "--task", type=str, metavar="NAME",
        help="Run a single task once and exit",
    )
    parser.add_argument(
        "--init-db", action="store_true",
        help="Create missing tables before running",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    configure_logging(level=config.log_level)
    init_engine_from_url(config.database_url, echo=config.echo_sql)
    if args.init_db:
        create_tables()

    session_factory = get_session_factory()
    clock = SystemClock()
    dispatcher = EventDispatcher(max_workers=config.event_workers)
    notifications = ContractNotificationService(LoggingNotifier(), clock)
    register_contract_listeners(
        dispatcher,
        session_factory=session_factory,
        audit=ContractAuditService(session_factory, clock),
        notifications=notifications,
    )
    lifecycle = ContractLifecycleService(
        session_factory,
        dispatcher,
        clock,
        default_renewal_months=config.default_renewal_months,
    )
    registry = build_default_tasks(lifecycle, notifications, config)

    try:
        if args.task:
            if args.task not in registry:
                names = ", ".join(t.name for t in registry.list_tasks())
                print(f"  ERROR: unknown task '{args.task}' (known: {names})", file=sys.stderr)
                return 2
            print(json.dumps({args.task: registry.get(args.task).run()}, indent=2))
            return 0

        if args.once:
            results = {task.name: task.run() for task in registry.list_tasks()}
            print(json.dumps(results, indent=2))
            return 0

        if not config.scheduling_enabled:
            logger.warning("scheduling_disabled")
            return 0

        scheduler = SweepScheduler(
            registry,
            build_default_schedules(config),
            clock,
            tick_interval_seconds=config.scheduler_tick_seconds,
        )
        stopped = threading.Event()
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, lambda *_: stopped.set())

        scheduler.start()
        stopped.wait()
        scheduler.stop()
        return 0
    finally:
        dispatcher.shutdown()


if __name__ == "__main__":
    sys.exit(main())
