"""
Runtime configuration (``rental_kernel.config``).

``RentalConfig`` is a plain dataclass validated in ``__post_init__``.
``load_config`` reads a YAML file (keys match the field names) and lets
``RENTAL_DATABASE_URL`` override the database URL.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Self

import yaml

from rental_kernel.logging_config import get_logger

logger = get_logger("config")

DATABASE_URL_ENV = "RENTAL_DATABASE_URL"


@dataclass
class RentalConfig:
    """Configuration for the rental kernel and its sweeper."""

    database_url: str = "sqlite:///rental.db"
    echo_sql: bool = False
    log_level: str = "INFO"

    # Post-commit handler pool
    event_workers: int = 4

    # Sweeper cadence (5-field cron, UTC)
    status_sweep_cron: str = "0 1 * * *"
    expiry_notice_cron: str = "0 9 * * *"
    urgent_expiry_notice_cron: str = "0 15 * * *"
    renewal_scan_cron: str = "0 10 * * 1"
    scheduling_enabled: bool = True
    scheduler_tick_seconds: int = 60

    # Look-ahead windows (days)
    expiry_notice_days: int = 30
    urgent_expiry_notice_days: int = 7
    renewal_scan_days: int = 30

    # Default renewal term when the request gives no end date
    default_renewal_months: int = 12

    def __post_init__(self):
        if not self.database_url:
            raise ValueError("database_url is required")
        if self.event_workers <= 0:
            raise ValueError("event_workers must be positive")
        if self.scheduler_tick_seconds <= 0:
            raise ValueError("scheduler_tick_seconds must be positive")
        for name in (
            "expiry_notice_days",
            "urgent_expiry_notice_days",
            "renewal_scan_days",
            "default_renewal_months",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.urgent_expiry_notice_days > self.expiry_notice_days:
            raise ValueError(
                "urgent_expiry_notice_days cannot exceed expiry_notice_days"
            )

        logger.info(
            "rental_config_initialized",
            extra={
                "event_workers": self.event_workers,
                "scheduling_enabled": self.scheduling_enabled,
                "expiry_notice_days": self.expiry_notice_days,
                "renewal_scan_days": self.renewal_scan_days,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        return cls(**data)


def load_config(path: str | Path | None = None) -> RentalConfig:
    """Load configuration from a YAML file, or defaults when ``path`` is None.

    The environment variable ``RENTAL_DATABASE_URL`` wins over the file.
    """
    data: dict[str, Any] = {}
    if path is not None:
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {path}")
        data.update(loaded)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        data["database_url"] = env_url

    return RentalConfig.from_dict(data)
