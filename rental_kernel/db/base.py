"""
Module: rental_kernel.db.base
Responsibility: Declarative base classes for the rental ORM models.  Provides
    the UUID primary key convention, the type annotation map, and the
    TrackedBase mixin for who/when metadata.
Architecture position: Kernel > DB.  Lowest-level import target; MUST NOT
    import from models/, stores/, services/, or domain/.

Invariants enforced:
    - UUID primary keys (uuid4), stored as String(36) so SQLite and
      PostgreSQL share one schema.
    - Decimal maps to Numeric(38, 9).  Rent and due amounts never use float.
    - TrackedBase rows always record their creator (created_by_id NOT NULL).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form.

    process_bind_param turns UUID into str on write; process_result_value
    turns str back into UUID on read.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all rental models.

    Guarantees:
        - id is a uuid4-generated UUID stored as String(36).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True); date maps to Date.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with timestamp and actor tracking.

    Guarantees:
        - created_at is set by the database on INSERT.
        - updated_at is set on INSERT and refreshed on every UPDATE.
        - created_by_id is required; updated_by_id is set by mutating calls.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )
