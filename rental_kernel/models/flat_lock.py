"""
Module: rental_kernel.models.flat_lock
Responsibility:
    One row per flat that has ever had a contract written.  Every operation
    that inserts a contract bumps the flat's row first, so writers for the
    same flat queue on the row (PostgreSQL) or the database write lock
    (SQLite) and each one runs its overlap check against committed data.
"""

from uuid import UUID

from sqlalchemy import BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString


class FlatContractLockModel(Base):
    __tablename__ = "rental_flat_contract_locks"

    flat_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)

    # Number of contract writes serialized through this row
    write_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<FlatContractLockModel {self.flat_id} writes={self.write_count}>"
