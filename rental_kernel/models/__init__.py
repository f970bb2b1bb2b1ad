"""ORM models. Importing this package registers every table on Base.metadata."""

from rental_kernel.models.audit_log import ContractAuditLogModel
from rental_kernel.models.contract import ContractModel
from rental_kernel.models.flat_lock import FlatContractLockModel
from rental_kernel.models.monthly_due import MonthlyDueModel

__all__ = [
    "ContractAuditLogModel",
    "ContractModel",
    "FlatContractLockModel",
    "MonthlyDueModel",
]
