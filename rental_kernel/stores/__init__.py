"""Persistence adapters and the collaborator protocols they implement."""

from rental_kernel.stores.base import ContractStore, DueStore, FlatDirectory
from rental_kernel.stores.contract_store import SqlContractStore
from rental_kernel.stores.due_store import SqlDueStore

__all__ = [
    "ContractStore",
    "DueStore",
    "FlatDirectory",
    "SqlContractStore",
    "SqlDueStore",
]
