"""
Storage adapters and permission gates.
"""

from sheetorm.adapters.base import (
    AllowAllGate,
    ManagedStorageAdapter,
    PermissionGate,
    StaticPermissionGate,
    StorageAdapter,
)
from sheetorm.adapters.csv_store import CsvWorkbookAdapter
from sheetorm.adapters.memory import InMemoryAdapter

__all__ = [
    "AllowAllGate",
    "CsvWorkbookAdapter",
    "InMemoryAdapter",
    "ManagedStorageAdapter",
    "PermissionGate",
    "StaticPermissionGate",
    "StorageAdapter",
]
