"""
Storage adapter and permission gate interfaces.

A storage adapter exposes a remote, string-celled table store as typed
records. Row indices are 1-based and row 1 holds the column headers, so data
rows start at index 2. Any call may fail with `ConnectionFailure`, an
authentication error, or another `StorageError`; callers must not assume
partial success.

The permission gate is consulted by the executor before every adapter read
(`ensure_readable`) or write (`ensure_writable`).
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Protocol, Sequence, Tuple, runtime_checkable

from sheetorm.errors import AuthenticationError, AuthenticationRequiredError

Record = Dict[str, Any]
RowUpdate = Tuple[int, Mapping[str, Any]]

HEADER_ROW = 1
FIRST_DATA_ROW = 2


@runtime_checkable
class StorageAdapter(Protocol):
    """
    Contract between the query executor and a tabular store.
    """

    async def fetch_table(self, name: str) -> List[Record]:
        """Return every data row of `name` as a typed record, in row order."""
        ...

    async def append_rows(self, name: str, records: Sequence[Mapping[str, Any]]) -> None:
        """Append records after the last row, in header column order."""
        ...

    async def update_rows(self, name: str, updates: Sequence[RowUpdate]) -> None:
        """Replace each (row_index, record) pair in a single batched call."""
        ...

    async def delete_rows(self, name: str, row_indices: Sequence[int]) -> None:
        """Physically remove the given rows in a single batched call."""
        ...

    async def max_numeric_value(self, name: str, column: str) -> float:
        """Largest numeric value stored in `column`; 0 when there is none."""
        ...


@runtime_checkable
class ManagedStorageAdapter(StorageAdapter, Protocol):
    """Adapter that can also list and create tables."""

    async def table_names(self) -> List[str]:
        ...

    async def create_table(self, name: str, headers: Sequence[str]) -> None:
        ...


@runtime_checkable
class PermissionGate(Protocol):
    async def ensure_readable(self) -> None:
        ...

    async def ensure_writable(self) -> None:
        ...


class AllowAllGate:
    """Gate for stores that need no authentication."""

    async def ensure_readable(self) -> None:
        return None

    async def ensure_writable(self) -> None:
        return None


class StaticPermissionGate:
    """
    Gate with fixed read access and escalatable write access.

    Reads fail hard (`AuthenticationError`) when not permitted. Writes raise the
    retryable `AuthenticationRequiredError` until `grant_write()` records that
    the escalation step (for example an interactive sign-in) has completed.
    """

    def __init__(
        self,
        can_read: bool = True,
        can_write: bool = False,
        required_mode: str = "interactive",
    ) -> None:
        self.can_read = can_read
        self.can_write = can_write
        self.required_mode = required_mode

    def grant_write(self) -> None:
        self.can_write = True

    def revoke_write(self) -> None:
        self.can_write = False

    async def ensure_readable(self) -> None:
        if not self.can_read:
            raise AuthenticationError("Read access to the store is not configured")

    async def ensure_writable(self) -> None:
        if not self.can_write:
            raise AuthenticationRequiredError(
                f"Write access requires {self.required_mode} authentication",
                required_mode=self.required_mode,
            )


__all__ = [
    "Record",
    "RowUpdate",
    "HEADER_ROW",
    "FIRST_DATA_ROW",
    "StorageAdapter",
    "ManagedStorageAdapter",
    "PermissionGate",
    "AllowAllGate",
    "StaticPermissionGate",
]
