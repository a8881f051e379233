"""
Error taxonomy for sheetorm.

Every error raised by the library derives from `ORMError`. Adapter-level
failures derive from `StorageError`; the query layer wraps them into
`QueryError` except for `AuthenticationRequiredError`, which always reaches the
caller untouched so the same operation can be retried after escalation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ORMError(Exception):
    """Base class for all sheetorm errors."""


class ValidationError(ORMError):
    """
    A candidate record failed schema validation.

    Attributes
    ----------
    messages : dict[str, list[str]]
        Field name mapped to every failing message for that field.
    """

    def __init__(self, messages: Dict[str, List[str]]) -> None:
        super().__init__("Validation failed")
        self.messages = messages

    def __str__(self) -> str:
        details = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in self.messages.items())
        return f"Validation failed ({details})" if details else "Validation failed"


class ModelNotFoundError(ORMError):
    """Raised by find-or-fail style lookups."""

    def __init__(self, model: str, identifier: Any) -> None:
        super().__init__(f"{model} with id {identifier} not found")
        self.model = model
        self.identifier = identifier


class QueryError(ORMError):
    """An operation against the store failed during select/insert/update/delete."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.operation = operation


class SchemaError(ORMError):
    """Invalid schema document or registration."""


class ModelStateError(ORMError):
    """The entity's lifecycle state does not allow the requested operation."""


class ScopeNotFoundError(ORMError, LookupError):
    """A named scope is not declared on the entity type."""


class RelationNotFoundError(ORMError, LookupError):
    """A relation name is not registered on the entity type."""


class StorageError(ORMError):
    """Base class for failures reported by a storage adapter or permission gate."""


class ConnectionFailure(StorageError):
    """The remote store (or the table) could not be reached."""


class AuthenticationError(StorageError):
    """Hard authentication/permission failure (misconfiguration)."""


class AuthenticationRequiredError(AuthenticationError):
    """
    Retryable signal: the operation needs an escalation step (e.g. interactive
    sign-in) before it can succeed.
    """

    def __init__(self, message: str, required_mode: str, can_retry: bool = True) -> None:
        super().__init__(message)
        self.required_mode = required_mode
        self.can_retry = can_retry


__all__ = [
    "ORMError",
    "ValidationError",
    "ModelNotFoundError",
    "QueryError",
    "SchemaError",
    "ModelStateError",
    "ScopeNotFoundError",
    "RelationNotFoundError",
    "StorageError",
    "ConnectionFailure",
    "AuthenticationError",
    "AuthenticationRequiredError",
]
