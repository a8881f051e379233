"""
Entity query.

`ModelQuery` is a `QueryBuilder` bound to an entity type. Its terminal calls
return hydrated entities, apply the soft-delete scope, and eager-load the
relations requested with `preload()` using one secondary query per relation
(two for many-to-many) regardless of how many entities were fetched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Type

from sheetorm.errors import ScopeNotFoundError
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.query.state import Page, QueryState, as_page

if TYPE_CHECKING:
    from sheetorm.model.base import Model


class ModelQuery(QueryBuilder):
    """
    Fluent query returning instances of `model`.
    """

    def __init__(
        self,
        model: Type["Model"],
        executor: QueryExecutor,
        state: Optional[QueryState] = None,
    ) -> None:
        super().__init__(executor, model.table, state)
        self.model = model
        self._preload: List[str] = []
        self._with_trashed = False
        self._only_trashed = False

    def clone(self) -> "ModelQuery":
        cloned = ModelQuery(self.model, self._executor, self._state.copy())
        cloned._preload = list(self._preload)
        cloned._with_trashed = self._with_trashed
        cloned._only_trashed = self._only_trashed
        return cloned

    # -------------------------------------------------------------- chaining

    def apply(self, scope: str, *args: Any, **kwargs: Any) -> "ModelQuery":
        """Apply a named scope declared in `model.scopes`."""
        handler = self.model.scopes.get(scope)
        if handler is None:
            raise ScopeNotFoundError(f'Scope "{scope}" not found on {self.model.__name__}')
        result = handler(self, *args, **kwargs)
        return self if result is None else result

    def preload(self, *relations: str) -> "ModelQuery":
        for name in relations:
            self.model.relation(name)
            self._preload.append(name)
        return self

    def with_trashed(self) -> "ModelQuery":
        self._with_trashed = True
        return self

    def only_trashed(self) -> "ModelQuery":
        self._only_trashed = True
        return self

    def _scoped_state(self) -> QueryState:
        state = self._state.copy()
        if self.model.soft_deletes:
            column = self.model.deleted_at_column
            if self._only_trashed:
                state.where.where_not_null(column)
            elif not self._with_trashed:
                state.where.where_null(column)
        return state

    # -------------------------------------------------------------- terminal

    async def eager_load(self, instances: Sequence["Model"]) -> None:
        """Attach every preloaded relation to `instances`."""
        if not instances:
            return
        for name in self._preload:
            relation = self.model.relation(name)
            await relation.load(self.model, instances, name, self._executor)

    async def get(self) -> List["Model"]:  # type: ignore[override]
        records = await self._executor.select(self._scoped_state())
        instances = [self.model.hydrate(record) for record in records]
        await self.eager_load(instances)
        return instances

    async def first(self) -> Optional["Model"]:  # type: ignore[override]
        state = self._scoped_state()
        state.limit = 1
        records = await self._executor.select(state)
        if not records:
            return None
        instance = self.model.hydrate(records[0])
        await self.eager_load([instance])
        return instance

    async def paginate(self, page: int = 1, per_page: Optional[int] = None) -> Page["Model"]:  # type: ignore[override]
        result = await self._executor.paginate(self._scoped_state(), page, per_page)
        instances = [self.model.hydrate(record) for record in result["data"]]
        await self.eager_load(instances)
        return as_page(instances, result["meta"])

    async def count(self) -> int:
        return await self._executor.count(self._scoped_state())

    async def to_dicts(self) -> List[Dict[str, Any]]:
        """Serialized entities, preloaded relations included."""
        return [instance.serialize() for instance in await self.get()]

    async def first_to_dict(self) -> Optional[Dict[str, Any]]:
        instance = await self.first()
        return instance.serialize() if instance is not None else None

    async def paginate_to_dicts(self, page: int = 1, per_page: Optional[int] = None) -> Page[Dict[str, Any]]:
        result = await self.paginate(page, per_page)
        return as_page([instance.serialize() for instance in result["data"]], result["meta"])

    def __repr__(self) -> str:
        return f"ModelQuery(model={self.model.__name__}, where={self._state.where!r})"


__all__ = ["ModelQuery"]
