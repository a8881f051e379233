"""
Relation descriptors and batched eager loading.

The related entity type is given as a zero-argument callable and resolved only
when the relation is loaded, so models can reference each other regardless of
definition order.

Every loader collects the distinct, non-empty keys of the whole batch, issues
one `where_in` query for them, and attaches results from an in-memory lookup;
`ManyToMany` first queries the pivot table, then the related table.
"""

from __future__ import annotations

import abc
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence, Type

from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.schema.validator import is_empty

if TYPE_CHECKING:
    from sheetorm.model.base import Model

ModelResolver = Callable[[], Type["Model"]]


def _distinct(values: Iterable[Any]) -> List[Any]:
    return list(dict.fromkeys(value for value in values if not is_empty(value)))


def _keys(instances: Sequence["Model"], column: str) -> List[Any]:
    return _distinct(instance.get_attribute(column) for instance in instances)


class Relation(abc.ABC):
    """Base class for relation descriptors."""

    related: ModelResolver

    @abc.abstractmethod
    async def load(
        self,
        owner: Type["Model"],
        instances: Sequence["Model"],
        name: str,
        executor: QueryExecutor,
    ) -> None:  # pragma: no cover - interface only
        """Attach the relation `name` to every instance."""
        raise NotImplementedError


@dataclass
class HasMany(Relation):
    """Owner's `local_key` matches many related rows' `foreign_key`."""

    related: ModelResolver
    foreign_key: str
    local_key: Optional[str] = None

    async def load(self, owner, instances, name, executor) -> None:
        local_key = self.local_key or owner.primary_key()
        ids = _keys(instances, local_key)
        grouped: Dict[Any, List[Model]] = defaultdict(list)
        if ids:
            for record in await self.related().query().where_in(self.foreign_key, ids).get():
                grouped[record.get_attribute(self.foreign_key)].append(record)
        for instance in instances:
            instance.set_relation(name, list(grouped.get(instance.get_attribute(local_key), ())))


@dataclass
class HasOne(Relation):
    """Owner's `local_key` matches at most one related row's `foreign_key`."""

    related: ModelResolver
    foreign_key: str
    local_key: Optional[str] = None

    async def load(self, owner, instances, name, executor) -> None:
        local_key = self.local_key or owner.primary_key()
        ids = _keys(instances, local_key)
        lookup: Dict[Any, Model] = {}
        if ids:
            for record in await self.related().query().where_in(self.foreign_key, ids).get():
                lookup.setdefault(record.get_attribute(self.foreign_key), record)
        for instance in instances:
            instance.set_relation(name, lookup.get(instance.get_attribute(local_key)))


@dataclass
class BelongsTo(Relation):
    """Owner's `foreign_key` references the related row's `owner_key`."""

    related: ModelResolver
    foreign_key: str
    owner_key: Optional[str] = None

    async def load(self, owner, instances, name, executor) -> None:
        related_model = self.related()
        owner_key = self.owner_key or related_model.primary_key()
        ids = _keys(instances, self.foreign_key)
        lookup: Dict[Any, Model] = {}
        if ids:
            for record in await related_model.query().where_in(owner_key, ids).get():
                lookup[record.get_attribute(owner_key)] = record
        for instance in instances:
            instance.set_relation(name, lookup.get(instance.get_attribute(self.foreign_key)))


@dataclass
class ManyToMany(Relation):
    """
    Owner and related rows joined through `pivot_table`.

    `foreign_key` is the pivot column referencing the owner and
    `related_pivot_key` the pivot column referencing the related row.
    """

    related: ModelResolver
    pivot_table: str
    foreign_key: str
    related_pivot_key: str
    local_key: Optional[str] = None
    related_key: Optional[str] = None

    async def load(self, owner, instances, name, executor) -> None:
        related_model = self.related()
        local_key = self.local_key or owner.primary_key()
        related_key = self.related_key or related_model.primary_key()

        ids = _keys(instances, local_key)
        pivots = await QueryBuilder(executor, self.pivot_table).where_in(self.foreign_key, ids).get() if ids else []
        related_ids = _distinct(pivot.get(self.related_pivot_key) for pivot in pivots)

        lookup: Dict[Any, Model] = {}
        if related_ids:
            for record in await related_model.query().where_in(related_key, related_ids).get():
                lookup[record.get_attribute(related_key)] = record

        links: Dict[Any, List[Any]] = defaultdict(list)
        for pivot in pivots:
            links[pivot.get(self.foreign_key)].append(pivot.get(self.related_pivot_key))

        for instance in instances:
            linked = links.get(instance.get_attribute(local_key), ())
            instance.set_relation(name, [lookup[key] for key in linked if key in lookup])


def has_many(related: ModelResolver, foreign_key: str, local_key: Optional[str] = None) -> HasMany:
    return HasMany(related, foreign_key, local_key)


def has_one(related: ModelResolver, foreign_key: str, local_key: Optional[str] = None) -> HasOne:
    return HasOne(related, foreign_key, local_key)


def belongs_to(related: ModelResolver, foreign_key: str, owner_key: Optional[str] = None) -> BelongsTo:
    return BelongsTo(related, foreign_key, owner_key)


def many_to_many(
    related: ModelResolver,
    pivot_table: str,
    foreign_key: str,
    related_pivot_key: str,
    local_key: Optional[str] = None,
    related_key: Optional[str] = None,
) -> ManyToMany:
    return ManyToMany(related, pivot_table, foreign_key, related_pivot_key, local_key, related_key)


__all__ = [
    "Relation",
    "HasMany",
    "HasOne",
    "BelongsTo",
    "ManyToMany",
    "has_many",
    "has_one",
    "belongs_to",
    "many_to_many",
]
