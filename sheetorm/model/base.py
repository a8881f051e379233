"""
Active-record entity base class.

Subclasses declare their table and behaviour through class attributes and
explicit registration calls made once at definition time:

    class User(Model):
        table = "users"
        soft_deletes = True
        hidden = ("password",)

    User.register_hook(Hook.BEFORE_SAVE, normalize_email)
    User.register_relation("posts", has_many(lambda: Post, "user_id"))
    db.register(User)

An instance is **new** until `save()` succeeds, then **persisted**. Deleting a
persisted entity of a soft-deletable type stamps its deletion column and keeps
it persisted; otherwise the row is physically removed and the instance is
**removed**, after which every write raises `ModelStateError`.
"""

from __future__ import annotations

import inspect
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
)

from sheetorm.errors import ModelNotFoundError, ModelStateError, RelationNotFoundError, SchemaError
from sheetorm.model.query import ModelQuery
from sheetorm.schema.types import ColumnDefinition
from sheetorm.schema.validator import is_empty

if TYPE_CHECKING:
    from sheetorm.core.persistence import ModelPersistence
    from sheetorm.model.relations import Relation

M = TypeVar("M", bound="Model")

HookHandler = Callable[[Any], Any]


class Hook(str, Enum):
    BEFORE_CREATE = "before_create"
    AFTER_CREATE = "after_create"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"


class Model:
    """
    Base class for entities backed by one table.

    Attributes
    ----------
    table : str
        Storage table name.
    soft_deletes : bool
        Delete by stamping `deleted_at_column` instead of removing the row.
    deleted_at_column : str
        Column holding the deletion timestamp.
    hidden : tuple[str, ...]
        Attributes left out of `serialize()`.
    scopes : dict[str, Callable]
        Named query scopes, applied with `ModelQuery.apply(name, *args)`.
    """

    table: ClassVar[str] = ""
    soft_deletes: ClassVar[bool] = False
    deleted_at_column: ClassVar[str] = "deleted_at"
    hidden: ClassVar[Tuple[str, ...]] = ()
    scopes: ClassVar[Dict[str, Callable[..., Any]]] = {}

    _columns: ClassVar[Dict[str, ColumnDefinition]] = {}
    _hooks: ClassVar[Dict[Hook, List[HookHandler]]] = {}
    _relations: ClassVar[Dict[str, "Relation"]] = {}
    _persistence: ClassVar[Optional["ModelPersistence"]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Each subclass gets its own registries, seeded from its parent's.
        cls._columns = dict(cls._columns)
        cls._hooks = {kind: list(handlers) for kind, handlers in cls._hooks.items()}
        cls._relations = dict(cls._relations)
        cls.scopes = dict(cls.scopes)

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None) -> None:
        object.__setattr__(self, "_attributes", {})
        object.__setattr__(self, "_original", {})
        object.__setattr__(self, "_dirty", set())
        object.__setattr__(self, "_loaded", {})
        object.__setattr__(self, "_exists", False)
        object.__setattr__(self, "_removed", False)
        if attributes:
            self.fill(attributes)

    # --------------------------------------------------------- registration

    @classmethod
    def register_column(cls, name: str, column: Optional[ColumnDefinition] = None, **options: Any) -> None:
        """Declare a column; keyword options build a `ColumnDefinition`."""
        cls._columns[name] = column if column is not None else ColumnDefinition(**options)

    @classmethod
    def register_hook(cls, kind: Hook | str, handler: HookHandler) -> HookHandler:
        """Append a lifecycle handler; handlers may be plain functions or coroutines."""
        cls._hooks.setdefault(Hook(kind), []).append(handler)
        return handler

    @classmethod
    def register_relation(cls, name: str, relation: "Relation") -> None:
        cls._relations[name] = relation

    @classmethod
    def columns(cls) -> Dict[str, ColumnDefinition]:
        return dict(cls._columns)

    @classmethod
    def relations(cls) -> Dict[str, "Relation"]:
        return dict(cls._relations)

    @classmethod
    def relation(cls, name: str) -> "Relation":
        try:
            return cls._relations[name]
        except KeyError:
            raise RelationNotFoundError(f'Relation "{name}" not found on {cls.__name__}') from None

    @classmethod
    def primary_key(cls) -> str:
        for name, column in cls._columns.items():
            if column.is_primary:
                return name
        return "id"

    @classmethod
    def bind(cls, persistence: "ModelPersistence") -> None:
        if not cls.table:
            raise SchemaError(f"{cls.__name__} does not declare a table")
        cls._persistence = persistence

    @classmethod
    def persistence(cls) -> "ModelPersistence":
        if cls._persistence is None:
            raise ModelStateError(f"{cls.__name__} is not registered with a Database")
        return cls._persistence

    @classmethod
    async def run_hooks(cls, kind: Hook, instance: "Model") -> None:
        for handler in cls._hooks.get(kind, ()):
            result = handler(instance)
            if inspect.isawaitable(result):
                await result

    # --------------------------------------------------------------- finders

    @classmethod
    def query(cls: Type[M]) -> ModelQuery:
        return ModelQuery(cls, cls.persistence().executor)

    @classmethod
    def hydrate(cls: Type[M], record: Mapping[str, Any]) -> M:
        """Build a persisted, clean instance from a fetched record."""
        instance = cls()
        object.__setattr__(instance, "_attributes", dict(record))
        instance._sync_original()
        return instance

    @classmethod
    async def all(cls: Type[M]) -> List[M]:
        return await cls.query().get()

    @classmethod
    async def find(cls: Type[M], identifier: Any) -> Optional[M]:
        return await cls.query().where(cls.primary_key(), identifier).first()

    @classmethod
    async def find_or_fail(cls: Type[M], identifier: Any) -> M:
        instance = await cls.find(identifier)
        if instance is None:
            raise ModelNotFoundError(cls.__name__, identifier)
        return instance

    @classmethod
    async def find_by(cls: Type[M], column: str, value: Any) -> Optional[M]:
        return await cls.query().where(column, value).first()

    @classmethod
    async def create(cls: Type[M], attributes: Mapping[str, Any]) -> M:
        instance = cls()
        instance.fill(attributes)
        await instance.save()
        return instance

    @classmethod
    async def create_many(cls: Type[M], records: Iterable[Mapping[str, Any]]) -> List[M]:
        """Create records one by one, in order; stops at the first failure."""
        return [await cls.create(attributes) for attributes in records]

    # ------------------------------------------------------------ attributes

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        attributes = self.__dict__.get("_attributes", {})
        if name in attributes:
            return attributes[name]
        loaded = self.__dict__.get("_loaded", {})
        if name in loaded:
            return loaded[name]
        if name in type(self)._columns:
            return None
        raise AttributeError(f"{type(self).__name__!r} has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self)._columns or not (name.startswith("_") or hasattr(type(self), name)):
            self.set_attribute(name, value)
        else:
            object.__setattr__(self, name, value)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value
        if not self._exists:
            self._original[name] = value
        elif name in self._original and self._original[name] == value:
            self._dirty.discard(name)
        else:
            self._dirty.add(name)

    def fill(self: M, attributes: Mapping[str, Any]) -> M:
        """
        Assign attributes. On a new entity the values also become the
        original state, so nothing is dirty; on a persisted entity every
        changed value is marked dirty.
        """
        for name, value in attributes.items():
            self.set_attribute(name, value)
        return self

    def merge(self: M, attributes: Mapping[str, Any]) -> M:
        return self.fill(attributes)

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    @property
    def original(self) -> Dict[str, Any]:
        return dict(self._original)

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def is_new(self) -> bool:
        return not self._exists

    @property
    def is_persisted(self) -> bool:
        return self._exists

    @property
    def is_removed(self) -> bool:
        return self._removed

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    @property
    def dirty(self) -> Dict[str, Any]:
        """Changed attributes and their current values."""
        return {name: value for name, value in self._attributes.items() if name in self._dirty}

    @property
    def dirty_fields(self) -> Set[str]:
        return set(self._dirty)

    @property
    def trashed(self) -> bool:
        return type(self).soft_deletes and not is_empty(self._attributes.get(type(self).deleted_at_column))

    def _sync_original(self) -> None:
        object.__setattr__(self, "_exists", True)
        object.__setattr__(self, "_original", dict(self._attributes))
        self._dirty.clear()

    def _ensure_not_removed(self) -> None:
        if self._removed:
            raise ModelStateError(f"{type(self).__name__} has been deleted and cannot be written")

    # -------------------------------------------------------------- relations

    def set_relation(self, name: str, value: Any) -> None:
        self._loaded[name] = value

    def get_relation(self, name: str) -> Any:
        return self._loaded.get(name)

    def has_relation(self, name: str) -> bool:
        return name in self._loaded

    @property
    def loaded_relations(self) -> Dict[str, Any]:
        return dict(self._loaded)

    async def load(self: M, *relations: str) -> M:
        """Load relations onto this entity with the same batched loader queries use."""
        await self.query().preload(*relations).eager_load([self])
        return self

    # ------------------------------------------------------------- lifecycle

    async def save(self: M) -> M:
        """
        Create or update the entity.

        Hook order is before_create|before_update, before_save, the write,
        after_create|after_update, after_save. The entity's persisted state is
        synchronised right after the write, before the after-hooks run.
        """
        self._ensure_not_removed()
        cls = type(self)
        persistence = cls.persistence()

        if self._exists:
            await cls.run_hooks(Hook.BEFORE_UPDATE, self)
            await cls.run_hooks(Hook.BEFORE_SAVE, self)
            written = await persistence.perform_update(cls, self._attributes)
            object.__setattr__(self, "_attributes", written)
            self._sync_original()
            await cls.run_hooks(Hook.AFTER_UPDATE, self)
            await cls.run_hooks(Hook.AFTER_SAVE, self)
        else:
            await cls.run_hooks(Hook.BEFORE_CREATE, self)
            await cls.run_hooks(Hook.BEFORE_SAVE, self)
            written = await persistence.perform_create(cls, self._attributes)
            object.__setattr__(self, "_attributes", written)
            self._sync_original()
            await cls.run_hooks(Hook.AFTER_CREATE, self)
            await cls.run_hooks(Hook.AFTER_SAVE, self)
        return self

    async def delete(self) -> None:
        """Soft-delete when the type supports it, otherwise remove the row."""
        self._ensure_not_removed()
        if not self._exists:
            raise ModelStateError(f"Cannot delete an unsaved {type(self).__name__}")
        cls = type(self)

        await cls.run_hooks(Hook.BEFORE_DELETE, self)
        if cls.soft_deletes:
            self.set_attribute(cls.deleted_at_column, cls.persistence().now())
            await self.save()
        else:
            await cls.persistence().perform_delete(cls, self._attributes)
            self._mark_removed()
        await cls.run_hooks(Hook.AFTER_DELETE, self)

    async def force_delete(self) -> None:
        """Remove the row even for soft-deletable types. No hooks run."""
        self._ensure_not_removed()
        if not self._exists:
            raise ModelStateError(f"Cannot delete an unsaved {type(self).__name__}")
        cls = type(self)
        await cls.persistence().perform_delete(cls, self._attributes)
        self._mark_removed()

    def _mark_removed(self) -> None:
        object.__setattr__(self, "_exists", False)
        object.__setattr__(self, "_removed", True)

    async def restore(self: M) -> M:
        cls = type(self)
        if not cls.soft_deletes:
            raise ModelStateError(f"{cls.__name__} does not use soft deletes")
        self.set_attribute(cls.deleted_at_column, None)
        return await self.save()

    async def refresh(self: M) -> M:
        """Reload attributes from the store (soft-deleted rows included)."""
        self._ensure_not_removed()
        cls = type(self)
        primary_key = cls.primary_key()
        identifier = self._attributes.get(primary_key)
        if is_empty(identifier):
            raise ModelStateError(f"Cannot refresh an unsaved {cls.__name__}")

        fresh = await cls.query().with_trashed().where(primary_key, identifier).first()
        if fresh is None:
            raise ModelNotFoundError(cls.__name__, identifier)
        object.__setattr__(self, "_attributes", fresh.attributes)
        self._sync_original()
        return self

    # --------------------------------------------------------- serialisation

    def serialize(self) -> Dict[str, Any]:
        """Plain dict of visible attributes plus loaded relations, recursively."""
        hidden = set(type(self).hidden)
        result = {name: value for name, value in self._attributes.items() if name not in hidden}
        for name, value in self._loaded.items():
            result[name] = _serialize_relation(value)
        return result

    def __repr__(self) -> str:
        key = type(self).primary_key()
        return f"<{type(self).__name__} {key}={self._attributes.get(key)!r}>"


def _serialize_relation(value: Any) -> Any:
    if isinstance(value, Model):
        return value.serialize()
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [_serialize_relation(item) for item in value]
    return value


__all__ = ["Hook", "HookHandler", "Model"]
