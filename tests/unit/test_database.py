from __future__ import annotations

import pytest

from sheetorm.adapters.base import StaticPermissionGate
from sheetorm.adapters.memory import InMemoryAdapter
from sheetorm.config import Settings
from sheetorm.core.database import Database
from sheetorm.errors import AuthenticationRequiredError, SchemaError
from sheetorm.model import Model
from sheetorm.schema.types import ColumnDefinition, ColumnType


class _ReadOnlyStore:
    """Adapter without table management."""

    async def fetch_table(self, name):
        return []


@pytest.mark.asyncio
async def test_create_missing_tables_uses_schema_column_order(schemas, test_settings) -> None:
    store = InMemoryAdapter(schemas)
    store.seed("users")
    db = Database(store, schemas, settings=test_settings)

    created = await db.create_missing_tables()

    assert created == ["posts", "profiles", "tags", "post_tags"]
    assert store.raw_rows("posts") == [["id", "user_id", "title", "views", "updated_at", "deleted_at"]]
    assert await db.create_missing_tables() == []


@pytest.mark.asyncio
async def test_create_missing_tables_requires_write_access(schemas, test_settings) -> None:
    db = Database(
        InMemoryAdapter(schemas),
        schemas,
        gate=StaticPermissionGate(can_write=False),
        settings=test_settings,
    )

    with pytest.raises(AuthenticationRequiredError):
        await db.create_missing_tables()


@pytest.mark.asyncio
async def test_create_missing_tables_needs_a_managed_store(schemas, test_settings) -> None:
    db = Database(_ReadOnlyStore(), schemas, settings=test_settings)

    with pytest.raises(SchemaError):
        await db.create_missing_tables()


def test_register_adopts_schema_columns_without_overriding(db: Database) -> None:
    class Account(Model):
        table = "users"

    Account.register_column("name", type=ColumnType.TEXT)
    db.register(Account)

    columns = Account.columns()
    assert set(columns) == {"id", "name", "email", "active"}
    assert columns["name"] == ColumnDefinition(type=ColumnType.TEXT)
    assert columns["id"].is_primary
    assert Account.primary_key() == "id"


def test_register_requires_a_table(db: Database) -> None:
    class Nameless(Model):
        pass

    with pytest.raises(SchemaError):
        db.register(Nameless)


def test_validator_lookup(db: Database) -> None:
    assert db.validator("users").errors({"name": "Al", "email": "a@x.com"}) == {}
    with pytest.raises(SchemaError):
        db.validator("orders")


@pytest.mark.asyncio
async def test_raw_tables_and_entities_share_one_cache(schemas, adapter) -> None:
    db = Database(adapter, schemas, settings=Settings(cache_enabled=True))

    class Tag(Model):
        table = "tags"

    db.register(Tag)
    await db.table("tags").insert({"label": "python"})
    await Tag.query().cache().get()
    await Tag.query().cache().get()
    assert adapter.fetches["tags"] == 1

    await Tag.create({"label": "data"})
    assert [tag.label for tag in await Tag.query().cache().get()] == ["python", "data"]

    db.clear_cache()
    assert db.executor.cache == {}


def test_register_rejects_soft_deletes_without_a_deleted_at_column(db: Database) -> None:
    class Member(Model):
        table = "users"
        soft_deletes = True

    with pytest.raises(SchemaError):
        db.register(Member)
