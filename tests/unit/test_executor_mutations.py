from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple

import pytest

from sheetorm.adapters.base import StaticPermissionGate
from sheetorm.adapters.memory import InMemoryAdapter
from sheetorm.errors import AuthenticationError, AuthenticationRequiredError, ConnectionFailure, QueryError
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.schema.types import Schema

EXISTING_USERS = [
    {"id": 3, "name": "Ada", "email": "ada@example.com", "active": True},
    {"id": 7, "name": "Grace", "email": "grace@example.com", "active": False},
    {"id": 5, "name": "Linus", "email": "linus@example.com", "active": True},
]
NEW_USERS = [
    {"name": "Ken", "email": "ken@example.com"},
    {"name": "Barbara", "email": "barbara@example.com"},
    {"name": "Dennis", "email": "dennis@example.com"},
]
EXPECTED_NEW_IDS = [8, 9, 10]


class _RecordingAdapter(InMemoryAdapter):
    """In-memory store that records the batched mutation calls it receives."""

    def __init__(self, schemas: Mapping[str, Schema]) -> None:
        super().__init__(schemas)
        self.update_calls: List[List[Tuple[int, Dict[str, Any]]]] = []
        self.delete_calls: List[List[int]] = []
        self.append_calls = 0

    async def append_rows(self, name: str, records: Sequence[Mapping[str, Any]]) -> None:
        self.append_calls += 1
        await super().append_rows(name, records)

    async def update_rows(self, name: str, updates: Sequence[Tuple[int, Mapping[str, Any]]]) -> None:
        self.update_calls.append([(index, dict(record)) for index, record in updates])
        await super().update_rows(name, updates)

    async def delete_rows(self, name: str, row_indices: Sequence[int]) -> None:
        self.delete_calls.append(list(row_indices))
        await super().delete_rows(name, row_indices)


class _UnreachableAdapter(InMemoryAdapter):
    async def append_rows(self, name: str, records: Sequence[Mapping[str, Any]]) -> None:
        raise ConnectionFailure("store unreachable")


@pytest.fixture
def store(schemas: Dict[str, Schema]) -> _RecordingAdapter:
    adapter = _RecordingAdapter(schemas)
    adapter.seed("users", EXISTING_USERS)
    adapter.seed("posts")
    return adapter


@pytest.fixture
def executor(store: _RecordingAdapter, schemas: Dict[str, Schema]) -> QueryExecutor:
    return QueryExecutor(store, schemas, cache_enabled=True)


@pytest.mark.asyncio
async def test_insert_many_allocates_sequential_ids_after_current_max(executor: QueryExecutor) -> None:
    written = await executor.insert_many("users", NEW_USERS)

    assert [row["id"] for row in written] == EXPECTED_NEW_IDS
    assert [row["name"] for row in written] == ["Ken", "Barbara", "Dennis"]
    stored = await QueryBuilder(executor, "users").where_in("id", EXPECTED_NEW_IDS).get()
    assert [row["email"] for row in stored] == [user["email"] for user in NEW_USERS]


@pytest.mark.asyncio
async def test_insert_into_empty_table_starts_at_one(executor: QueryExecutor) -> None:
    written = await executor.insert("posts", {"user_id": 3, "title": "Hello"})

    assert written["id"] == 1


@pytest.mark.asyncio
async def test_insert_does_not_mutate_caller_records(executor: QueryExecutor) -> None:
    record = {"name": "Ken", "email": "ken@example.com"}

    await executor.insert("users", record)

    assert "id" not in record


@pytest.mark.asyncio
async def test_insert_many_with_no_records_is_a_no_op(executor: QueryExecutor, store: _RecordingAdapter) -> None:
    assert await executor.insert_many("users", []) == []
    assert store.append_calls == 0


@pytest.mark.asyncio
async def test_update_patches_matching_rows_in_one_batch(executor: QueryExecutor, store: _RecordingAdapter) -> None:
    affected = await QueryBuilder(executor, "users").where("active", True).update({"active": False})

    assert affected == 2
    assert len(store.update_calls) == 1
    assert [index for index, _ in store.update_calls[0]] == [2, 4]
    assert store.update_calls[0][0][1]["name"] == "Ada"
    assert await QueryBuilder(executor, "users").where("active", True).count() == 0


@pytest.mark.asyncio
async def test_delete_removes_matching_rows(executor: QueryExecutor, store: _RecordingAdapter) -> None:
    affected = await QueryBuilder(executor, "users").where("id", "!=", 7).delete()

    assert affected == 2
    assert store.delete_calls == [[2, 4]]
    remaining = await QueryBuilder(executor, "users").get()
    assert [row["name"] for row in remaining] == ["Grace"]


@pytest.mark.asyncio
async def test_mutations_without_matches_skip_the_store(executor: QueryExecutor, store: _RecordingAdapter) -> None:
    assert await QueryBuilder(executor, "users").where("id", 99).update({"name": "Nobody"}) == 0
    assert await QueryBuilder(executor, "users").where("id", 99).delete() == 0
    assert store.update_calls == []
    assert store.delete_calls == []


@pytest.mark.asyncio
async def test_mutations_invalidate_every_cached_shape_of_the_table(executor: QueryExecutor) -> None:
    await QueryBuilder(executor, "users").get()
    await QueryBuilder(executor, "users").where("active", True).order_by("name").get()
    await QueryBuilder(executor, "posts").get()

    for mutate in (
        lambda: executor.insert("users", NEW_USERS[0]),
        lambda: QueryBuilder(executor, "users").where("id", 3).update({"name": "Ada L."}),
        lambda: QueryBuilder(executor, "users").where("id", 99).delete(),
    ):
        await QueryBuilder(executor, "users").get()
        await mutate()
        assert not [key for key in executor.cache if key.startswith("users:")]
        assert any(key.startswith("posts:") for key in executor.cache)


@pytest.mark.asyncio
async def test_read_after_write_sees_the_mutation(executor: QueryExecutor) -> None:
    before = await QueryBuilder(executor, "users").where("id", 3).first()
    await QueryBuilder(executor, "users").where("id", 3).update({"name": "Ada L."})
    after = await QueryBuilder(executor, "users").where("id", 3).first()

    assert before is not None and before["name"] == "Ada"
    assert after is not None and after["name"] == "Ada L."


@pytest.mark.asyncio
async def test_authentication_required_propagates_unwrapped(
    store: _RecordingAdapter, schemas: Dict[str, Schema]
) -> None:
    gate = StaticPermissionGate(can_write=False, required_mode="oauth2")
    executor = QueryExecutor(store, schemas, gate=gate)

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        await executor.insert("users", NEW_USERS[0])

    assert excinfo.value.required_mode == "oauth2"
    assert excinfo.value.can_retry is True
    assert store.append_calls == 0

    gate.grant_write()
    written = await executor.insert("users", NEW_USERS[0])
    assert written["id"] == 8


@pytest.mark.asyncio
async def test_hard_read_failure_is_wrapped_with_context(
    store: _RecordingAdapter, schemas: Dict[str, Schema]
) -> None:
    executor = QueryExecutor(store, schemas, gate=StaticPermissionGate(can_read=False))

    with pytest.raises(QueryError) as excinfo:
        await QueryBuilder(executor, "users").get()

    assert excinfo.value.table == "users"
    assert excinfo.value.operation == "select"
    assert isinstance(excinfo.value.__cause__, AuthenticationError)


@pytest.mark.asyncio
async def test_adapter_failure_is_wrapped_and_cache_still_invalidated(schemas: Dict[str, Schema]) -> None:
    adapter = _UnreachableAdapter(schemas)
    adapter.seed("users", EXISTING_USERS)
    executor = QueryExecutor(adapter, schemas, cache_enabled=True)
    await QueryBuilder(executor, "users").get()

    with pytest.raises(QueryError) as excinfo:
        await executor.insert("users", NEW_USERS[0])

    assert excinfo.value.operation == "insert"
    assert isinstance(excinfo.value.__cause__, ConnectionFailure)
    assert len(executor.cache) == 0


@pytest.mark.asyncio
async def test_unknown_table_is_reported_as_query_error(executor: QueryExecutor) -> None:
    with pytest.raises(QueryError, match="missing"):
        await QueryBuilder(executor, "missing").get()
