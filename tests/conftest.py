"""
Pytest configuration for sheetorm.

Provides fixtures for:
- Table schemas shared by the unit tests
- An in-memory store with empty tables
- A Database with deterministic settings and bound entity types
"""

from __future__ import annotations

import json
from collections import Counter
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from sheetorm.adapters.memory import InMemoryAdapter
from sheetorm.config import Settings
from sheetorm.core.database import Database
from sheetorm.model import Model, belongs_to, has_many, has_one, many_to_many
from sheetorm.schema.loader import parse_schemas
from sheetorm.schema.types import Schema

SCHEMA_DOCUMENT: Dict[str, Any] = {
    "users": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "name": {"type": "string", "required": True, "rules": [{"kind": "min_length", "value": 2}]},
            "email": {"type": "string", "required": True, "unique": True},
            "active": {"type": "boolean", "default": True},
        }
    },
    "posts": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "user_id": {"type": "number", "required": True},
            "title": {"type": "string", "required": True},
            "views": {"type": "number", "default": 0},
            "updated_at": {"type": "datetime", "nullable": True, "auto_update": True},
            "deleted_at": {"type": "datetime", "nullable": True},
        }
    },
    "profiles": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "user_id": {"type": "number", "required": True},
            "bio": {"type": "text", "nullable": True},
        }
    },
    "tags": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "label": {"type": "string", "required": True, "unique": True},
        }
    },
    "post_tags": {
        "columns": {
            "post_id": {"type": "number", "required": True},
            "tag_id": {"type": "number", "required": True},
        }
    },
}


class _CountingAdapter(InMemoryAdapter):
    """In-memory store that counts full-table fetches per table."""

    def __init__(self, schemas: Dict[str, Schema]) -> None:
        super().__init__(schemas)
        self.fetches: Counter[str] = Counter()

    async def fetch_table(self, name: str) -> List[Dict[str, Any]]:
        self.fetches[name] += 1
        return await super().fetch_table(name)


@pytest.fixture
def schemas() -> Dict[str, Schema]:
    return parse_schemas(json.dumps(SCHEMA_DOCUMENT))


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings with caching off and the default pagination limits, independent
    of the caller's environment.
    """
    return Settings(
        cache_enabled=False,
        cache_ttl_seconds=300.0,
        default_per_page=20,
        max_per_page=100,
        log_level="DEBUG",
    )


@pytest.fixture
def adapter(schemas: Dict[str, Schema]) -> _CountingAdapter:
    store = _CountingAdapter(schemas)
    for table in schemas:
        store.seed(table)
    return store


@pytest.fixture
def db(adapter: _CountingAdapter, schemas: Dict[str, Schema], test_settings: Settings) -> Database:
    return Database(adapter, schemas, settings=test_settings)


@pytest.fixture
def models(db: Database) -> SimpleNamespace:
    """
    Fresh entity types bound to `db`. Declared per test so that hooks and
    scopes registered by one test never leak into another.
    """

    class User(Model):
        table = "users"
        hidden = ("email",)
        scopes = {
            "active": lambda query: query.where("active", True),
            "named": lambda query, name: query.where("name", name),
        }

    class Post(Model):
        table = "posts"
        soft_deletes = True

    class Profile(Model):
        table = "profiles"

    class Tag(Model):
        table = "tags"

    User.register_relation("posts", has_many(lambda: Post, "user_id"))
    User.register_relation("profile", has_one(lambda: Profile, "user_id"))
    Post.register_relation("author", belongs_to(lambda: User, "user_id"))
    Post.register_relation("tags", many_to_many(lambda: Tag, "post_tags", "post_id", "tag_id"))

    db.register(User, Post, Profile, Tag)
    return SimpleNamespace(User=User, Post=Post, Profile=Profile, Tag=Tag)
