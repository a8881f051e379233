"""
Generate a deterministic sample workbook (users, posts, tags, post_tags) plus
the matching `schema.json`, using the library's own CSV adapter.

Usage:
    python scripts/seed_workbook.py --output data --users 10 --posts-per-user 3
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

import typer

from sheetorm.adapters.csv_store import CsvWorkbookAdapter
from sheetorm.core.database import Database
from sheetorm.schema.loader import parse_schemas

app = typer.Typer(help="Seed a sample CSV workbook for sheetorm.")

SCHEMA_DOCUMENT: Dict[str, Any] = {
    "users": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "name": {
                "type": "string",
                "required": True,
                "rules": [{"kind": "min_length", "value": 2}],
            },
            "email": {
                "type": "string",
                "required": True,
                "unique": True,
                "rules": [{"kind": "email"}],
            },
            "role": {"type": "enum", "enum_values": ["admin", "editor", "reader"], "default": "reader"},
            "active": {"type": "boolean", "default": True},
            "created_at": {"type": "datetime", "nullable": True, "auto_create": True},
            "deleted_at": {"type": "datetime", "nullable": True},
        }
    },
    "posts": {
        "columns": {
            "id": {"type": "number", "is_primary": True, "auto_increment": True},
            "user_id": {"type": "number", "required": True},
            "title": {"type": "string", "required": True, "rules": [{"kind": "max_length", "value": 120}]},
            "views": {"type": "number", "default": 0, "rules": [{"kind": "min", "value": 0}]},
            "published": {"type": "boolean", "default": False},
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

ROLES = ["admin", "editor", "reader"]
TAGS = ["python", "data", "async", "sheets", "testing", "design"]
FIRST_NAMES = ["Ada", "Grace", "Linus", "Guido", "Barbara", "Ken", "Margaret", "Dennis"]
EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


def _generate_records(users: int, posts_per_user: int, seed: int) -> Dict[str, List[Dict[str, Any]]]:
    rng = random.Random(seed)
    user_rows = []
    for index in range(users):
        first = FIRST_NAMES[index % len(FIRST_NAMES)]
        user_rows.append(
            {
                "name": f"{first} {index + 1}",
                "email": f"{first.lower()}{index + 1}@example.com",
                "role": rng.choice(ROLES),
                "active": rng.random() > 0.2,
                "created_at": EPOCH + timedelta(days=index),
            }
        )

    post_rows = []
    for user_id in range(1, users + 1):
        for number in range(1, posts_per_user + 1):
            post_rows.append(
                {
                    "user_id": user_id,
                    "title": f"Post {number} by user {user_id}",
                    "views": rng.randint(0, 5_000),
                    "published": rng.random() > 0.3,
                }
            )

    tag_rows = [{"label": label} for label in TAGS]
    link_rows = []
    for post_id in range(1, len(post_rows) + 1):
        for tag_id in sorted(rng.sample(range(1, len(TAGS) + 1), k=2)):
            link_rows.append({"post_id": post_id, "tag_id": tag_id})

    return {"users": user_rows, "posts": post_rows, "tags": tag_rows, "post_tags": link_rows}


async def _seed(output: Path, users: int, posts_per_user: int, seed: int) -> Dict[str, int]:
    schemas = parse_schemas(json.dumps(SCHEMA_DOCUMENT))
    adapter = CsvWorkbookAdapter(output, schemas)
    db = Database(adapter, schemas)
    await db.create_missing_tables()

    counts = {}
    for table, records in _generate_records(users, posts_per_user, seed).items():
        written = await db.table(table).insert_many(records)
        counts[table] = len(written)
    return counts


def build_workbook(output: Path, users: int = 10, posts_per_user: int = 3, seed: int = 42) -> Dict[str, int]:
    """
    Write `schema.json` and one CSV per table into `output`; returns row counts
    per table. Existing tables in `output` are appended to.
    """
    output.mkdir(parents=True, exist_ok=True)
    (output / "schema.json").write_text(json.dumps(SCHEMA_DOCUMENT, indent=2), encoding="utf-8")
    return asyncio.run(_seed(output, users, posts_per_user, seed))


@app.command()
def main(
    output: Path = typer.Option(Path("data"), "--output", "-o", help="Workbook directory."),
    users: int = typer.Option(10, "--users", "-u", min=1, help="Number of users to generate."),
    posts_per_user: int = typer.Option(3, "--posts-per-user", "-p", min=0, help="Posts per user."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
) -> None:
    """
    Generate the sample workbook.
    """
    start = time.perf_counter()
    typer.echo(f"Seeding workbook -> {output} (users={users}, posts_per_user={posts_per_user}, seed={seed})")
    counts = build_workbook(output, users=users, posts_per_user=posts_per_user, seed=seed)
    duration = time.perf_counter() - start
    summary = ", ".join(f"{table}={count}" for table, count in counts.items())
    typer.echo(f"Done in {duration:.2f}s: {summary}")
    typer.echo(f"Try: SHEETORM_STORE_PATH={output} SHEETORM_SCHEMA_FILE={output / 'schema.json'} sheetorm show users")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
