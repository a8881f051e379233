"""
Load table schemas from a JSON document.

Expected shape::

    {
      "users": {
        "columns": {
          "id": {"type": "number", "is_primary": true, "auto_increment": true},
          "email": {"type": "string", "required": true, "unique": true}
        }
      }
    }
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from sheetorm.errors import SchemaError
from sheetorm.schema.types import Schema

_SCHEMAS = TypeAdapter(Dict[str, Schema])


def parse_schemas(document: str | bytes) -> Dict[str, Schema]:
    """Parse a JSON schema document into validated `Schema` objects."""
    try:
        return _SCHEMAS.validate_json(document)
    except PydanticValidationError as exc:
        raise SchemaError(f"Invalid schema document: {exc}") from exc


def load_schemas(path: Path | str) -> Dict[str, Schema]:
    """Read and parse a schema document from disk."""
    schema_path = Path(path)
    try:
        document = schema_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaError(f"Cannot read schema file {schema_path}: {exc}") from exc
    return parse_schemas(document)


__all__ = ["load_schemas", "parse_schemas"]
