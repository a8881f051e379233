"""
Active-record layer: entity base class, entity query and relations.
"""

from sheetorm.model.base import Hook, Model
from sheetorm.model.query import ModelQuery
from sheetorm.model.relations import (
    BelongsTo,
    HasMany,
    HasOne,
    ManyToMany,
    Relation,
    belongs_to,
    has_many,
    has_one,
    many_to_many,
)

__all__ = [
    "BelongsTo",
    "HasMany",
    "HasOne",
    "Hook",
    "ManyToMany",
    "Model",
    "ModelQuery",
    "Relation",
    "belongs_to",
    "has_many",
    "has_one",
    "many_to_many",
]
