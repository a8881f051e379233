"""
Composition root and entity persistence.
"""

from sheetorm.core.database import Database
from sheetorm.core.persistence import ModelPersistence

__all__ = ["Database", "ModelPersistence"]
