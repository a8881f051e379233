"""
Utilities package for sheetorm.

Exports shared helpers for cross-cutting concerns. Keep this package
lightweight and free of query/model logic.
"""

from sheetorm.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
