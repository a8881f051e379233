"""
Directory-of-CSV-files store ("workbook").

Each table lives in `<directory>/<table>.csv` with the column headers in the
first row. File access runs in a worker thread so the event loop is never
blocked, and transient I/O failures are retried with exponential backoff.
"""

from __future__ import annotations

import asyncio
import csv
from pathlib import Path
from typing import List, Mapping, Optional

from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from sheetorm.adapters.grid import AbstractGridAdapter, Grid
from sheetorm.errors import ConnectionFailure, StorageError
from sheetorm.schema.types import Schema
from sheetorm.utils.logging import get_logger

log = get_logger(__name__)

SUFFIX = ".csv"


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, OSError) and not isinstance(exc, FileNotFoundError)


_io_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(_is_transient),
    reraise=True,
)


@_io_retry
def _read_grid(path: Path) -> Grid:
    with path.open("r", newline="", encoding="utf-8") as f:
        return [row for row in csv.reader(f)]


@_io_retry
def _write_grid(path: Path, grid: Grid) -> None:
    # Write-then-rename so a failed write never leaves a truncated table behind.
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(grid)
    tmp_path.replace(path)


class CsvWorkbookAdapter(AbstractGridAdapter):
    """
    Storage adapter over a directory of CSV files.

    Parameters
    ----------
    directory : Path | str
        Workbook directory; created on first write if missing.
    schemas : Mapping[str, Schema] | None
        Column declarations used for cell coercion.
    """

    def __init__(self, directory: Path | str, schemas: Optional[Mapping[str, Schema]] = None) -> None:
        super().__init__(schemas)
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}{SUFFIX}"

    async def _load(self, name: str) -> Grid:
        path = self.path_for(name)
        try:
            return await asyncio.to_thread(_read_grid, path)
        except FileNotFoundError:
            raise StorageError(f"Table '{name}' does not exist in {self.directory}") from None
        except OSError as exc:
            log.warning("Workbook read failed", extra={"table": name, "path": str(path), "error": str(exc)})
            raise ConnectionFailure(f"Cannot read table '{name}': {exc}") from exc

    async def _store(self, name: str, grid: Grid) -> None:
        path = self.path_for(name)
        try:
            await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(_write_grid, path, grid)
        except OSError as exc:
            log.warning("Workbook write failed", extra={"table": name, "path": str(path), "error": str(exc)})
            raise ConnectionFailure(f"Cannot write table '{name}': {exc}") from exc

    async def table_names(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(path.stem for path in self.directory.glob(f"*{SUFFIX}"))


__all__ = ["CsvWorkbookAdapter"]
