"""
Catalog loader for the bundled process database.

The database holds two tables, `cpu` and `memoria`, with one row per process:
catalog_id, nombre_catalogo, pid, nombre, usuario, prioridad.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Any
import sqlite3

import pandas as pd


KINDS = ("cpu", "memoria")


class CatalogError(Exception):
    """The database could not be opened or queried."""


@dataclass(frozen=True)
class CatalogEntry:
    catalog_id: Any
    name: str


class CatalogDatabase:
    """Read-only access to a process catalog database."""

    def __init__(self, path: str):
        self.path = Path(path)
        if not self.path.is_file():
            raise CatalogError(f"database not found: {self.path}")

    @staticmethod
    def _check_kind(kind: str) -> str:
        kind = (kind or "").lower()
        if kind not in KINDS:
            raise CatalogError(f"unknown catalog kind {kind!r}, expected one of {', '.join(KINDS)}")
        return kind

    def _query(self, sql: str, params: Tuple = ()) -> pd.DataFrame:
        # Opened read-only so the dataset is never modified
        uri = f"{self.path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise CatalogError(f"cannot open {self.path}: {e}") from e
        try:
            return pd.read_sql_query(sql, conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            raise CatalogError(f"query failed on {self.path}: {e}") from e
        finally:
            conn.close()

    def list_catalogs(self, kind: str = "cpu") -> List[CatalogEntry]:
        kind = self._check_kind(kind)
        df = self._query(
            f"SELECT DISTINCT catalog_id, nombre_catalogo FROM {kind} ORDER BY catalog_id"
        )
        return [CatalogEntry(_plain(row.catalog_id), str(row.nombre_catalogo)) for row in df.itertuples(index=False)]

    def load_rows(self, catalog_id: Any, kind: str = "cpu") -> List[Tuple[Any, str, str, int]]:
        """Process rows of one catalog in stored order."""
        kind = self._check_kind(kind)
        df = self._query(
            f"SELECT pid, nombre, usuario, prioridad FROM {kind} WHERE catalog_id = ?",
            (catalog_id,),
        )
        return [self._process_row(row, kind) for row in df.itertuples(index=False)]

    def _process_row(self, row, kind: str) -> Tuple[Any, str, str, int]:
        if pd.isna(row.pid) or not isinstance(row.nombre, str):
            raise CatalogError(f"malformed row in {kind} of {self.path}: {tuple(row)}")
        try:
            flag = int(row.prioridad)
        except (TypeError, ValueError) as e:
            raise CatalogError(f"bad prioridad for pid {_plain(row.pid)} in {kind} of {self.path}: {row.prioridad!r}") from e
        return (_plain(row.pid), row.nombre, row.usuario, flag)


def _plain(value: Any) -> Any:
    # numpy scalars -> python scalars
    return value.item() if hasattr(value, "item") else value
