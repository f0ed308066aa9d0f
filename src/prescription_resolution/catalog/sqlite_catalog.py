# ============================================================================
# src/prescription_resolution/catalog/sqlite_catalog.py
# ============================================================================
"""
SQLite-backed catalog.

SQLite's LOWER() only folds ASCII, so every searchable column is stored
twice: as written, and pre-folded in a *_norm column that queries use.
Blocking queries run in a worker thread via asyncio.to_thread.
"""

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .base import (
    BaseCatalog,
    CatalogQuery,
    FUZZY_MIN_LETTERS,
    MIN_PARTIAL_TERM_LENGTH,
    entry_matches,
    fold,
    group_text,
    normalize_name,
    rank_name_hits,
    rank_reference_hits,
)
from ..core.context.catalog_entry import CatalogEntry
from ..utils.exceptions import CatalogError, CatalogUnavailableError

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = [
    "id", "name", "price", "unit", "in_stock", "stock_quantity", "requires_prescription",
    "active_ingredient", "brand", "therapeutic_group", "indication", "contraindication",
    "strength", "category", "subcategory", "dosage_form", "route",
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS catalog_entries (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    price REAL DEFAULT 0,
    unit TEXT,
    in_stock INTEGER DEFAULT 1,
    stock_quantity INTEGER,
    requires_prescription INTEGER DEFAULT 0,
    active_ingredient TEXT,
    brand TEXT,
    therapeutic_group TEXT,
    indication TEXT,
    contraindication TEXT,
    strength TEXT,
    category TEXT,
    subcategory TEXT,
    dosage_form TEXT,
    route TEXT,
    name_norm TEXT,
    ingredient_norm TEXT,
    brand_norm TEXT,
    category_norm TEXT,
    subcategory_norm TEXT,
    dosage_form_norm TEXT,
    route_norm TEXT,
    group_norm TEXT
);
CREATE INDEX IF NOT EXISTS idx_catalog_name_norm ON catalog_entries(name_norm);
CREATE INDEX IF NOT EXISTS idx_catalog_taxonomy
    ON catalog_entries(category_norm, subcategory_norm, dosage_form_norm, route_norm);
"""


def _like(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _row_values(entry: CatalogEntry) -> Tuple:
    values = [getattr(entry, column) for column in ENTRY_COLUMNS]
    return tuple(values) + (
        normalize_name(entry.name),
        fold(entry.active_ingredient),
        normalize_name(entry.brand),
        fold(entry.category),
        fold(entry.subcategory),
        fold(entry.dosage_form),
        fold(entry.route),
        group_text(entry),
    )


def build_catalog_db(
    records: Iterable[Union[CatalogEntry, Dict[str, Any]]],
    db_path: Union[str, Path],
    replace: bool = True
) -> int:
    """
    Create (or refresh) a SQLite catalog from records.

    Args:
        records: CatalogEntry objects or loosely-typed dicts
        db_path: Destination database file
        replace: Drop existing rows first

    Returns:
        Number of rows written
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    entries = [r if isinstance(r, CatalogEntry) else CatalogEntry.from_record(r) for r in records]
    placeholders = ", ".join("?" for _ in range(len(ENTRY_COLUMNS) + 8))

    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(SCHEMA)
        if replace:
            conn.execute("DELETE FROM catalog_entries")
        conn.executemany(
            f"INSERT OR REPLACE INTO catalog_entries VALUES ({placeholders})",
            [_row_values(entry) for entry in entries if entry.id]
        )
        conn.commit()
        count = conn.execute("SELECT COUNT(*) FROM catalog_entries").fetchone()[0]
    except sqlite3.Error as e:
        raise CatalogError(f"Failed to build catalog database {db_path}: {e}") from e
    finally:
        conn.close()

    logger.info(f"Wrote {count} catalog entries to {db_path}")
    return count


class SQLiteCatalog(BaseCatalog):
    """Read-only catalog over a database written by build_catalog_db()."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._connect()

    def _connect(self):
        if not self.db_path.exists():
            raise CatalogUnavailableError(
                f"Catalog database not found at {self.db_path}. "
                "Run 'rx-resolve build-catalog <records.json> <db>' to create it."
            )
        try:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            logger.info(f"Connected to catalog database: {self.db_path}")
        except sqlite3.Error as e:
            raise CatalogUnavailableError(f"Failed to open catalog database: {e}") from e

    @staticmethod
    def _to_entry(row: sqlite3.Row) -> CatalogEntry:
        return CatalogEntry.from_record({column: row[column] for column in ENTRY_COLUMNS})

    def _fetch(self, sql: str, params: Sequence[Any]) -> List[CatalogEntry]:
        if self._conn is None:
            raise CatalogUnavailableError("Catalog database is closed")
        try:
            with self._lock:
                cursor = self._conn.execute(sql, tuple(params))
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise CatalogError(f"Catalog query failed: {e}") from e
        return [self._to_entry(row) for row in rows]

    # ------------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------------

    def _find_by_name_sync(self, term: str) -> Optional[CatalogEntry]:
        needle = normalize_name(term)
        if not needle:
            return None
        if len(needle) < MIN_PARTIAL_TERM_LENGTH:
            rows = self._fetch("SELECT * FROM catalog_entries WHERE name_norm = ?", [needle])
        else:
            rows = self._fetch(
                "SELECT * FROM catalog_entries WHERE name_norm LIKE ? ESCAPE '\\'",
                [_like(needle)]
            )
        hits = rank_name_hits(term, rows)
        if not hits and len(needle) >= FUZZY_MIN_LETTERS:
            # LIKE cannot see misspellings; rank the whole table instead
            hits = rank_name_hits(term, self._fetch("SELECT * FROM catalog_entries ORDER BY rowid", []))
        return hits[0] if hits else None

    def _find_reference_sync(self, terms: Sequence[str]) -> Optional[CatalogEntry]:
        for term in terms:
            needle = normalize_name(term)
            if len(needle) < MIN_PARTIAL_TERM_LENGTH:
                continue
            pattern = _like(needle)
            rows = self._fetch(
                "SELECT * FROM catalog_entries "
                "WHERE name_norm LIKE ? ESCAPE '\\' "
                "OR ingredient_norm LIKE ? ESCAPE '\\' "
                "OR brand_norm LIKE ? ESCAPE '\\'",
                [pattern, pattern, pattern]
            )
            hits = rank_reference_hits(term, rows)
            if hits:
                return hits[0]
        return None

    def _search_sync(self, query: CatalogQuery) -> List[CatalogEntry]:
        if query.is_empty:
            return []

        clauses: List[str] = []
        params: List[Any] = []
        for name, wanted in query.taxonomy_criteria().items():
            clauses.append(f"{name}_norm = ?")
            params.append(wanted)

        ingredient = fold(query.active_ingredient)
        if ingredient:
            clauses.append("ingredient_norm LIKE ? ESCAPE '\\'")
            params.append(_like(ingredient))

        if query.keywords:
            clauses.append(
                "(" + " OR ".join("group_norm LIKE ? ESCAPE '\\'" for _ in query.keywords) + ")"
            )
            params.extend(_like(keyword) for keyword in query.keywords)

        name_part = normalize_name(query.name_contains)
        if name_part:
            clauses.append("(name_norm LIKE ? ESCAPE '\\' OR ingredient_norm LIKE ? ESCAPE '\\')")
            params.extend([_like(name_part), _like(name_part)])

        where = (" AND " if query.match_all else " OR ").join(clauses)
        sql = f"SELECT * FROM catalog_entries WHERE ({where})"
        if query.exclude_ids:
            excluded = sorted(query.exclude_ids)
            sql += f" AND id NOT IN ({', '.join('?' for _ in excluded)})"
            params.extend(excluded)
        sql += " ORDER BY rowid"

        # LIKE is looser than the shared predicate, so re-check before limiting
        rows = [entry for entry in self._fetch(sql, params) if entry_matches(entry, query)]
        return rows[:query.limit]

    # ------------------------------------------------------------------------
    # Async surface
    # ------------------------------------------------------------------------

    async def find_by_name(self, term: str) -> Optional[CatalogEntry]:
        return await asyncio.to_thread(self._find_by_name_sync, term)

    async def find_reference(self, terms: Sequence[str]) -> Optional[CatalogEntry]:
        return await asyncio.to_thread(self._find_reference_sync, list(terms))

    async def search(self, query: CatalogQuery) -> List[CatalogEntry]:
        return await asyncio.to_thread(self._search_sync, query)

    def count(self) -> int:
        if self._conn is None:
            return 0
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM catalog_entries").fetchone()[0]

    async def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def describe(self) -> Dict[str, Any]:
        return {"backend": "sqlite", "path": str(self.db_path), "entries": self.count()}
