# ============================================================================
# src/prescription_resolution/catalog/memory_catalog.py
# ============================================================================
"""
In-memory catalog built from records or a JSON export.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .base import BaseCatalog, CatalogQuery, entry_matches, rank_name_hits, rank_reference_hits
from ..core.context.catalog_entry import CatalogEntry
from ..utils.exceptions import CatalogError, CatalogUnavailableError

logger = logging.getLogger(__name__)


def load_records(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read catalog records from a JSON file.

    Accepts a bare list or an object with a "products" / "medicines" list.
    """
    path = Path(path)
    if not path.exists():
        raise CatalogUnavailableError(f"Catalog file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("products") or data.get("medicines") or []
    if not isinstance(data, list):
        raise CatalogError(f"Catalog {path} does not contain a list of records")
    return data


class InMemoryCatalog(BaseCatalog):
    """Catalog held in a list; order of records is the stable search order."""

    def __init__(self, entries: Iterable[Union[CatalogEntry, Dict[str, Any]]] = ()):
        self._entries: List[CatalogEntry] = []
        seen = set()
        for item in entries:
            entry = item if isinstance(item, CatalogEntry) else CatalogEntry.from_record(item)
            if not entry.id or entry.id in seen:
                logger.warning(f"Skipping catalog record without unique id: {entry.name!r}")
                continue
            seen.add(entry.id)
            self._entries.append(entry)
        logger.debug(f"In-memory catalog holds {len(self._entries)} entries")

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryCatalog":
        records = load_records(path)
        logger.info(f"Loaded {len(records)} catalog records from {path}")
        return cls(records)

    @property
    def entries(self) -> List[CatalogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def find_by_name(self, term: str) -> Optional[CatalogEntry]:
        hits = rank_name_hits(term, self._entries)
        return hits[0] if hits else None

    async def find_reference(self, terms: Sequence[str]) -> Optional[CatalogEntry]:
        for term in terms:
            hits = rank_reference_hits(term, self._entries)
            if hits:
                return hits[0]
        return None

    async def search(self, query: CatalogQuery) -> List[CatalogEntry]:
        if query.is_empty:
            return []
        results = []
        for entry in self._entries:
            if entry.id in query.exclude_ids:
                continue
            if entry_matches(entry, query):
                results.append(entry)
                if len(results) >= query.limit:
                    break
        return results

    def describe(self) -> Dict[str, Any]:
        return {"backend": "memory", "entries": len(self._entries)}
