# ============================================================================
# src/prescription_resolution/catalog/__init__.py
# ============================================================================
"""
Catalog collaborator adapters.

Usage:
    from prescription_resolution.catalog import open_catalog

    catalog = open_catalog("data/catalog/catalog.json")
    entry = await catalog.find_by_name("Paracetamol 500mg")
"""

from pathlib import Path
from typing import Union

from .base import BaseCatalog, CatalogQuery, fold, normalize_name
from .memory_catalog import InMemoryCatalog, load_records
from .sqlite_catalog import SQLiteCatalog, build_catalog_db
from ..utils.exceptions import ConfigurationError

SQLITE_SUFFIXES = (".db", ".sqlite", ".sqlite3")


def open_catalog(path: Union[str, Path]) -> BaseCatalog:
    """
    Open a catalog by file extension.

    .json -> InMemoryCatalog, .db/.sqlite/.sqlite3 -> SQLiteCatalog
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        return InMemoryCatalog.from_json(path)
    if suffix in SQLITE_SUFFIXES:
        return SQLiteCatalog(path)
    raise ConfigurationError(f"Unsupported catalog file type: {path}")


__all__ = [
    "BaseCatalog",
    "CatalogQuery",
    "InMemoryCatalog",
    "SQLiteCatalog",
    "build_catalog_db",
    "load_records",
    "open_catalog",
    "fold",
    "normalize_name",
]
