# ============================================================================
# tests/unit/test_catalog.py
# ============================================================================
"""
Tests for catalog adapters (in-memory and SQLite)
"""

import asyncio
import json

import pytest

from prescription_resolution.catalog import (
    CatalogQuery,
    InMemoryCatalog,
    SQLiteCatalog,
    build_catalog_db,
    load_records,
    normalize_name,
    open_catalog,
)
from prescription_resolution.catalog.base import name_match_level, similar_name
from prescription_resolution.core.context.catalog_entry import CatalogEntry
from prescription_resolution.utils.exceptions import CatalogUnavailableError, ConfigurationError


MSK_GEL = dict(
    category="Thuốc cơ xương khớp",
    subcategory="NSAID",
    dosage_form="Gel",
    route="Dùng ngoài",
)


@pytest.fixture
def sqlite_catalog(catalog_records, tmp_path):
    db_path = tmp_path / "catalog.db"
    build_catalog_db(catalog_records, db_path)
    catalog = SQLiteCatalog(db_path)
    yield catalog
    asyncio.run(catalog.close())


def _ids(entries):
    return [entry.id for entry in entries]


class TestNameMatching:

    def test_normalize_name(self):
        assert normalize_name("Paracetamol  500 MG") == normalize_name("paracetamol 500mg")
        assert normalize_name(None) == ""

    def test_match_levels(self):
        assert name_match_level("paracetamol 500mg", "paracetamol 500mg") == 0
        assert name_match_level("paracetamol", "paracetamol 500mg") == 1
        assert name_match_level("gel", "diclofenac gel 1% 20g") == 2

    def test_partial_matches_are_word_bounded(self):
        assert name_match_level("para", "paracetamol 500mg") is None
        assert name_match_level("ab", "ab c") is None

    def test_similar_names(self):
        assert similar_name("amoxicilin 500mg", "amoxicillin 500mg")
        assert similar_name("paracetaml", "paracetamol 500mg")
        # dosage words must agree exactly
        assert not similar_name("paracetamol 650mg", "paracetamol 500mg")
        # too short to judge
        assert not similar_name("para", "paracetamol 500mg")
        assert not similar_name("panadol", "paracetamol 500mg")


class TestCatalogEntry:

    def test_from_camel_case_record(self):
        entry = CatalogEntry.from_record({
            "_id": 42, "name": " Oresol ", "price": "3500", "stockQuantity": 0,
            "isPrescription": 0, "dosageForm": "Gói",
        })
        assert entry.id == "42"
        assert entry.name == "Oresol"
        assert entry.price == 3500.0
        assert entry.in_stock is False
        assert entry.dosage_form == "Gói"

    def test_explicit_in_stock_wins(self):
        entry = CatalogEntry.from_record({"id": "X", "name": "X", "stockQuantity": 0, "inStock": True})
        assert entry.in_stock is True


class TestInMemoryCatalog:

    def test_find_by_exact_name(self, catalog):
        entry = asyncio.run(catalog.find_by_name("paracetamol 500mg"))
        assert entry.id == "P001"

    def test_find_by_prefix(self, catalog):
        assert asyncio.run(catalog.find_by_name("Diclofenac")).id == "P003"

    def test_shorter_name_wins_ties(self, catalog):
        assert asyncio.run(catalog.find_by_name("Gel")).id == "P003"

    def test_no_match(self, catalog):
        assert asyncio.run(catalog.find_by_name("Para")) is None
        assert asyncio.run(catalog.find_by_name("Arcoxia 90mg")) is None

    @pytest.mark.parametrize("term, expected", [
        ("Amoxicilin 500mg", "P008"),
        ("Paracetamo 500mg", "P001"),
        ("Paracetaml 500mg", "P001"),
    ])
    def test_misspelled_name(self, catalog, term, expected):
        assert asyncio.run(catalog.find_by_name(term)).id == expected

    def test_find_reference_by_ingredient(self, catalog):
        assert asyncio.run(catalog.find_reference(["Voltaren", "Celecoxib"])).id == "P005"
        assert asyncio.run(catalog.find_reference(["ab"])) is None

    def test_strict_taxonomy_search(self, catalog):
        results = asyncio.run(catalog.search(CatalogQuery(**MSK_GEL, match_all=True)))
        assert _ids(results) == ["P003", "P004"]

    def test_search_is_case_insensitive(self, catalog):
        query = CatalogQuery(category="THUỐC CƠ XƯƠNG KHỚP", dosage_form="gel", match_all=True)
        assert _ids(asyncio.run(catalog.search(query))) == ["P003", "P004"]

    def test_search_excludes_ids(self, catalog):
        query = CatalogQuery(**MSK_GEL, match_all=True, exclude_ids=frozenset({"P003"}))
        assert _ids(asyncio.run(catalog.search(query))) == ["P004"]

    def test_or_search(self, catalog):
        query = CatalogQuery(dosage_form="Gel", active_ingredient="celecoxib")
        assert _ids(asyncio.run(catalog.search(query))) == ["P003", "P004", "P005"]

    def test_group_keywords(self, catalog):
        query = CatalogQuery(group_keywords=["corticosteroid"])
        assert _ids(asyncio.run(catalog.search(query))) == ["P007"]

    def test_name_contains(self, catalog):
        query = CatalogQuery(name_contains="celecoxib")
        assert _ids(asyncio.run(catalog.search(query))) == ["P005"]

    def test_limit(self, catalog):
        query = CatalogQuery(route="Uống", limit=2)
        assert _ids(asyncio.run(catalog.search(query))) == ["P001", "P002"]

    def test_empty_query_returns_nothing(self, catalog):
        assert asyncio.run(catalog.search(CatalogQuery())) == []

    def test_duplicate_ids_skipped(self, catalog_records):
        catalog = InMemoryCatalog(catalog_records + [catalog_records[0]])
        assert len(catalog) == len(catalog_records)


class TestSQLiteCatalog:

    def test_build_and_count(self, sqlite_catalog, catalog_records):
        assert sqlite_catalog.count() == len(catalog_records)
        assert sqlite_catalog.describe()["backend"] == "sqlite"

    def test_find_by_name(self, sqlite_catalog):
        entry = asyncio.run(sqlite_catalog.find_by_name("Paracetamol 500mg"))
        assert entry.id == "P001"
        assert entry.requires_prescription is False
        assert entry.stock_quantity == 500

    def test_unicode_case_folding(self, sqlite_catalog):
        query = CatalogQuery(category="THUỐC CƠ XƯƠNG KHỚP", subcategory="nsaid", match_all=True)
        assert _ids(asyncio.run(sqlite_catalog.search(query))) == ["P003", "P004", "P005"]

    def test_missing_database(self, tmp_path):
        with pytest.raises(CatalogUnavailableError):
            SQLiteCatalog(tmp_path / "missing.db")

    def test_closed_catalog(self, catalog_records, tmp_path):
        db_path = tmp_path / "closed.db"
        build_catalog_db(catalog_records, db_path)
        catalog = SQLiteCatalog(db_path)
        asyncio.run(catalog.close())
        assert catalog.count() == 0


@pytest.mark.parametrize("query", [
    CatalogQuery(**MSK_GEL, match_all=True),
    CatalogQuery(**MSK_GEL, active_ingredient="diclofenac", match_all=True),
    CatalogQuery(dosage_form="Viên nén", group_keywords=["kháng viêm"]),
    CatalogQuery(name_contains="paracetamol"),
    CatalogQuery(route="Uống", exclude_ids=frozenset({"P001", "P005"})),
])
def test_adapters_agree(catalog, sqlite_catalog, query):
    """Both adapters return the same records in the same order"""
    memory = asyncio.run(catalog.search(query))
    sqlite = asyncio.run(sqlite_catalog.search(query))
    assert _ids(memory) == _ids(sqlite)


@pytest.mark.parametrize("term", [
    "Paracetamol", "Gel", "Celecoxib 200mg", "Voltaren", "Amoxicilin 500mg", "Paracetaml 500mg",
])
def test_adapters_agree_on_names(catalog, sqlite_catalog, term):
    memory = asyncio.run(catalog.find_by_name(term))
    sqlite = asyncio.run(sqlite_catalog.find_by_name(term))
    assert (memory.id if memory else None) == (sqlite.id if sqlite else None)


class TestLoading:

    def test_load_wrapped_records(self, catalog_records, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"products": catalog_records}, ensure_ascii=False), encoding="utf-8")
        assert len(load_records(path)) == len(catalog_records)

        catalog = open_catalog(path)
        assert isinstance(catalog, InMemoryCatalog)
        assert len(catalog) == len(catalog_records)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogUnavailableError):
            load_records(tmp_path / "nope.json")

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(ConfigurationError):
            open_catalog(tmp_path / "catalog.csv")
