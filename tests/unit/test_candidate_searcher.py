# ============================================================================
# tests/unit/test_candidate_searcher.py
# ============================================================================
"""
Tests for substitute candidate collection
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from prescription_resolution.catalog.base import BaseCatalog
from prescription_resolution.core.context.line_context import LineContext
from prescription_resolution.core.context.medicine import ParsedMedicine, PrescriptionLine
from prescription_resolution.core.context.taxonomy import ClassificationResult, TaxonomyProfile
from prescription_resolution.processors.prescription.agents.candidate_searcher import CandidateSearcher
from prescription_resolution.utils.exceptions import CatalogError


def _voltaren():
    return ParsedMedicine(
        original_text="2. Voltaren Emulgel 1%/20g",
        clean_text="Voltaren Emulgel 1%/20g",
        base_name="Voltaren Emulgel",
    )


@pytest.fixture
def topical_nsaid():
    """Classification of a diclofenac gel that is not in the catalog"""
    return ClassificationResult(
        profile=TaxonomyProfile(
            category="Thuốc cơ xương khớp",
            subcategory="NSAID",
            dosage_form="Gel",
            route="Dùng ngoài",
        ),
        active_ingredient="diclofenac",
        drug_group="nsaid",
    )


def _ids(entries):
    return [entry.id for entry in entries]


def test_complete_profile(catalog, topical_nsaid):
    """Same-profile entries first, then group substitutes looked up by name"""
    print("=" * 70)
    print("TEST: Candidate search for a complete profile")
    print("=" * 70)

    candidates = asyncio.run(CandidateSearcher(catalog).search(_voltaren(), topical_nsaid))

    assert _ids(candidates) == ["P003", "P004", "P005"]
    print(f"✓ Candidates: {_ids(candidates)}")

    print("\n✅ Candidate search test PASSED\n")


def test_partial_profile_uses_or_query(catalog):
    classification = ClassificationResult(profile=TaxonomyProfile(category="Thuốc kháng sinh"))

    candidates = asyncio.run(CandidateSearcher(catalog).search(_voltaren(), classification))

    assert _ids(candidates) == ["P008"]


def test_empty_classification_finds_nothing(catalog):
    candidates = asyncio.run(CandidateSearcher(catalog).search(_voltaren(), ClassificationResult()))
    assert candidates == []


def test_reference_record_is_excluded(catalog, topical_nsaid):
    topical_nsaid.reference_entry_id = "P003"

    candidates = asyncio.run(CandidateSearcher(catalog).search(_voltaren(), topical_nsaid))

    assert _ids(candidates) == ["P004", "P005"]


def test_target_itself_is_excluded(catalog, topical_nsaid):
    parsed = ParsedMedicine(
        original_text="Ketoprofen Gel 2.5% 30g",
        clean_text="Ketoprofen Gel 2.5% 30g",
        base_name="Ketoprofen Gel",
    )

    candidates = asyncio.run(CandidateSearcher(catalog).search(parsed, topical_nsaid))

    assert "P004" not in _ids(candidates)
    assert _ids(candidates) == ["P003", "P005"]


class TestQueryPlan:

    def test_complete_profile_tiers(self, topical_nsaid):
        tiers = CandidateSearcher(MagicMock(spec=BaseCatalog)).primary_queries(topical_nsaid)

        assert len(tiers) == 2
        strict = tiers[0]
        assert [query.match_all for query in strict] == [True, True]
        assert strict[0].active_ingredient == "diclofenac"
        assert strict[1].active_ingredient is None
        assert tiers[1][0].match_all is False

    def test_broad_query_expands_group_keywords(self, topical_nsaid):
        query = CandidateSearcher.broad_query(topical_nsaid)
        assert "kháng viêm không steroid" in query.group_keywords
        assert "nsaid" in query.group_keywords

    def test_no_substitutes_without_group(self):
        assert CandidateSearcher.substitute_queries(ClassificationResult()) == []


def test_catalog_failures_yield_no_candidates(topical_nsaid):
    catalog = MagicMock(spec=BaseCatalog)
    catalog.search = AsyncMock(side_effect=CatalogError("catalog down"))

    candidates = asyncio.run(CandidateSearcher(catalog).search(_voltaren(), topical_nsaid))

    assert candidates == []
    # strict tier, broad tier and every substitute lookup were still attempted
    assert catalog.search.await_count == 2 + 1 + 4


def test_execute_stores_candidates(catalog, topical_nsaid):
    parsed = _voltaren()
    context = LineContext(line=PrescriptionLine(parsed.original_text, 1), parsed=parsed, line_index=1)
    context.classification = topical_nsaid

    result = asyncio.run(CandidateSearcher(catalog).run(context))

    assert result["decision"] == "candidates"
    assert _ids(context.candidates) == ["P003", "P004", "P005"]
