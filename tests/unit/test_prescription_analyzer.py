# ============================================================================
# tests/unit/test_prescription_analyzer.py
# ============================================================================
"""
End-to-end tests for PrescriptionAnalyzer with an in-memory catalog
"""

import asyncio

import pytest

from prescription_resolution.constants import messages
from prescription_resolution.core.context.enums import LineStatus, MatchReason
from prescription_resolution.processors import PrescriptionAnalyzer, analyze_prescription


def _suggestion_ids(resolution):
    return [s.id for s in resolution.suggestions]


def test_single_found_line(analyzer):
    """A catalog item named on the prescription is found with its quantity"""
    print("=" * 70)
    print("TEST: Single found line")
    print("=" * 70)

    result = asyncio.run(analyzer.analyze("1. Paracetamol 500mg SL: 20 viên"))

    assert len(result.found_medicines) == 1
    found = result.found_medicines[0]
    assert found.status == LineStatus.FOUND
    assert found.is_found
    assert found.exact_match.catalog_entry.id == "P001"
    assert found.exact_match.match_reason == MatchReason.SAME_NAME_SAME_DOSAGE
    assert found.quantity == 20
    print(f"✓ Found {found.exact_match.catalog_entry.name} x{found.quantity}")

    assert result.not_found_medicines == []
    assert result.overall_confidence == pytest.approx(0.95)
    assert result.notes == [messages.NOTE_ALL_FOUND]
    assert result.requires_consultation is False
    assert result.total_estimated_price == pytest.approx(30000.0)
    print(f"✓ Total: {result.total_estimated_price}")

    print("\n✅ Single found line test PASSED\n")


def test_unmatched_brand_gets_ranked_substitutes(analyzer):
    """A topical brand the pharmacy doesn't stock yields same-profile gels"""
    print("=" * 70)
    print("TEST: Unmatched brand with substitutes")
    print("=" * 70)

    result = asyncio.run(analyzer.analyze("2. Voltaren Emulgel 1%/20g"))

    assert result.found_medicines == []
    line = result.not_found_medicines[0]
    assert line.parsed.original_text == "2. Voltaren Emulgel 1%/20g"
    assert _suggestion_ids(line) == ["P003", "P004"]

    best, second = line.suggestions
    assert best.match_reason == MatchReason.FULL_MATCH_SAME_INGREDIENT
    assert best.confidence == pytest.approx(0.92)
    assert best.match_count == 4
    assert second.match_reason == MatchReason.FULL_MATCH
    assert second.confidence == pytest.approx(0.85)
    for s in line.suggestions:
        print(f"✓ {s.name}: {s.match_reason.value} ({s.confidence}) - {s.match_explanation}")

    assert result.overall_confidence == pytest.approx(0.40)
    assert result.requires_consultation is True

    print("\n✅ Substitute suggestion test PASSED\n")


def test_full_prescription(analyzer, sample_prescription_text):
    """Header lines, usage lines and quantity lines are handled together"""
    result = asyncio.run(analyzer.analyze(sample_prescription_text))

    assert [r.exact_match.catalog_entry.id for r in result.found_medicines] == ["P001"]
    assert result.found_medicines[0].quantity == 20

    assert len(result.not_found_medicines) == 1
    voltaren = result.not_found_medicines[0]
    assert "Voltaren Emulgel" in voltaren.parsed.original_text
    assert _suggestion_ids(voltaren) == ["P003", "P004"]

    assert result.overall_confidence == pytest.approx(0.60)
    assert result.notes == [messages.NOTE_SOME_NOT_FOUND]
    assert result.requires_consultation is True
    assert result.total_estimated_price == pytest.approx(30000.0)

    assert result.extracted_info["patient_name"] == "Nguyễn Văn An"
    assert result.extracted_info["doctor_name"] == "Trần Thị Bình"
    assert result.extracted_info["diagnosis"] == "Viêm khớp gối"


def test_relaxed_agreement_with_classifier(catalog, msk_classifier, fast_config):
    """No 4-of-4 candidate exists, so 3-of-4 candidates are offered"""
    analyzer = PrescriptionAnalyzer(catalog, classifier=msk_classifier, config=fast_config)

    result = asyncio.run(analyzer.analyze("3. Arcoxia 90mg"))

    line = result.not_found_medicines[0]
    assert _suggestion_ids(line) == ["P005"]
    suggestion = line.suggestions[0]
    assert suggestion.match_count == 3
    assert suggestion.match_reason == MatchReason.SAME_CATEGORY_SUBCATEGORY_ROUTE
    assert suggestion.confidence == pytest.approx(0.68)


@pytest.mark.parametrize("raw_text", ["", "   \n\t ", None])
def test_unreadable_input(analyzer, raw_text):
    result = asyncio.run(analyzer.analyze(raw_text))

    assert result.found_medicines == []
    assert result.not_found_medicines == []
    assert result.notes == [messages.NOTE_UNREADABLE]
    assert result.overall_confidence == pytest.approx(0.30)
    assert result.requires_consultation is True


def test_text_without_medicines(analyzer):
    result = asyncio.run(analyzer.analyze("PHÒNG KHÁM ĐA KHOA AN BÌNH\nHọ tên: Nguyễn Văn An"))

    assert result.notes == [messages.NOTE_NO_MEDICINES]
    assert result.requires_consultation is True
    assert result.found_medicines == []


def test_suggestions_not_repeated_across_lines(analyzer):
    text = "1. Voltaren Emulgel 1%/20g\n2. Fastum Gel 2,5%/30g"

    result = asyncio.run(analyzer.analyze(text))

    first, second = result.not_found_medicines
    assert _suggestion_ids(first) == ["P003", "P004"]
    assert _suggestion_ids(second) == []


def test_repeated_medicine_merges_quantity(analyzer):
    text = "1. Paracetamol 500mg SL: 10 viên\n2. Paracetamol 500mg SL: 20 viên"

    result = asyncio.run(analyzer.analyze(text))

    assert len(result.found_medicines) == 1
    assert result.found_medicines[0].quantity == 30
    assert result.total_estimated_price == pytest.approx(45000.0)
    assert messages.NOTE_DUPLICATE_LINES in result.notes


def test_deterministic(analyzer, sample_prescription_text):
    first = asyncio.run(analyzer.analyze(sample_prescription_text))
    second = asyncio.run(analyzer.analyze(sample_prescription_text))
    assert first.to_dict() == second.to_dict()


def test_caller_extracted_info_wins(analyzer, sample_prescription_text):
    result = asyncio.run(analyzer.analyze(
        sample_prescription_text,
        extracted_info={"patient_name": "Lê Thị Cúc", "insurance_id": "HS4010"},
    ))

    assert result.extracted_info["patient_name"] == "Lê Thị Cúc"
    assert result.extracted_info["insurance_id"] == "HS4010"
    assert result.extracted_info["doctor_name"] == "Trần Thị Bình"


def test_concurrent_analyses_are_independent(analyzer):
    async def both():
        return await asyncio.gather(
            analyzer.analyze("1. Paracetamol 500mg SL: 20 viên"),
            analyzer.analyze("2. Voltaren Emulgel 1%/20g"),
        )

    found_only, not_found_only = asyncio.run(both())

    assert len(found_only.found_medicines) == 1 and not found_only.not_found_medicines
    assert not not_found_only.found_medicines
    assert _suggestion_ids(not_found_only.not_found_medicines[0]) == ["P003", "P004"]


def test_analyze_sync(analyzer):
    result = analyzer.analyze_sync("Paracetamol 500mg")
    assert result.found_medicines[0].exact_match.catalog_entry.id == "P001"


def test_analyze_prescription_helper(catalog, make_classifier, fast_config):
    result = asyncio.run(analyze_prescription(
        "1. Amoxicillin 500mg SL: 14 viên",
        catalog,
        classifier=make_classifier(),
        config=fast_config,
    ))

    found = result.found_medicines[0]
    assert found.exact_match.catalog_entry.id == "P008"
    assert messages.NOTE_PRESCRIPTION_REQUIRED in result.notes
    assert result.requires_consultation is True


def test_numbered_entries_on_one_ocr_line(analyzer):
    """Three numbered medicines the OCR ran together are resolved separately"""
    text = (
        "1. Paracetamol 500mg SL: 20 viên 2. Amoxicillin 500mg SL: 10 viên "
        "3. Celecoxib 200mg SL: 10 viên"
    )

    result = asyncio.run(analyzer.analyze(text))

    assert len(result.found_medicines) == 3
    quantities = {r.exact_match.catalog_entry.id: r.quantity for r in result.found_medicines}
    assert quantities == {"P001": 20, "P008": 10, "P005": 10}
    assert result.not_found_medicines == []


def test_misspelled_medicine_is_found(analyzer):
    result = asyncio.run(analyzer.analyze("1. Paracetaml 500mg SL: 20 viên"))

    found = result.found_medicines[0]
    assert found.exact_match.catalog_entry.id == "P001"
    assert found.quantity == 20
