# ============================================================================
# tests/unit/test_drug_groups.py
# ============================================================================
"""
Tests for therapeutic drug-group knowledge
"""

import pytest

from prescription_resolution.constants.drug_groups import (
    expand_group_keywords,
    generic_for,
    infer_drug_group,
    infer_group_from_keywords,
)


class TestInferDrugGroup:

    def test_brand_alias(self):
        assert infer_drug_group("Voltaren Emulgel") == "nsaid"
        assert generic_for("Voltaren Emulgel") == "diclofenac"

    def test_member(self):
        assert infer_drug_group("Methylprednisolon 16mg") == "corticosteroid"

    def test_suffix(self):
        assert infer_drug_group("Lornoxicam 8mg") == "nsaid"

    def test_unknown(self):
        assert infer_drug_group("Amoxicillin 500mg") is None
        assert infer_drug_group("") is None


@pytest.mark.parametrize("texts, expected", [
    (("Thuốc kháng viêm", "Corticosteroid", None), "corticosteroid"),
    ((None, None, "Kháng viêm steroid"), "corticosteroid"),
    ((None, None, "Kháng viêm không steroid"), "nsaid"),
    (("Thuốc cơ xương khớp", "NSAID", None), "nsaid"),
    (("Thuốc giảm đau, hạ sốt", None, None), "paracetamol"),
    ((None, None, None), None),
])
def test_group_from_keywords(texts, expected):
    """The longest matching keyword decides between overlapping groups"""
    assert infer_group_from_keywords(*texts) == expected


def test_expand_nsaid_keywords():
    keywords = expand_group_keywords("NSAID")
    assert keywords[0] == "nsaid"
    assert "kháng viêm" in keywords
    assert "corticosteroid" not in keywords
