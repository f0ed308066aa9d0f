# ============================================================================
# tests/unit/test_dosage.py
# ============================================================================
"""
Tests for dosage expression parsing
"""

import pytest

from prescription_resolution.utils.dosage import (
    dosages_equal,
    find_dosage_spans,
    is_percent_per_mass,
    parse_dosage,
    parse_number,
    strip_dosage,
)


class TestParseNumber:

    def test_decimal_comma(self):
        assert parse_number("2,5") == 2.5

    def test_decimal_point(self):
        assert parse_number("0.5") == 0.5

    def test_thousands_separator(self):
        assert parse_number("1.000") == 1000.0

    def test_leading_zero_is_decimal(self):
        assert parse_number("0.500") == 0.5

    def test_empty(self):
        assert parse_number("") is None


class TestParseDosage:

    def test_single_component(self):
        dosage = parse_dosage("500mg")
        assert dosage.components == ((500.0, "mg"),)
        assert dosage.value == 500.0
        assert dosage.unit == "mg"

    def test_unit_conversion(self):
        assert parse_dosage("0,5g") == parse_dosage("500mg")
        assert parse_dosage("1000mcg") == parse_dosage("1mg")

    def test_combination_is_order_independent(self):
        a = parse_dosage("2,5g+0,3g+0,2g")
        b = parse_dosage("0,2g+2,5g+0,3g")
        assert a == b
        assert a.components == ((200.0, "mg"), (300.0, "mg"), (2500.0, "mg"))

    def test_percent_per_mass(self):
        dosage = parse_dosage("1%/20g")
        assert dosage.components == ((1.0, "%"), (20000.0, "mg"))
        assert dosage.text == "1%/20g"
        assert is_percent_per_mass(dosage)

    def test_concentration(self):
        dosage = parse_dosage("250mg/5ml")
        assert dosage.components == ((250.0, "mg"), (5.0, "ml"))
        assert not is_percent_per_mass(dosage)

    def test_inside_medicine_name(self):
        dosage = parse_dosage("Paracetamol 500 mg")
        assert dosage == parse_dosage("500mg")

    def test_no_dosage(self):
        assert parse_dosage("Paracetamol") is None
        assert parse_dosage("") is None
        assert parse_dosage(None) is None


def test_strip_dosage():
    assert strip_dosage("Paracetamol 500mg") == "Paracetamol"
    assert strip_dosage("Voltaren Emulgel 1%/20g") == "Voltaren Emulgel"
    assert strip_dosage("Panadol Extra") == "Panadol Extra"


def test_find_dosage_spans():
    text = "Paracetamol 500mg"
    spans = find_dosage_spans(text)
    assert len(spans) == 1
    start, end = spans[0]
    assert text[start:end] == "500mg"


@pytest.mark.parametrize("a, b, expected", [
    ("500mg", "0,5g", True),
    ("500mg", "650mg", False),
    ("1%", "1%/20g", False),
    (None, "500mg", False),
])
def test_dosages_equal(a, b, expected):
    left = parse_dosage(a) if a else None
    right = parse_dosage(b) if b else None
    assert dosages_equal(left, right) is expected
