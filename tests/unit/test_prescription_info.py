# ============================================================================
# tests/unit/test_prescription_info.py
# ============================================================================
"""
Tests for prescription header extraction
"""

from prescription_resolution.extractors.prescription_info import PrescriptionInfoExtractor


def test_extract_header_fields(sample_prescription_text):
    """Patient, phone, clinic and diagnosis from a clinic prescription"""
    print("=" * 70)
    print("TEST: Prescription header extraction")
    print("=" * 70)

    info = PrescriptionInfoExtractor().extract(sample_prescription_text)

    assert info["patient_name"] == "Nguyễn Văn An"
    assert info["phone_number"] == "0901234567"
    assert info["hospital_name"] == "PHÒNG KHÁM ĐA KHOA AN BÌNH"
    assert info["diagnosis"] == "Viêm khớp gối"
    assert info["doctor_name"] == "Trần Thị Bình"
    assert "examination_date" not in info
    for key, value in info.items():
        print(f"✓ {key}: {value}")

    print("\n✅ Prescription header extraction test PASSED\n")


def test_doctor_on_same_line():
    info = PrescriptionInfoExtractor().extract("BS. Nguyễn Văn Hùng")
    assert info["doctor_name"] == "Nguyễn Văn Hùng"


def test_dates_are_iso_formatted():
    extractor = PrescriptionInfoExtractor()
    assert extractor.extract("Ngày 12 tháng 3 năm 2024")["examination_date"] == "2024-03-12"
    assert extractor.extract("Ngày khám: 05/11/2023")["examination_date"] == "2023-11-05"


def test_invalid_date_ignored():
    info = PrescriptionInfoExtractor().extract("Mã số: 45/13/2024")
    assert "examination_date" not in info


def test_empty_text():
    assert PrescriptionInfoExtractor().extract("") == {}
    assert PrescriptionInfoExtractor().extract(None) == {}
