# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import asyncio
from typing import Optional

import pytest

from prescription_resolution.catalog import InMemoryCatalog
from prescription_resolution.classifiers.base import ClassifierResponse, TaxonomyClassifier
from prescription_resolution.processors import PrescriptionAnalyzer


CATALOG_RECORDS = [
    {
        "id": "P001", "name": "Paracetamol 500mg", "price": 1500, "unit": "viên",
        "stockQuantity": 500, "isPrescription": False,
        "activeIngredient": "Paracetamol", "therapeuticGroup": "Giảm đau, hạ sốt",
        "strength": "500mg",
        "category": "Thuốc giảm đau, hạ sốt", "subcategory": "Paracetamol",
        "dosageForm": "Viên nén", "route": "Uống",
        "indication": "Giảm đau, hạ sốt", "contraindication": "Suy gan nặng",
    },
    {
        "id": "P002", "name": "Panadol Extra", "price": 2200, "unit": "viên",
        "stockQuantity": 240, "isPrescription": False,
        "activeIngredient": "Paracetamol, Caffeine", "brand": "Panadol",
        "therapeuticGroup": "Giảm đau, hạ sốt", "strength": "500mg+65mg",
        "category": "Thuốc giảm đau, hạ sốt", "subcategory": "Paracetamol",
        "dosageForm": "Viên nén", "route": "Uống",
    },
    {
        "id": "P003", "name": "Diclofenac Gel 1% 20g", "price": 32000, "unit": "tuýp",
        "stockQuantity": 35, "isPrescription": False,
        "activeIngredient": "Diclofenac", "therapeuticGroup": "Kháng viêm không steroid",
        "strength": "1%",
        "category": "Thuốc cơ xương khớp", "subcategory": "NSAID",
        "dosageForm": "Gel", "route": "Dùng ngoài",
        "indication": "Đau cơ, bong gân", "contraindication": "Không bôi lên vết thương hở",
    },
    {
        "id": "P004", "name": "Ketoprofen Gel 2.5% 30g", "price": 45000, "unit": "tuýp",
        "stockQuantity": 60, "isPrescription": False,
        "activeIngredient": "Ketoprofen", "therapeuticGroup": "Kháng viêm không steroid",
        "strength": "2.5%",
        "category": "Thuốc cơ xương khớp", "subcategory": "NSAID",
        "dosageForm": "Gel", "route": "Dùng ngoài",
    },
    {
        "id": "P005", "name": "Celecoxib 200mg", "price": 6500, "unit": "viên",
        "stockQuantity": 120, "isPrescription": True,
        "activeIngredient": "Celecoxib", "therapeuticGroup": "Kháng viêm không steroid",
        "strength": "200mg",
        "category": "Thuốc cơ xương khớp", "subcategory": "NSAID",
        "dosageForm": "Viên nang", "route": "Uống",
    },
    {
        "id": "P006", "name": "Glucosamin 500mg", "price": 3000, "unit": "viên",
        "stockQuantity": 200, "isPrescription": False,
        "activeIngredient": "Glucosamin", "therapeuticGroup": "Bổ sung sụn khớp",
        "strength": "500mg",
        "category": "Thuốc cơ xương khớp", "subcategory": "Bổ khớp",
        "dosageForm": "Viên nang", "route": "Uống",
    },
    {
        "id": "P007", "name": "Methylprednisolon 16mg", "price": 3900, "unit": "viên",
        "stockQuantity": 5, "isPrescription": True,
        "activeIngredient": "Methylprednisolon", "therapeuticGroup": "Corticosteroid",
        "strength": "16mg",
        "category": "Thuốc kháng viêm", "subcategory": "Corticosteroid",
        "dosageForm": "Viên nén", "route": "Uống",
    },
    {
        "id": "P008", "name": "Amoxicillin 500mg", "price": 1200, "unit": "viên",
        "stockQuantity": 900, "isPrescription": True,
        "activeIngredient": "Amoxicillin", "therapeuticGroup": "Kháng sinh",
        "strength": "500mg",
        "category": "Thuốc kháng sinh", "subcategory": "Penicillin",
        "dosageForm": "Viên nang", "route": "Uống",
    },
]


class StubClassifier(TaxonomyClassifier):
    """Classifier returning a fixed answer, or sleeping / failing on demand."""

    def __init__(self, response: Optional[ClassifierResponse] = None, delay: float = 0.0, error: Exception = None):
        super().__init__({})
        self.response = response or ClassifierResponse()
        self.delay = delay
        self.error = error
        self.calls = []

    @property
    def backend_name(self) -> str:
        return "stub"

    async def classify(self, name, dosage=None):
        self.calls.append((name, dosage))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def catalog_records():
    """Catalog records as exported by the pharmacy backend (camelCase)"""
    return [dict(record) for record in CATALOG_RECORDS]


@pytest.fixture
def catalog(catalog_records):
    """In-memory catalog over the sample records"""
    return InMemoryCatalog(catalog_records)


@pytest.fixture
def fast_config():
    """Short timeouts so failure paths finish quickly"""
    return {
        "catalog_timeout": 1.0,
        "classifier_timeout": 1.0,
        "analysis_timeout": 0.0,
        "max_concurrent_lines": 4,
        "max_suggestions_per_line": 5,
        "low_stock_threshold": 10,
    }


@pytest.fixture
def make_classifier():
    """Factory for stub classifiers: make_classifier(response=..., delay=..., error=...)"""
    return StubClassifier


@pytest.fixture
def msk_classifier():
    """Classifier that files everything under oral NSAID tablets"""
    return StubClassifier(ClassifierResponse(
        category="Thuốc cơ xương khớp",
        subcategory="NSAID",
        dosage_form="Viên nén",
        route="Uống",
    ))


@pytest.fixture
def analyzer(catalog, fast_config):
    """Analyzer with no external classifier"""
    return PrescriptionAnalyzer(catalog, classifier=StubClassifier(), config=fast_config)


@pytest.fixture
def sample_prescription_text():
    """Typical OCR output of a clinic prescription"""
    return """PHÒNG KHÁM ĐA KHOA AN BÌNH
Họ tên: Nguyễn Văn An   Tuổi: 45
Điện thoại: 0901 234 567
Chẩn đoán: Viêm khớp gối
Thuốc điều trị:
1. Paracetamol 500mg SL: 20 viên
Sáng 1 viên, tối 1 viên
2. Voltaren Emulgel 1%/20g
SL: 1 tuýp
Bác sĩ khám bệnh
Trần Thị Bình"""
