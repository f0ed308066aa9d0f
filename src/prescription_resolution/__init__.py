# ============================================================================
# src/prescription_resolution/__init__.py
# ============================================================================
"""
Prescription Medicine Resolution Engine

Resolves the medicines on an OCR'd Vietnamese prescription against a
pharmacy catalog: exact matches where possible, ranked substitutes
otherwise.

Usage:
    from prescription_resolution import PrescriptionAnalyzer, open_catalog

    analyzer = PrescriptionAnalyzer(open_catalog("data/catalog/catalog.json"))
    result = await analyzer.analyze(ocr_text)
"""

from .catalog import open_catalog, InMemoryCatalog, SQLiteCatalog
from .classifiers import create_classifier, AbsentClassifier
from .core.context import PrescriptionAnalysisResult
from .processors import PrescriptionAnalyzer, analyze_prescription

__version__ = "0.1.0"

__all__ = [
    "PrescriptionAnalyzer",
    "analyze_prescription",
    "PrescriptionAnalysisResult",
    "open_catalog",
    "InMemoryCatalog",
    "SQLiteCatalog",
    "create_classifier",
    "AbsentClassifier",
]
