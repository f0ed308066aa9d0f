# ============================================================================
# src/prescription_resolution/utils/__init__.py
# ============================================================================
"""
Shared helpers: text normalization, dosage parsing, timeouts, logging, errors.
"""

from .exceptions import (
    PrescriptionResolutionError,
    CatalogError,
    CatalogUnavailableError,
    ClassifierError,
    ClassifierTimeoutError,
    ParsingError,
    ConfigurationError,
)
from .text_normalizer import OCRNormalizer, normalize_ocr_text
from .dosage import parse_dosage, dosages_equal
from .timeouts import call_with_timeout

__all__ = [
    'PrescriptionResolutionError',
    'CatalogError',
    'CatalogUnavailableError',
    'ClassifierError',
    'ClassifierTimeoutError',
    'ParsingError',
    'ConfigurationError',
    'OCRNormalizer',
    'normalize_ocr_text',
    'parse_dosage',
    'dosages_equal',
    'call_with_timeout',
]
