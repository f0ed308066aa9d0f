# src/prescription_resolution/core/context/__init__.py

from .enums import MatchReason, LineStatus
from .medicine import PrescriptionLine, Dosage, ParsedMedicine
from .taxonomy import TaxonomyProfile, ClassificationResult, TAXONOMY_FIELDS
from .catalog_entry import CatalogEntry
from .line_context import LineContext
from .results import (
    MatchCandidate,
    ExactMatch,
    Suggestion,
    LineResolution,
    PrescriptionAnalysisResult,
)

__all__ = [
    "MatchReason",
    "LineStatus",
    "PrescriptionLine",
    "Dosage",
    "ParsedMedicine",
    "TaxonomyProfile",
    "ClassificationResult",
    "TAXONOMY_FIELDS",
    "CatalogEntry",
    "MatchCandidate",
    "ExactMatch",
    "Suggestion",
    "LineResolution",
    "PrescriptionAnalysisResult",
    "LineContext",
]
