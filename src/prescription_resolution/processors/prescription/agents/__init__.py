# ============================================================================
# src/prescription_resolution/processors/prescription/agents/__init__.py
# ============================================================================
"""
Prescription resolution stages.
"""

from .line_validator import LineValidator, ValidationResult
from .medicine_parser import MedicineNameParser
from .exact_matcher import ExactMatchResolver
from .attribute_classifier import AttributeClassifier
from .candidate_searcher import CandidateSearcher
from .match_scorer import MatchScorer, LADDER, count_attribute_matches
from .result_aggregator import ResultAggregator

__all__ = [
    'LineValidator',
    'ValidationResult',
    'MedicineNameParser',
    'ExactMatchResolver',
    'AttributeClassifier',
    'CandidateSearcher',
    'MatchScorer',
    'LADDER',
    'count_attribute_matches',
    'ResultAggregator',
]
