# ============================================================================
# src/prescription_resolution/extractors/__init__.py
# ============================================================================
"""
Text extractors: medicine line segmentation and header fields.
"""

from .line_segmenter import LineSegmenter, SegmenterState, LineAction, SegmentationTrace
from .prescription_info import PrescriptionInfoExtractor

__all__ = [
    'LineSegmenter',
    'SegmenterState',
    'LineAction',
    'SegmentationTrace',
    'PrescriptionInfoExtractor',
]
