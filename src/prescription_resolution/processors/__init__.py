# src/prescription_resolution/processors/__init__.py
"""
Prescription Processors Module

Contains the prescription resolution pipeline (PrescriptionAnalyzer) and
its per-line stages.
"""

from .prescription import PrescriptionAnalyzer, analyze_prescription

__all__ = [
    "PrescriptionAnalyzer",
    "analyze_prescription",
]
