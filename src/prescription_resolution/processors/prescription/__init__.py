# ============================================================================
# src/prescription_resolution/processors/prescription/__init__.py
# ============================================================================
"""
Prescription resolution module.
"""

from .processor import PrescriptionAnalyzer, analyze_prescription

__all__ = ['PrescriptionAnalyzer', 'analyze_prescription']
