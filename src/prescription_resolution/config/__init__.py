# ============================================================================
# src/prescription_resolution/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .thresholds_config import threshold_settings, ThresholdSettings
from .logging_config import logging_settings, LoggingSettings

__all__ = [
    "threshold_settings",
    "ThresholdSettings",
    "logging_settings",
    "LoggingSettings",
]
