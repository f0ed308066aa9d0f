# ============================================================================
# src/prescription_resolution/constants/__init__.py
# ============================================================================
"""
Vocabulary, drug-group and message tables.
"""

from .drug_groups import (
    DRUG_GROUPS,
    infer_drug_group,
    infer_group_from_keywords,
    generic_for,
    expand_group_keywords,
)
from . import messages
from . import vocabulary

__all__ = [
    "DRUG_GROUPS",
    "infer_drug_group",
    "infer_group_from_keywords",
    "generic_for",
    "expand_group_keywords",
    "messages",
    "vocabulary",
]
