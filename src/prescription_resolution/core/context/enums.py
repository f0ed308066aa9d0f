# ============================================================================
# src/prescription_resolution/core/context/enums.py
# ============================================================================
"""
Resolution Enums
- Match reasons (exact tags and candidate ladder tiers)
- Line resolution status
"""

from enum import Enum


class MatchReason(str, Enum):
    # Exact name hits
    SAME_NAME_SAME_DOSAGE = "same_name_same_dosage"
    SAME_NAME_DIFFERENT_DOSAGE = "same_name_different_dosage"
    SAME_NAME = "same_name"

    # Candidate ladder, most specific first
    FULL_MATCH_SAME_INGREDIENT_SAME_DOSAGE = "full_match_same_ingredient_same_dosage"
    FULL_MATCH_SAME_INGREDIENT = "full_match_same_ingredient"
    FULL_MATCH_SAME_DOSAGE = "full_match_same_dosage"
    FULL_MATCH = "full_match"
    SAME_INGREDIENT_SAME_DOSAGE = "same_ingredient_same_dosage"
    SAME_INGREDIENT = "same_ingredient"
    SAME_SUBCATEGORY_FORM_ROUTE = "same_subcategory_form_route"
    SAME_CATEGORY_FORM_ROUTE = "same_category_form_route"
    SAME_CATEGORY_SUBCATEGORY_FORM = "same_category_subcategory_form"
    SAME_CATEGORY_SUBCATEGORY_ROUTE = "same_category_subcategory_route"
    SAME_SUBCATEGORY_FORM = "same_subcategory_form"
    SAME_CATEGORY_SUBCATEGORY = "same_category_subcategory"
    SAME_FORM_ROUTE = "same_form_route"
    SAME_SUBCATEGORY = "same_subcategory"
    SAME_CATEGORY = "same_category"
    SAME_THERAPEUTIC_GROUP = "same_therapeutic_group"


class LineStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
