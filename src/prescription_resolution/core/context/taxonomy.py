# ============================================================================
# src/prescription_resolution/core/context/taxonomy.py
# ============================================================================
"""
Taxonomy profile of a medicine
- Four-attribute classification used as the primary substitute key
- ClassificationResult adds ingredient / group / provenance
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

TAXONOMY_FIELDS = ("category", "subcategory", "dosage_form", "route")


def _filled(value: Optional[str]) -> bool:
    return bool(value and value.strip() and value.strip().upper() != "N/A")


@dataclass
class TaxonomyProfile:
    category: Optional[str] = None
    subcategory: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all(_filled(getattr(self, name)) for name in TAXONOMY_FIELDS)

    @property
    def is_empty(self) -> bool:
        return not any(_filled(getattr(self, name)) for name in TAXONOMY_FIELDS)

    def known_fields(self) -> Dict[str, str]:
        """Return only the non-empty taxonomy fields."""
        return {
            name: getattr(self, name).strip()
            for name in TAXONOMY_FIELDS
            if _filled(getattr(self, name))
        }

    def missing_fields(self) -> List[str]:
        return [name for name in TAXONOMY_FIELDS if not _filled(getattr(self, name))]

    def merge_missing(self, other: "TaxonomyProfile") -> List[str]:
        """
        Fill fields that are still unset from `other`.

        Returns the names of the fields that were filled.
        """
        filled = []
        for name in TAXONOMY_FIELDS:
            if not _filled(getattr(self, name)) and _filled(getattr(other, name)):
                setattr(self, name, getattr(other, name).strip())
                filled.append(name)
        return filled

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ClassificationResult:
    """Everything AttributeClassifier learned about an unmatched medicine."""
    profile: TaxonomyProfile = field(default_factory=TaxonomyProfile)
    active_ingredient: Optional[str] = None
    therapeutic_group: Optional[str] = None
    drug_group: Optional[str] = None
    reference_entry_id: Optional[str] = None

    # field name -> step that filled it ("classifier", "reference", "surface", "drug_group")
    sources: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "active_ingredient": self.active_ingredient,
            "therapeutic_group": self.therapeutic_group,
            "drug_group": self.drug_group,
            "reference_entry_id": self.reference_entry_id,
            "sources": dict(self.sources),
        }
