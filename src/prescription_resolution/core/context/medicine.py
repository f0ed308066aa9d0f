# ============================================================================
# src/prescription_resolution/core/context/medicine.py
# ============================================================================
"""
Prescription line and parsed medicine representations
- PrescriptionLine: one logical entry after segmentation
- Dosage: canonical, order-independent strength expression
- ParsedMedicine: name / dosage / quantity decomposition of a line
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class PrescriptionLine:
    text: str
    source_line_index: int
    ordinal: Optional[int] = None
    synthesized_ordinal: bool = False


@dataclass(frozen=True)
class Dosage:
    """
    A dosage expression such as "500mg" or "2,5g+0,3g+0,2g".

    `components` holds (value, unit) pairs converted to base units
    (mg, ml, iu, %) and sorted, so "0,3g+2,5g" equals "2500mg+300mg".
    `value`/`unit` expose the first part as written.
    """
    text: str
    components: Tuple[Tuple[float, str], ...]
    value: float = 0.0
    unit: str = ""

    def __eq__(self, other):
        if not isinstance(other, Dosage):
            return NotImplemented
        return self.components == other.components

    def __hash__(self):
        return hash(self.components)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "value": self.value,
            "unit": self.unit,
            "components": [list(c) for c in self.components],
        }


@dataclass
class ParsedMedicine:
    original_text: str
    clean_text: str
    base_name: str
    dosage: Optional[Dosage] = None
    quantity: int = 1
    brand: Optional[str] = None
    source_line_index: Optional[int] = None

    # Parser notes (e.g. quantity defaulted); diagnostics only
    warnings: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_text": self.original_text,
            "clean_text": self.clean_text,
            "base_name": self.base_name,
            "dosage": self.dosage.to_dict() if self.dosage else None,
            "quantity": self.quantity,
            "brand": self.brand,
            "source_line_index": self.source_line_index,
        }
