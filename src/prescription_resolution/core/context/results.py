# ============================================================================
# src/prescription_resolution/core/context/results.py
# ============================================================================
"""
Resolution outputs
- MatchCandidate: scored substitute, internal to ranking
- ExactMatch: terminal outcome of a name lookup
- Suggestion: public projection of a ranked candidate
- LineResolution: Found / NotFound outcome attached to its ParsedMedicine
- PrescriptionAnalysisResult: root output for a whole prescription
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog_entry import CatalogEntry
from .enums import LineStatus, MatchReason
from .medicine import ParsedMedicine


@dataclass(frozen=True)
class MatchCandidate:
    catalog_entry: CatalogEntry
    match_reason: MatchReason
    confidence: float
    same_dosage: bool = False

    # Predicate names that held, e.g. ("category", "route")
    matched_predicates: tuple = ()


@dataclass(frozen=True)
class ExactMatch:
    catalog_entry: CatalogEntry
    confidence: float
    match_reason: MatchReason
    matched_term: str = ""


@dataclass
class Suggestion:
    id: str
    name: str
    price: float
    confidence: float
    match_reason: MatchReason
    match_explanation: str
    match_count: int
    same_dosage: bool = False
    unit: Optional[str] = None
    in_stock: bool = True
    stock_quantity: Optional[int] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    active_ingredient: Optional[str] = None
    indication: Optional[str] = None
    contraindication: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "unit": self.unit,
            "in_stock": self.in_stock,
            "stock_quantity": self.stock_quantity,
            "category": self.category,
            "subcategory": self.subcategory,
            "dosage_form": self.dosage_form,
            "route": self.route,
            "active_ingredient": self.active_ingredient,
            "confidence": round(self.confidence, 4),
            "match_reason": self.match_reason.value,
            "match_explanation": self.match_explanation,
            "match_count": self.match_count,
            "same_dosage": self.same_dosage,
            "indication": self.indication,
            "contraindication": self.contraindication,
        }


@dataclass
class LineResolution:
    parsed: ParsedMedicine
    status: LineStatus
    exact_match: Optional[ExactMatch] = None
    suggestions: List[Suggestion] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_found(self) -> bool:
        return self.status == LineStatus.FOUND

    @property
    def quantity(self) -> int:
        return self.parsed.quantity

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "original_text": self.parsed.original_text,
            "parsed": self.parsed.to_dict(),
            "quantity": self.parsed.quantity,
        }
        if self.exact_match is not None:
            entry = self.exact_match.catalog_entry
            data["product"] = entry.to_dict()
            data["confidence"] = round(self.exact_match.confidence, 4)
            data["match_reason"] = self.exact_match.match_reason.value
            data["matched_term"] = self.exact_match.matched_term
        else:
            data["suggestions"] = [s.to_dict() for s in self.suggestions]
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


@dataclass(frozen=True)
class PrescriptionAnalysisResult:
    found_medicines: List[LineResolution]
    not_found_medicines: List[LineResolution]
    overall_confidence: float
    requires_consultation: bool
    notes: List[str]
    total_estimated_price: float = 0.0
    extracted_info: Dict[str, Any] = field(default_factory=dict)

    # (line text, rejection reason) pairs, diagnostics only
    rejected_lines: List[tuple] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found_medicines": [r.to_dict() for r in self.found_medicines],
            "not_found_medicines": [r.to_dict() for r in self.not_found_medicines],
            "overall_confidence": round(self.overall_confidence, 4),
            "requires_consultation": self.requires_consultation,
            "notes": list(self.notes),
            "total_estimated_price": self.total_estimated_price,
            "extracted_info": dict(self.extracted_info),
        }
