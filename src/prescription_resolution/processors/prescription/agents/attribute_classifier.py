# ============================================================================
# src/prescription_resolution/processors/prescription/agents/attribute_classifier.py
# ============================================================================
"""
Attribute Classifier

Builds a best-effort taxonomy profile (category, subcategory, dosage form,
route) for a medicine the catalog could not match exactly.

Sources, in priority order; each fills only fields that are still unset:
1. External classifier (may be absent, slow or wrong; failures count as empty)
2. Reference record: a same/similar-named catalog entry
3. Surface cues in the prescription text ("gel", "viên", "1%/20g", ...)
4. Drug-group knowledge (NSAID / corticosteroid / paracetamol membership)

The result is always returned, even when every field is empty.
"""

import re
from typing import Dict, Any, List, Optional, Tuple

from ....catalog.base import BaseCatalog, fold
from ....classifiers.base import AbsentClassifier, ClassifierResponse, TaxonomyClassifier
from ....constants.drug_groups import DRUG_GROUPS, generic_for, infer_drug_group, infer_group_from_keywords
from ....core.agent_base import Agent
from ....core.context.catalog_entry import CatalogEntry
from ....core.context.line_context import LineContext
from ....core.context.medicine import ParsedMedicine
from ....core.context.taxonomy import ClassificationResult, TaxonomyProfile
from ....utils.dosage import is_percent_per_mass
from ....utils.logging import LogAdapter
from ....utils.timeouts import call_with_timeout

# (pattern, dosage form, route); first match wins
SURFACE_CUES: List[Tuple[re.Pattern, str, str]] = [
    (re.compile(r"\b(?:emulgel|gel|tuýp|tuyp|tube)\b", re.IGNORECASE), "Gel", "Dùng ngoài"),
    (re.compile(r"\b(?:kem\s+bôi|kem|cream)\b", re.IGNORECASE), "Kem", "Dùng ngoài"),
    (re.compile(r"\b(?:thuốc\s+mỡ|ointment)\b", re.IGNORECASE), "Thuốc mỡ", "Dùng ngoài"),
    (re.compile(r"\bnhỏ\s+mắt\b|\beye\s+drops?\b", re.IGNORECASE), "Thuốc nhỏ mắt", "Nhỏ mắt"),
    (re.compile(r"\b(?:viên\s+nang|capsules?|caps)\b", re.IGNORECASE), "Viên nang", "Uống"),
    (re.compile(r"\b(?:siro|syrup)\b", re.IGNORECASE), "Siro", "Uống"),
    (re.compile(r"\b(?:viên|vien|tablets?|tab)\b", re.IGNORECASE), "Viên nén", "Uống"),
]

TOPICAL_FORM, TOPICAL_ROUTE = "Gel", "Dùng ngoài"

# Shortest first word worth a reference lookup on its own
MIN_REFERENCE_WORD_LENGTH = 4


def surface_cues(parsed: ParsedMedicine) -> TaxonomyProfile:
    """Dosage form / route implied by the text of the line itself."""
    if is_percent_per_mass(parsed.dosage):
        return TaxonomyProfile(dosage_form=TOPICAL_FORM, route=TOPICAL_ROUTE)

    text = f"{parsed.clean_text} {parsed.original_text}"
    for pattern, form, route in SURFACE_CUES:
        if pattern.search(text):
            return TaxonomyProfile(dosage_form=form, route=route)
    return TaxonomyProfile()


def reference_terms(parsed: ParsedMedicine) -> List[str]:
    terms: List[str] = []
    candidates = [parsed.brand, parsed.base_name]
    first_word = (parsed.base_name or "").split()[:1]
    if first_word and len(first_word[0]) >= MIN_REFERENCE_WORD_LENGTH:
        candidates.append(first_word[0])
    for term in candidates:
        if term and fold(term) not in [fold(t) for t in terms]:
            terms.append(term)
    return terms


class AttributeClassifier(Agent):
    """
    Resolves a TaxonomyProfile for an unmatched medicine.

    Never raises: collaborator errors and timeouts leave the affected
    fields empty.
    """

    def __init__(
        self,
        catalog: BaseCatalog,
        classifier: Optional[TaxonomyClassifier] = None,
        config: Dict[str, Any] = None
    ):
        super().__init__(config)
        self.catalog = catalog
        self.classifier = classifier or AbsentClassifier(self.config)
        self.classifier_timeout = self.config.get('classifier_timeout', 15.0)
        self.catalog_timeout = self.config.get('catalog_timeout', 5.0)

    def get_name(self) -> str:
        return "AttributeClassifier"

    async def execute(self, context: LineContext) -> Dict[str, Any]:
        log = LogAdapter(self.logger, {"line_index": context.line_index})
        result = await self.classify(context.parsed, log=log)
        context.classification = result
        for warning in result.warnings:
            context.add_warning(warning)

        known = len(result.profile.known_fields())
        return {
            "decision": "complete" if result.profile.is_complete else "partial",
            "confidence": known / 4,
            "reasoning": f"{known}/4 taxonomy attributes resolved",
            "sources": dict(result.sources),
        }

    async def classify(self, parsed: ParsedMedicine, log=None) -> ClassificationResult:
        log = log or self.logger
        result = ClassificationResult()

        # 1. External classifier
        response = await call_with_timeout(
            self.classifier.classify(parsed.base_name, parsed.dosage.text if parsed.dosage else None),
            self.classifier_timeout,
            fallback=None,
            operation=f"{self.classifier.backend_name} classifier",
            log=log,
        )
        if response is None:
            result.warnings.append("classifier_unavailable")
            response = ClassifierResponse()
        self._fill(result, response.to_profile(), "classifier")
        self._fill_value(result, "active_ingredient", response.active_ingredient, "classifier")

        # 2. Reference record
        cues = surface_cues(parsed)
        reference = await call_with_timeout(
            self.catalog.find_reference(reference_terms(parsed)),
            self.catalog_timeout,
            fallback=None,
            operation="catalog reference lookup",
            log=log,
        )
        if reference is not None:
            self._apply_reference(result, reference, cues, log)

        # 3. Surface cues
        self._fill(result, cues, "surface")

        # 4. Drug group
        self._apply_drug_group(result, parsed)

        log.debug(
            f"Taxonomy for {parsed.base_name!r}: {result.profile.known_fields()} "
            f"(sources: {result.sources}, missing: {result.profile.missing_fields()})"
        )
        return result

    # ------------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------------

    @staticmethod
    def _fill(result: ClassificationResult, profile: TaxonomyProfile, source: str):
        for name in result.profile.merge_missing(profile):
            result.sources[name] = source

    @staticmethod
    def _fill_value(result: ClassificationResult, name: str, value: Optional[str], source: str):
        if value and value.strip() and not getattr(result, name):
            setattr(result, name, value.strip())
            result.sources[name] = source

    def _apply_reference(
        self,
        result: ClassificationResult,
        reference: CatalogEntry,
        cues: TaxonomyProfile,
        log
    ):
        """
        Borrow taxonomy from a reference record.

        A record whose form or route contradicts the line's own cues is a
        different presentation; only its category-level fields are used.
        """
        result.reference_entry_id = reference.id
        borrowed = TaxonomyProfile(
            category=reference.category,
            subcategory=reference.subcategory,
            dosage_form=reference.dosage_form,
            route=reference.route,
        )
        conflicting = any(
            fold(getattr(cues, name)) and fold(getattr(borrowed, name))
            and fold(getattr(cues, name)) != fold(getattr(borrowed, name))
            for name in ("dosage_form", "route")
        )
        if conflicting:
            log.debug(f"Reference {reference.name!r} has a different presentation; using category fields only")
            borrowed.dosage_form = None
            borrowed.route = None

        self._fill(result, borrowed, "reference")
        self._fill_value(result, "active_ingredient", reference.active_ingredient, "reference")
        self._fill_value(result, "therapeutic_group", reference.therapeutic_group, "reference")

    def _apply_drug_group(self, result: ClassificationResult, parsed: ParsedMedicine):
        group = (
            infer_drug_group(parsed.brand or "")
            or infer_drug_group(parsed.base_name)
            or infer_drug_group(result.active_ingredient or "")
            or infer_group_from_keywords(
                result.profile.category, result.profile.subcategory, result.therapeutic_group
            )
        )
        if not group:
            return

        result.drug_group = group
        spec = DRUG_GROUPS[group]
        self._fill(
            result,
            TaxonomyProfile(subcategory=spec["subcategory"], category=spec["category"]),
            "drug_group",
        )
        generic = generic_for(parsed.brand or "") or generic_for(parsed.base_name)
        if generic:
            self._fill_value(result, "active_ingredient", generic, "drug_group")
