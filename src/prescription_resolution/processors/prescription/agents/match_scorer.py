# ============================================================================
# src/prescription_resolution/processors/prescription/agents/match_scorer.py
# ============================================================================
"""
Match Scorer

Assigns a match tier and confidence to each candidate from an ordered table
of predicate sets. Predicates compare the candidate with the target:

    C  same category          F  same dosage form
    S  same subcategory       R  same route
    I  same active ingredient D  same normalized dosage

The table is sorted by confidence, so the first fully satisfied row is also
the best one: more agreement never scores lower.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, FrozenSet, List, Optional

from ....catalog.base import fold, name_match_level, normalize_name
from ....constants.drug_groups import infer_drug_group, infer_group_from_keywords
from ....core.agent_base import Agent
from ....core.context.catalog_entry import CatalogEntry
from ....core.context.enums import MatchReason
from ....core.context.line_context import LineContext
from ....core.context.medicine import ParsedMedicine
from ....core.context.results import MatchCandidate
from ....core.context.taxonomy import TAXONOMY_FIELDS, ClassificationResult, TaxonomyProfile, _filled
from ....utils.dosage import dosages_equal
from .exact_matcher import entry_dosage

logger = logging.getLogger(__name__)

CATEGORY = "category"
SUBCATEGORY = "subcategory"
INGREDIENT = "active_ingredient"
FORM = "dosage_form"
ROUTE = "route"
DOSAGE = "dosage"


@dataclass(frozen=True)
class LadderRule:
    predicates: FrozenSet[str]
    reason: MatchReason
    confidence: float


def _rule(reason: MatchReason, confidence: float, *predicates: str) -> LadderRule:
    return LadderRule(frozenset(predicates), reason, confidence)


LADDER: List[LadderRule] = sorted(
    [
        _rule(MatchReason.FULL_MATCH_SAME_INGREDIENT_SAME_DOSAGE, 0.95,
              CATEGORY, SUBCATEGORY, FORM, ROUTE, INGREDIENT, DOSAGE),
        _rule(MatchReason.FULL_MATCH_SAME_INGREDIENT, 0.92, CATEGORY, SUBCATEGORY, FORM, ROUTE, INGREDIENT),
        _rule(MatchReason.FULL_MATCH_SAME_DOSAGE, 0.90, CATEGORY, SUBCATEGORY, FORM, ROUTE, DOSAGE),
        _rule(MatchReason.FULL_MATCH, 0.85, CATEGORY, SUBCATEGORY, FORM, ROUTE),
        _rule(MatchReason.SAME_INGREDIENT_SAME_DOSAGE, 0.82, INGREDIENT, DOSAGE),
        _rule(MatchReason.SAME_INGREDIENT, 0.78, INGREDIENT),
        _rule(MatchReason.SAME_SUBCATEGORY_FORM_ROUTE, 0.75, SUBCATEGORY, FORM, ROUTE),
        _rule(MatchReason.SAME_CATEGORY_FORM_ROUTE, 0.72, CATEGORY, FORM, ROUTE),
        _rule(MatchReason.SAME_CATEGORY_SUBCATEGORY_FORM, 0.70, CATEGORY, SUBCATEGORY, FORM),
        _rule(MatchReason.SAME_CATEGORY_SUBCATEGORY_ROUTE, 0.68, CATEGORY, SUBCATEGORY, ROUTE),
        _rule(MatchReason.SAME_SUBCATEGORY_FORM, 0.62, SUBCATEGORY, FORM),
        _rule(MatchReason.SAME_CATEGORY_SUBCATEGORY, 0.60, CATEGORY, SUBCATEGORY),
        _rule(MatchReason.SAME_FORM_ROUTE, 0.55, FORM, ROUTE),
        _rule(MatchReason.SAME_SUBCATEGORY, 0.50, SUBCATEGORY),
        _rule(MatchReason.SAME_CATEGORY, 0.45, CATEGORY),
    ],
    key=lambda rule: rule.confidence,
    reverse=True,
)

THERAPEUTIC_GROUP_CONFIDENCE = 0.40

# Tie-break order for equal confidences: ladder order, then the group fallback
_PRIORITY = {rule.reason: i for i, rule in enumerate(LADDER)}
_PRIORITY[MatchReason.SAME_THERAPEUTIC_GROUP] = len(LADDER)


def ladder_priority(reason: MatchReason) -> int:
    """Lower is more specific."""
    return _PRIORITY.get(reason, len(_PRIORITY))


def count_attribute_matches(profile: TaxonomyProfile, entry: CatalogEntry) -> int:
    """How many of the four taxonomy fields agree (both sides non-empty)."""
    return sum(
        1
        for name in TAXONOMY_FIELDS
        if _filled(getattr(profile, name))
        and _filled(getattr(entry, name))
        and fold(getattr(profile, name)) == fold(getattr(entry, name))
    )


def same_ingredient(target: Optional[str], candidate: Optional[str]) -> bool:
    """Equal, or one ingredient list contains the other on word boundaries."""
    a, b = normalize_name(target), normalize_name(candidate)
    if not a or not b:
        return False
    return name_match_level(a, b) is not None or name_match_level(b, a) is not None


def entry_drug_group(entry: CatalogEntry) -> Optional[str]:
    return (
        infer_drug_group(entry.active_ingredient or "")
        or infer_drug_group(entry.name)
        or infer_group_from_keywords(entry.therapeutic_group, entry.subcategory)
    )


class MatchScorer(Agent):
    """
    Scores candidates against the target's profile, ingredient and dosage.

    Candidates sharing nothing are dropped rather than scored at zero.
    """

    def get_name(self) -> str:
        return "MatchScorer"

    async def execute(self, context: LineContext) -> Dict[str, Any]:
        classification = context.classification or ClassificationResult()
        context.scored = self.score_all(context.candidates, context.parsed, classification)

        best = context.scored[0].confidence if context.scored else 0.0
        return {
            "decision": "scored",
            "confidence": best,
            "reasoning": f"{len(context.scored)}/{len(context.candidates)} candidate(s) scored",
        }

    @staticmethod
    def predicates(
        entry: CatalogEntry,
        parsed: ParsedMedicine,
        classification: ClassificationResult
    ) -> FrozenSet[str]:
        """Names of the predicates that hold for this candidate."""
        profile = classification.profile
        held = set()
        for name in TAXONOMY_FIELDS:
            wanted, actual = getattr(profile, name), getattr(entry, name)
            if _filled(wanted) and _filled(actual) and fold(wanted) == fold(actual):
                held.add(name)

        if same_ingredient(classification.active_ingredient, entry.active_ingredient):
            held.add(INGREDIENT)

        candidate_dosage = entry_dosage(entry)
        if parsed.dosage is not None and candidate_dosage is not None:
            if dosages_equal(parsed.dosage, candidate_dosage):
                held.add(DOSAGE)

        return frozenset(held)

    @staticmethod
    def shares_therapeutic_group(entry: CatalogEntry, classification: ClassificationResult) -> bool:
        if _filled(classification.therapeutic_group) and _filled(entry.therapeutic_group):
            if fold(classification.therapeutic_group) == fold(entry.therapeutic_group):
                return True
        return bool(classification.drug_group) and entry_drug_group(entry) == classification.drug_group

    def score(
        self,
        entry: CatalogEntry,
        parsed: ParsedMedicine,
        classification: ClassificationResult
    ) -> Optional[MatchCandidate]:
        held = self.predicates(entry, parsed, classification)
        matched = tuple(sorted(held))

        for rule in LADDER:
            if rule.predicates <= held:
                return MatchCandidate(
                    catalog_entry=entry,
                    match_reason=rule.reason,
                    confidence=rule.confidence,
                    same_dosage=DOSAGE in held,
                    matched_predicates=matched,
                )

        if self.shares_therapeutic_group(entry, classification):
            return MatchCandidate(
                catalog_entry=entry,
                match_reason=MatchReason.SAME_THERAPEUTIC_GROUP,
                confidence=THERAPEUTIC_GROUP_CONFIDENCE,
                same_dosage=DOSAGE in held,
                matched_predicates=matched,
            )
        return None

    def score_all(
        self,
        entries: List[CatalogEntry],
        parsed: ParsedMedicine,
        classification: ClassificationResult
    ) -> List[MatchCandidate]:
        scored = []
        for entry in entries:
            candidate = self.score(entry, parsed, classification)
            if candidate is not None:
                scored.append(candidate)
            else:
                logger.debug(f"Discarded candidate {entry.name!r}: no shared attributes")
        return scored
