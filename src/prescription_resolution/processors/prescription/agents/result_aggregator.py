# ============================================================================
# src/prescription_resolution/processors/prescription/agents/result_aggregator.py
# ============================================================================
"""
Result Aggregator

Joins per-line outcomes into one PrescriptionAnalysisResult:
- merges lines that resolved to the same catalog item
- filters candidates by taxonomy agreement (4 of 4, relaxed to 3 of 4)
- ranks, removes already-found items and deduplicates across lines
- computes overall confidence, consultation flag, notes and estimated price

All dedup state lives inside one aggregate() call.
"""

import logging
from dataclasses import replace
from typing import Dict, Any, List, Optional, Sequence, Set, Tuple

from ....catalog.base import fold, normalize_name
from ....config import threshold_settings
from ....constants import messages
from ....core.config import get_config
from ....core.context.catalog_entry import CatalogEntry
from ....core.context.enums import LineStatus, MatchReason
from ....core.context.line_context import LineContext
from ....core.context.medicine import Dosage
from ....core.context.results import (
    LineResolution,
    MatchCandidate,
    PrescriptionAnalysisResult,
    Suggestion,
)
from ....core.context.taxonomy import TaxonomyProfile
from ....utils.dosage import dosages_equal, strip_dosage
from .exact_matcher import entry_dosage
from .match_scorer import count_attribute_matches, ladder_priority

logger = logging.getLogger(__name__)

FoundKey = Tuple[str, Optional[Dosage]]


# ============================================================================
# Pure helpers
# ============================================================================

def overall_confidence(parsed_count: int, matched_count: int) -> float:
    """Confidence band for the whole prescription."""
    if parsed_count <= 0:
        return threshold_settings.NO_MEDICINES_CONFIDENCE
    if matched_count <= 0:
        return threshold_settings.NONE_MATCHED_CONFIDENCE
    if matched_count >= parsed_count:
        return threshold_settings.ALL_MATCHED_CONFIDENCE

    low = threshold_settings.PARTIAL_MATCH_MIN_CONFIDENCE
    high = threshold_settings.PARTIAL_MATCH_MAX_CONFIDENCE
    return min(high, low + (high - low) * matched_count / parsed_count)


def filter_by_agreement(
    scored: Sequence[MatchCandidate],
    profile: TaxonomyProfile
) -> List[Tuple[MatchCandidate, int]]:
    """
    Keep candidates sharing all four taxonomy attributes; when none do,
    keep those sharing at least the relaxed number.
    """
    counted = [(c, count_attribute_matches(profile, c.catalog_entry)) for c in scored]
    strict = [item for item in counted if item[1] >= threshold_settings.STRICT_ATTRIBUTE_MATCHES]
    if strict:
        return strict
    return [item for item in counted if item[1] >= threshold_settings.RELAXED_ATTRIBUTE_MATCHES]


def rank_key(item: Tuple[MatchCandidate, int]):
    candidate = item[0]
    return (
        -candidate.confidence,
        ladder_priority(candidate.match_reason),
        fold(candidate.catalog_entry.name),
        candidate.catalog_entry.id,
    )


def found_key(entry: CatalogEntry) -> FoundKey:
    return normalize_name(strip_dosage(entry.name)), entry_dosage(entry)


def is_already_found(entry: CatalogEntry, found_keys: Sequence[FoundKey]) -> bool:
    """Same normalized name and, when both carry one, the same dosage."""
    name, dosage = found_key(entry)
    for found_name, found_dosage in found_keys:
        if not name or name != found_name:
            continue
        if dosage is None or found_dosage is None or dosages_equal(dosage, found_dosage):
            return True
    return False


def explain(candidate: MatchCandidate) -> str:
    labels = [
        label for key, label in messages.MATCH_LABELS.items()
        if key in candidate.matched_predicates
    ]
    if candidate.match_reason == MatchReason.SAME_THERAPEUTIC_GROUP:
        labels.append(messages.MATCH_LABEL_THERAPEUTIC_GROUP)
    text = ", ".join(labels)
    return text[:1].upper() + text[1:]


def to_suggestion(candidate: MatchCandidate, match_count: int) -> Suggestion:
    entry = candidate.catalog_entry
    return Suggestion(
        id=entry.id,
        name=entry.name,
        price=entry.price,
        confidence=candidate.confidence,
        match_reason=candidate.match_reason,
        match_explanation=explain(candidate),
        match_count=match_count,
        same_dosage=candidate.same_dosage,
        unit=entry.unit,
        in_stock=entry.in_stock,
        stock_quantity=entry.stock_quantity,
        category=entry.category,
        subcategory=entry.subcategory,
        dosage_form=entry.dosage_form,
        route=entry.route,
        active_ingredient=entry.active_ingredient,
        indication=entry.indication,
        contraindication=entry.contraindication,
    )


def coverage_notes(parsed_count: int, found_count: int, unreadable: bool) -> List[str]:
    if unreadable:
        return [messages.NOTE_UNREADABLE]
    if parsed_count == 0:
        return [messages.NOTE_NO_MEDICINES]
    if found_count == 0:
        return [messages.NOTE_NONE_MATCHED]
    if found_count < parsed_count:
        return [messages.NOTE_SOME_NOT_FOUND]
    return [messages.NOTE_ALL_FOUND]


def stock_notes(found: Sequence[LineResolution], low_stock_threshold: int) -> List[str]:
    notes = []
    entries = [r.exact_match.catalog_entry for r in found]
    if any(e.requires_prescription for e in entries):
        notes.append(messages.NOTE_PRESCRIPTION_REQUIRED)
    if any(not e.in_stock or e.stock_quantity == 0 for e in entries):
        notes.append(messages.NOTE_OUT_OF_STOCK)
    if any(
        e.in_stock and e.stock_quantity is not None and 0 < e.stock_quantity < low_stock_threshold
        for e in entries
    ):
        notes.append(messages.NOTE_LOW_STOCK)
    return notes


def merge_notes(*groups: List[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for note in group:
            if note not in merged:
                merged.append(note)
    return merged


# ============================================================================
# Aggregator
# ============================================================================

class ResultAggregator:
    """
    Builds the final PrescriptionAnalysisResult from per-line contexts.

    Contexts must be passed in prescription line order; that order drives
    duplicate merging and cross-line deduplication.
    """

    def __init__(self, config: Dict[str, Any] = None):
        self.config = {**get_config(), **(config or {})}
        self.max_suggestions = self.config.get('max_suggestions_per_line', 5)
        self.low_stock_threshold = self.config.get('low_stock_threshold', 10)

    def aggregate(
        self,
        contexts: Sequence[LineContext],
        extracted_info: Optional[Dict[str, Any]] = None,
        rejected_lines: Optional[List[tuple]] = None,
        unreadable: bool = False,
        incomplete: bool = False,
    ) -> PrescriptionAnalysisResult:
        found, merged_duplicates = self._collect_found(contexts)
        seen_ids: Set[str] = {r.exact_match.catalog_entry.id for r in found}
        found_keys = [found_key(r.exact_match.catalog_entry) for r in found]

        not_found: List[LineResolution] = []
        for context in contexts:
            if context.exact_match is not None:
                continue
            suggestions = self._select_suggestions(context, seen_ids, found_keys)
            not_found.append(LineResolution(
                parsed=context.parsed,
                status=LineStatus.NOT_FOUND,
                suggestions=suggestions,
                warnings=list(context.warnings),
            ))

        parsed_count = len(contexts)
        matched_count = sum(1 for c in contexts if c.exact_match is not None)
        confidence = overall_confidence(parsed_count, matched_count)

        notes = merge_notes(
            coverage_notes(parsed_count, matched_count, unreadable),
            stock_notes(found, self.low_stock_threshold),
            [messages.NOTE_DUPLICATE_LINES] if merged_duplicates else [],
            [messages.NOTE_INCOMPLETE] if incomplete else [],
        )

        requires_consultation = (
            bool(not_found)
            or parsed_count == 0
            or incomplete
            or any(r.exact_match.catalog_entry.requires_prescription for r in found)
        )

        total_price = round(
            sum(r.exact_match.catalog_entry.price * r.quantity for r in found), 2
        )

        logger.info(
            f"Aggregated {parsed_count} line(s): {len(found)} found, "
            f"{len(not_found)} not found, confidence {confidence:.2f}"
        )

        return PrescriptionAnalysisResult(
            found_medicines=found,
            not_found_medicines=not_found,
            overall_confidence=confidence,
            requires_consultation=requires_consultation,
            notes=notes,
            total_estimated_price=total_price,
            extracted_info=dict(extracted_info or {}),
            rejected_lines=list(rejected_lines or []),
        )

    @staticmethod
    def _collect_found(contexts: Sequence[LineContext]) -> Tuple[List[LineResolution], bool]:
        """Found lines in order; repeated items fold their quantity into the first."""
        found: List[LineResolution] = []
        by_id: Dict[str, LineResolution] = {}
        merged = False

        for context in contexts:
            match = context.exact_match
            if match is None:
                continue
            entry_id = match.catalog_entry.id
            if entry_id in by_id:
                first = by_id[entry_id]
                first.parsed = replace(first.parsed, quantity=first.parsed.quantity + context.parsed.quantity)
                first.warnings.append("merged_duplicate_line")
                merged = True
                logger.debug(f"Merged duplicate line {context.parsed.original_text!r} into {entry_id}")
                continue

            resolution = LineResolution(
                parsed=replace(context.parsed),
                status=LineStatus.FOUND,
                exact_match=match,
                warnings=list(context.warnings),
            )
            by_id[entry_id] = resolution
            found.append(resolution)

        return found, merged

    def _select_suggestions(
        self,
        context: LineContext,
        seen_ids: Set[str],
        found_keys: Sequence[FoundKey]
    ) -> List[Suggestion]:
        profile = context.classification.profile if context.classification else TaxonomyProfile()
        kept = sorted(filter_by_agreement(context.scored, profile), key=rank_key)

        suggestions: List[Suggestion] = []
        for candidate, match_count in kept:
            if len(suggestions) >= self.max_suggestions:
                break
            entry = candidate.catalog_entry
            if entry.id in seen_ids or is_already_found(entry, found_keys):
                continue
            seen_ids.add(entry.id)
            suggestions.append(to_suggestion(candidate, match_count))
        return suggestions
