# ============================================================================
# src/prescription_resolution/processors/prescription/agents/exact_matcher.py
# ============================================================================
"""
Exact Match Resolver

Looks a parsed medicine up in the catalog by name variants, most specific
first. The first variant the catalog answers for wins; there is no scoring
across variants.

Variant order:
1. brand + dosage
2. brand
3. base name + dosage
4. base name
5. clean text
6. original text
"""

from typing import Dict, Any, List, Optional

from ....catalog.base import BaseCatalog
from ....config import threshold_settings
from ....core.agent_base import Agent
from ....core.context.catalog_entry import CatalogEntry
from ....core.context.enums import MatchReason
from ....core.context.line_context import LineContext
from ....core.context.medicine import Dosage, ParsedMedicine
from ....utils.dosage import dosages_equal, parse_dosage
from ....utils.logging import LogAdapter
from ....utils.timeouts import call_with_timeout
from ....core.context.results import ExactMatch


def entry_dosage(entry: CatalogEntry) -> Optional[Dosage]:
    """Dosage of a catalog entry: its strength field, else parsed from its name."""
    return parse_dosage(entry.strength or "") or parse_dosage(entry.name)


def build_variants(parsed: ParsedMedicine) -> List[str]:
    """Ordered, case-insensitively de-duplicated search terms."""
    dosage_text = parsed.dosage.text if parsed.dosage else ""
    raw = []
    if parsed.brand:
        if dosage_text:
            raw.append(f"{parsed.brand} {dosage_text}")
        raw.append(parsed.brand)
    if parsed.base_name:
        if dosage_text:
            raw.append(f"{parsed.base_name} {dosage_text}")
        raw.append(parsed.base_name)
    raw.extend([parsed.clean_text, parsed.original_text])

    variants: List[str] = []
    seen = set()
    for term in raw:
        term = " ".join((term or "").split())
        key = term.casefold()
        if len(term) < 2 or key in seen:
            continue
        seen.add(key)
        variants.append(term)
    return variants


class ExactMatchResolver(Agent):
    """
    Resolves a line to a catalog item by generated name variants.

    Catalog errors and timeouts count as a miss for that variant only.
    """

    def __init__(self, catalog: BaseCatalog, config: Dict[str, Any] = None):
        super().__init__(config)
        self.catalog = catalog
        self.timeout = self.config.get('catalog_timeout', 5.0)

    def get_name(self) -> str:
        return "ExactMatchResolver"

    async def execute(self, context: LineContext) -> Dict[str, Any]:
        log = LogAdapter(self.logger, {"line_index": context.line_index})
        match = await self.resolve(context.parsed, log=log)
        context.exact_match = match

        if match is None:
            return {
                "decision": "not_found",
                "confidence": 0.0,
                "reasoning": "No catalog item matched any name variant"
            }
        return {
            "decision": "found",
            "confidence": match.confidence,
            "reasoning": f"Matched {match.catalog_entry.name!r} via {match.matched_term!r}",
            "match_reason": match.match_reason.value,
        }

    async def resolve(self, parsed: ParsedMedicine, log=None) -> Optional[ExactMatch]:
        log = log or self.logger
        for term in build_variants(parsed):
            entry = await call_with_timeout(
                self.catalog.find_by_name(term),
                self.timeout,
                fallback=None,
                operation=f"catalog lookup {term!r}",
                log=log,
            )
            if entry is not None:
                match = self.build_match(parsed, entry, term)
                log.info(
                    f"Exact match {entry.name!r} for {parsed.original_text!r} "
                    f"({match.match_reason.value}, {match.confidence:.2f})"
                )
                return match
        return None

    @staticmethod
    def build_match(parsed: ParsedMedicine, entry: CatalogEntry, term: str) -> ExactMatch:
        hit_dosage = entry_dosage(entry)
        if parsed.dosage is not None and hit_dosage is not None:
            if dosages_equal(parsed.dosage, hit_dosage):
                reason = MatchReason.SAME_NAME_SAME_DOSAGE
                confidence = threshold_settings.EXACT_SAME_DOSAGE_CONFIDENCE
            else:
                reason = MatchReason.SAME_NAME_DIFFERENT_DOSAGE
                confidence = threshold_settings.EXACT_DIFFERENT_DOSAGE_CONFIDENCE
        else:
            reason = MatchReason.SAME_NAME
            confidence = threshold_settings.EXACT_NAME_ONLY_CONFIDENCE

        return ExactMatch(
            catalog_entry=entry,
            confidence=confidence,
            match_reason=reason,
            matched_term=term,
        )
