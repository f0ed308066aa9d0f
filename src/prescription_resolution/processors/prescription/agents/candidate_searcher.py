# ============================================================================
# src/prescription_resolution/processors/prescription/agents/candidate_searcher.py
# ============================================================================
"""
Candidate Searcher

Collects catalog entries that could substitute for an unmatched medicine.

Query plan:
- Complete profile: AND of all four taxonomy fields, with and without the
  ingredient (ingredient hits first); widened to the OR query when empty
- Incomplete profile: OR of known fields, ingredient and group keywords
- Drug-group targets: extra name lookups for common substitutes

Candidates are unranked; MatchScorer and ResultAggregator order them.
"""

from typing import Dict, Any, List, Optional, Set

from ....catalog.base import BaseCatalog, CatalogQuery, normalize_name
from ....constants.drug_groups import DRUG_GROUPS, expand_group_keywords
from ....core.agent_base import Agent
from ....core.context.catalog_entry import CatalogEntry
from ....core.context.line_context import LineContext
from ....core.context.medicine import ParsedMedicine
from ....core.context.taxonomy import ClassificationResult
from ....utils.logging import LogAdapter
from ....utils.timeouts import call_with_timeout

STRICT_QUERY_LIMIT = 50
BROAD_QUERY_LIMIT = 200
SUBSTITUTE_LOOKUP_LIMIT = 20


class CandidateSearcher(Agent):
    """
    Queries the catalog for entries sharing taxonomy, ingredient or
    therapeutic group with the target.

    A failed or slow query contributes nothing; the others still run.
    """

    def __init__(self, catalog: BaseCatalog, config: Dict[str, Any] = None):
        super().__init__(config)
        self.catalog = catalog
        self.timeout = self.config.get('catalog_timeout', 5.0)

    def get_name(self) -> str:
        return "CandidateSearcher"

    async def execute(self, context: LineContext) -> Dict[str, Any]:
        log = LogAdapter(self.logger, {"line_index": context.line_index})
        classification = context.classification or ClassificationResult()
        candidates = await self.search(context.parsed, classification, log=log)
        context.candidates = candidates

        return {
            "decision": "candidates" if candidates else "empty",
            "confidence": 1.0 if candidates else 0.0,
            "reasoning": f"{len(candidates)} candidate(s) collected",
        }

    async def search(
        self,
        parsed: ParsedMedicine,
        classification: ClassificationResult,
        log=None
    ) -> List[CatalogEntry]:
        log = log or self.logger
        exclude_ids = frozenset(
            [classification.reference_entry_id] if classification.reference_entry_id else []
        )
        own_names = {normalize_name(parsed.base_name), normalize_name(parsed.clean_text)} - {""}

        collected: List[CatalogEntry] = []
        seen: Set[str] = set()

        def collect(entries: List[CatalogEntry]) -> int:
            added = 0
            for entry in entries:
                if entry.id in seen or entry.id in exclude_ids:
                    continue
                if normalize_name(entry.name) in own_names:
                    continue
                seen.add(entry.id)
                collected.append(entry)
                added += 1
            return added

        for tier in self.primary_queries(classification, exclude_ids):
            added = 0
            for query in tier:
                count = collect(await self._run(query, log))
                log.debug(f"Query [{query.describe()}] added {count} candidate(s)")
                added += count
            if added:
                break

        for query in self.substitute_queries(classification, exclude_ids):
            collect(await self._run(query, log))

        log.info(f"Collected {len(collected)} candidate(s) for {parsed.base_name!r}")
        return collected

    # ------------------------------------------------------------------------
    # Query plan
    # ------------------------------------------------------------------------

    def primary_queries(
        self,
        classification: ClassificationResult,
        exclude_ids: frozenset = frozenset()
    ) -> List[List[CatalogQuery]]:
        """
        Query tiers, tried in order until one yields candidates.

        A complete profile first asks for all four attributes, with the
        ingredient and without it, so same-ingredient hits come first but
        other products with the same profile are kept.
        """
        profile = classification.profile
        tiers: List[List[CatalogQuery]] = []

        if profile.is_complete:
            known = profile.known_fields()
            strict: List[CatalogQuery] = []
            if classification.active_ingredient:
                strict.append(CatalogQuery(
                    **known,
                    active_ingredient=classification.active_ingredient,
                    match_all=True,
                    exclude_ids=exclude_ids,
                    limit=STRICT_QUERY_LIMIT,
                ))
            strict.append(CatalogQuery(
                **known, match_all=True, exclude_ids=exclude_ids, limit=STRICT_QUERY_LIMIT
            ))
            tiers.append(strict)

        broad = self.broad_query(classification, exclude_ids)
        if not broad.is_empty:
            tiers.append([broad])
        return tiers

    @staticmethod
    def broad_query(
        classification: ClassificationResult,
        exclude_ids: frozenset = frozenset()
    ) -> CatalogQuery:
        """OR over whatever is known about the target."""
        keywords = expand_group_keywords(
            classification.profile.subcategory, classification.therapeutic_group
        )
        if classification.drug_group:
            for keyword in DRUG_GROUPS[classification.drug_group]["keywords"]:
                if keyword not in keywords:
                    keywords.append(keyword)

        return CatalogQuery(
            **classification.profile.known_fields(),
            active_ingredient=classification.active_ingredient,
            group_keywords=keywords,
            match_all=False,
            exclude_ids=exclude_ids,
            limit=BROAD_QUERY_LIMIT,
        )

    @staticmethod
    def substitute_queries(
        classification: ClassificationResult,
        exclude_ids: frozenset = frozenset()
    ) -> List[CatalogQuery]:
        if not classification.drug_group:
            return []
        return [
            CatalogQuery(name_contains=name, exclude_ids=exclude_ids, limit=SUBSTITUTE_LOOKUP_LIMIT)
            for name in DRUG_GROUPS[classification.drug_group]["substitutes"]
        ]

    async def _run(self, query: CatalogQuery, log) -> List[CatalogEntry]:
        entries: Optional[List[CatalogEntry]] = await call_with_timeout(
            self.catalog.search(query),
            self.timeout,
            fallback=None,
            operation=f"catalog search [{query.describe()}]",
            log=log,
        )
        return entries or []
