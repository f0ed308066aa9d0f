# ============================================================================
# src/prescription_resolution/catalog/base.py
# ============================================================================
"""
Catalog collaborator interface.

The engine only reads from the catalog:
- find_by_name: zero-or-one best record for a name variant
- find_reference: same/similar-named record used to borrow taxonomy
- search: multi-field filtered query returning zero-or-many records

Name matching and ranking rules live here so every adapter returns the same
record for the same term.
"""

import re
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from ..core.context.catalog_entry import CatalogEntry
from ..core.context.taxonomy import TAXONOMY_FIELDS

_UNIT_AFTER_SPACE = re.compile(r"(\d)\s+(?=(?:mcg|µg|mg|ml|iu|ui|g|l|%)(?![^\W\d_]))")
_PUNCTUATION = re.compile(r"[()\[\]{}\"'`*_;:!?]")

# Shortest term allowed to match by prefix / substring
MIN_PARTIAL_TERM_LENGTH = 3

# Misspelled names (OCR drops or doubles a letter): letters needed, similarity floor
FUZZY_MIN_LETTERS = 5
FUZZY_MIN_RATIO = 0.85

# Level given to a similar-but-not-contained name; ranks after every substring hit
FUZZY_LEVEL = 3


def fold(value: Optional[str]) -> str:
    """Case- and whitespace-insensitive form of a field value."""
    if not value:
        return ""
    return " ".join(unicodedata.normalize("NFC", value).split()).casefold()


def normalize_name(text: Optional[str]) -> str:
    """
    Normalize a medicine name for comparison.

    "Paracetamol  500 MG" and "paracetamol 500mg" normalize identically.
    """
    if not text:
        return ""
    result = unicodedata.normalize("NFC", text).casefold()
    result = _PUNCTUATION.sub(" ", result)
    result = _UNIT_AFTER_SPACE.sub(r"\1", result)
    result = " ".join(result.split())
    return result.strip(" -–,.")


def _bounded(term: str, name: str) -> Optional[int]:
    """Position of `term` in `name` on word boundaries, or None."""
    match = re.search(r"(?<!\w)" + re.escape(term) + r"(?!\w)", name)
    return match.start() if match else None


def name_match_level(term: str, name: str) -> Optional[int]:
    """
    0 = equal, 1 = prefix, 2 = substring (word-bounded), None = no match.

    Both arguments must already be normalized.
    """
    if not term or not name:
        return None
    if term == name:
        return 0
    if len(term) < MIN_PARTIAL_TERM_LENGTH:
        return None
    position = _bounded(term, name)
    if position is None:
        return None
    return 1 if position == 0 else 2


def _has_digit(word: str) -> bool:
    return any(ch.isdigit() for ch in word)


def similar_name(term: str, name: str) -> bool:
    """
    True when `term` reads as a misspelling of the leading words of `name`.

    Word by word: words carrying digits (dosages) must be identical, the
    remaining words are compared together with SequenceMatcher.ratio().
    Both arguments must already be normalized.
    """
    term_words, name_words = term.split(), name.split()
    if not term_words or len(term_words) > len(name_words):
        return False

    mine, theirs = [], []
    for word, other in zip(term_words, name_words):
        if _has_digit(word) or _has_digit(other):
            if word != other:
                return False
            continue
        mine.append(word)
        theirs.append(other)

    left, right = " ".join(mine), " ".join(theirs)
    if sum(1 for ch in left if ch.isalpha()) < FUZZY_MIN_LETTERS:
        return False
    return SequenceMatcher(None, left, right).ratio() >= FUZZY_MIN_RATIO


def rank_name_hits(term: str, entries: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    """
    Order entries matching `term` by: match level, in stock first, shorter
    name, then id. Non-matching entries are dropped.

    Similar names (see similar_name) come after every exact, prefix and
    substring hit.
    """
    needle = normalize_name(term)
    ranked = []
    for entry in entries:
        name = normalize_name(entry.name)
        level = name_match_level(needle, name)
        if level is None and similar_name(needle, name):
            level = FUZZY_LEVEL
        if level is not None:
            ranked.append((level, not entry.in_stock, len(entry.name), entry.id, entry))
    ranked.sort(key=lambda item: item[:4])
    return [item[4] for item in ranked]


def rank_reference_hits(term: str, entries: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    """
    Order entries that could serve as a taxonomy reference for `term`.

    Name, active ingredient and brand are all considered; among equally good
    hits the record with more taxonomy fields filled wins.
    """
    needle = normalize_name(term)
    if len(needle) < MIN_PARTIAL_TERM_LENGTH:
        return []
    ranked = []
    for entry in entries:
        levels = [
            name_match_level(needle, normalize_name(value))
            for value in (entry.name, entry.active_ingredient, entry.brand)
        ]
        levels = [level for level in levels if level is not None]
        if not levels:
            continue
        known = sum(1 for name in TAXONOMY_FIELDS if fold(getattr(entry, name)) not in ("", "n/a"))
        ranked.append((min(levels), -known, not entry.in_stock, len(entry.name), entry.id, entry))
    ranked.sort(key=lambda item: item[:5])
    return [item[5] for item in ranked]


@dataclass
class CatalogQuery:
    """
    Filtered catalog search.

    With match_all every provided criterion must hold; otherwise any one
    suffices. Taxonomy fields compare case-insensitively for equality; the
    active ingredient, group keywords and name_contains match by containment.
    """
    category: Optional[str] = None
    subcategory: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    active_ingredient: Optional[str] = None
    group_keywords: List[str] = field(default_factory=list)
    name_contains: Optional[str] = None
    match_all: bool = False
    exclude_ids: FrozenSet[str] = frozenset()
    limit: int = 50

    def taxonomy_criteria(self) -> Dict[str, str]:
        return {
            name: fold(getattr(self, name))
            for name in TAXONOMY_FIELDS
            if fold(getattr(self, name)) not in ("", "n/a")
        }

    @property
    def keywords(self) -> List[str]:
        return [fold(k) for k in self.group_keywords if fold(k)]

    @property
    def is_empty(self) -> bool:
        return not (
            self.taxonomy_criteria()
            or fold(self.active_ingredient)
            or self.keywords
            or fold(self.name_contains)
        )

    def describe(self) -> str:
        parts = [f"{k}={v}" for k, v in self.taxonomy_criteria().items()]
        if self.active_ingredient:
            parts.append(f"ingredient={fold(self.active_ingredient)}")
        if self.keywords:
            parts.append(f"keywords={len(self.keywords)}")
        if self.name_contains:
            parts.append(f"name~{fold(self.name_contains)}")
        joiner = " AND " if self.match_all else " OR "
        return joiner.join(parts) or "<empty>"


def group_text(entry: CatalogEntry) -> str:
    """Text searched by group keywords."""
    return " | ".join(
        fold(value) for value in (entry.therapeutic_group, entry.category, entry.subcategory) if value
    )


def entry_matches(entry: CatalogEntry, query: CatalogQuery) -> bool:
    """Evaluate `query` against one entry."""
    checks: List[bool] = []
    for name, wanted in query.taxonomy_criteria().items():
        checks.append(fold(getattr(entry, name)) == wanted)

    ingredient = fold(query.active_ingredient)
    if ingredient:
        checks.append(ingredient in fold(entry.active_ingredient))

    keywords = query.keywords
    if keywords:
        text = group_text(entry)
        checks.append(any(keyword in text for keyword in keywords))

    name_part = normalize_name(query.name_contains)
    if name_part:
        checks.append(
            name_part in normalize_name(entry.name)
            or name_part in fold(entry.active_ingredient)
        )

    if not checks:
        return False
    return all(checks) if query.match_all else any(checks)


class BaseCatalog(ABC):
    """
    Read-only catalog collaborator.

    Adapters raise CatalogError subclasses on failure; callers treat any
    failure as "no result" for the line at hand.
    """

    @abstractmethod
    async def find_by_name(self, term: str) -> Optional[CatalogEntry]:
        """
        Best record whose normalized name equals, starts with, or contains
        `term`; failing those, one whose name is similar to it.
        """
        pass

    @abstractmethod
    async def find_reference(self, terms: Sequence[str]) -> Optional[CatalogEntry]:
        """First record matching any of `terms` (in order) by name, ingredient or brand."""
        pass

    @abstractmethod
    async def search(self, query: CatalogQuery) -> List[CatalogEntry]:
        """Records matching `query`, in stable catalog order."""
        pass

    async def close(self) -> None:
        pass

    def describe(self) -> Dict[str, Any]:
        return {"backend": type(self).__name__}
