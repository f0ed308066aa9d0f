# ============================================================================
# src/prescription_resolution/constants/drug_groups.py
# ============================================================================
"""
Therapeutic drug groups.

Hand-authored knowledge used when the catalog and the classifier leave a
medicine's taxonomy incomplete:
- membership by generic name, brand alias or name suffix
- default subcategory / category for the group
- keyword synonyms used to search therapeutic-group text
- common substitutes looked up by name when the primary query is empty
"""

from typing import Dict, List, Optional

DRUG_GROUPS: Dict[str, Dict] = {
    "nsaid": {
        "subcategory": "NSAID",
        "category": "Thuốc cơ xương khớp",
        "members": [
            "diclofenac", "celecoxib", "etoricoxib", "meloxicam", "ibuprofen",
            "naproxen", "indomethacin", "piroxicam", "ketoprofen", "aceclofenac",
            "loxoprofen", "nabumeton",
        ],
        "suffixes": ["coxib", "profen", "fenac", "oxicam"],
        "brands": {
            "voltaren": "diclofenac",
            "cataflam": "diclofenac",
            "celebrex": "celecoxib",
            "arcoxia": "etoricoxib",
            "mobic": "meloxicam",
            "brufen": "ibuprofen",
            "feldene": "piroxicam",
            "fastum": "ketoprofen",
        },
        "keywords": [
            "nsaid", "chống viêm không steroid", "kháng viêm không steroid",
            "anti-inflammatory", "kháng viêm", "chống viêm", "giảm đau xương khớp",
        ],
        # Looked up by name when the target belongs to this group
        "substitutes": ["celecoxib", "etoricoxib", "meloxicam", "diclofenac"],
    },
    "corticosteroid": {
        "subcategory": "Corticosteroid",
        "category": "Thuốc kháng viêm",
        "members": [
            "prednisolon", "prednisone", "methylprednisolon", "dexamethason",
            "hydrocortison", "betamethason", "triamcinolon",
        ],
        "suffixes": ["olon", "olone", "ason", "asone", "cortison"],
        "brands": {
            "medrol": "methylprednisolon",
            "solu-medrol": "methylprednisolon",
            "hydrocolacyl": "prednisolon",
            "celestone": "betamethason",
        },
        "keywords": [
            "corticosteroid", "corticoid", "glucocorticoid", "steroid",
            "kháng viêm steroid", "chống viêm steroid",
        ],
        "substitutes": ["prednisolon", "methylprednisolon", "dexamethason"],
    },
    "paracetamol": {
        "subcategory": "Paracetamol",
        "category": "Thuốc giảm đau, hạ sốt",
        "members": ["paracetamol", "acetaminophen"],
        "suffixes": [],
        "brands": {
            "panadol": "paracetamol",
            "efferalgan": "paracetamol",
            "hapacol": "paracetamol",
            "tylenol": "paracetamol",
            "partamol": "paracetamol",
        },
        "keywords": [
            "paracetamol", "acetaminophen", "giảm đau hạ sốt", "giảm đau, hạ sốt",
            "hạ sốt", "analgesic", "antipyretic",
        ],
        "substitutes": ["paracetamol"],
    },
}


def _words(text: str) -> List[str]:
    return [w for w in "".join(c if c.isalnum() or c == "-" else " " for c in text.lower()).split() if w]


def infer_drug_group(name: str) -> Optional[str]:
    """
    Infer the therapeutic group of a medicine from its name.

    Checks brand aliases, then generic members, then name suffixes.

    Args:
        name: Medicine name, brand or active ingredient

    Returns:
        Group key (e.g. "nsaid") or None
    """
    if not name:
        return None
    words = _words(name)

    for group, spec in DRUG_GROUPS.items():
        if any(w in spec["brands"] for w in words):
            return group

    for group, spec in DRUG_GROUPS.items():
        for member in spec["members"]:
            if any(w == member or w.startswith(member) for w in words):
                return group

    for group, spec in DRUG_GROUPS.items():
        for suffix in spec["suffixes"]:
            if any(len(w) > len(suffix) + 2 and w.endswith(suffix) for w in words):
                return group

    return None


def infer_group_from_keywords(*texts: Optional[str]) -> Optional[str]:
    """
    Infer the group from category / therapeutic-group text.

    The group with the longest matching keyword wins, so "kháng viêm
    steroid" is a corticosteroid even though "kháng viêm" is an NSAID
    keyword. Ties go to the earlier group.
    """
    haystack = " ".join(t.lower() for t in texts if t)
    if not haystack:
        return None
    best, best_length = None, 0
    for group, spec in DRUG_GROUPS.items():
        length = max((len(k) for k in spec["keywords"] if k in haystack), default=0)
        if length > best_length:
            best, best_length = group, length
    return best


def generic_for(name: str) -> Optional[str]:
    """Return the generic (active ingredient) name for a brand or member name."""
    words = _words(name or "")
    for spec in DRUG_GROUPS.values():
        for word in words:
            if word in spec["brands"]:
                return spec["brands"][word]
    for spec in DRUG_GROUPS.values():
        for member in spec["members"]:
            if any(w == member or w.startswith(member) for w in words):
                return member
    return None


def expand_group_keywords(*texts: Optional[str]) -> List[str]:
    """
    Expand therapeutic-group text into searchable keyword variants.

    "NSAID" expands to every synonym of the NSAID group, so catalog entries
    tagged "Kháng viêm" or "anti-inflammatory" are reachable.
    """
    variants: List[str] = []
    for text in texts:
        if not text:
            continue
        lowered = text.strip().lower()
        if lowered and lowered not in variants:
            variants.append(lowered)
        for spec in DRUG_GROUPS.values():
            if any(keyword in lowered or lowered in keyword for keyword in spec["keywords"]):
                for keyword in spec["keywords"]:
                    if keyword not in variants:
                        variants.append(keyword)
    return variants
