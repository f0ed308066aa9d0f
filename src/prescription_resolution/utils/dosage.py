# ============================================================================
# src/prescription_resolution/utils/dosage.py
# ============================================================================
"""
Dosage Expression Parsing

Recognizes strength expressions in medicine names and converts them into a
canonical, order-independent form for equality checks:

    "500mg"            -> ((500.0, "mg"),)
    "0,5g"             -> ((500.0, "mg"),)
    "2,5g+0,3g+0,2g"   -> ((200.0, "mg"), (300.0, "mg"), (2500.0, "mg"))
    "1%/20g"           -> ((1.0, "%"), (20000.0, "mg"))
    "250mg/5ml"        -> ((250.0, "mg"), (5.0, "ml"))
"""

import re
from typing import List, Optional, Tuple

from ..core.context.medicine import Dosage

_NUMBER = r"\d+(?:[.,]\d+)*"
_UNIT = r"(?:mcg|µg|mg|ml|iu|ui|g|l|%)"
_SINGLE = _NUMBER + r"\s*" + _UNIT + r"(?![^\W\d_])"

DOSAGE_EXPRESSION = re.compile(
    r"(?<![\w.,])" + _SINGLE + r"(?:\s*[+/]\s*" + _SINGLE + r")*",
    re.IGNORECASE,
)
_PART = re.compile(r"(" + _NUMBER + r")\s*(" + _UNIT + r")", re.IGNORECASE)

# unit -> (multiplier, base unit)
UNIT_CONVERSIONS = {
    "mg": (1.0, "mg"),
    "g": (1000.0, "mg"),
    "mcg": (0.001, "mg"),
    "µg": (0.001, "mg"),
    "ml": (1.0, "ml"),
    "l": (1000.0, "ml"),
    "iu": (1.0, "iu"),
    "ui": (1.0, "iu"),
    "%": (1.0, "%"),
}


def parse_number(text: str) -> Optional[float]:
    """
    Parse a number that may use a decimal comma.

    "2,5" -> 2.5, "0.5" -> 0.5, "1.000" -> 1000.0 (thousands separator
    when exactly three digits follow and the integer part is not zero).
    """
    text = text.strip()
    if not text:
        return None
    groups = re.split(r"[.,]", text)
    if len(groups) == 1:
        return float(groups[0])
    if all(len(g) == 3 for g in groups[1:]) and groups[0] not in ("", "0"):
        return float("".join(groups))
    # Last separator is the decimal point, earlier ones group thousands
    return float("".join(groups[:-1]) + "." + groups[-1])


def normalize_unit(value: float, unit: str) -> Tuple[float, str]:
    multiplier, base = UNIT_CONVERSIONS.get(unit.lower(), (1.0, unit.lower()))
    return round(value * multiplier, 6), base


def find_dosage_spans(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) spans of every dosage expression in `text`."""
    return [m.span() for m in DOSAGE_EXPRESSION.finditer(text or "")]


def parse_dosage(text: str) -> Optional[Dosage]:
    """
    Parse every dosage expression in `text` into a single Dosage.

    Returns None when no recognizable expression is present.
    """
    if not text:
        return None

    expressions = [m.group(0) for m in DOSAGE_EXPRESSION.finditer(text)]
    if not expressions:
        return None

    components = []
    first_value: Optional[float] = None
    first_unit = ""
    for expression in expressions:
        for number, unit in _PART.findall(expression):
            value = parse_number(number)
            if value is None:
                continue
            if first_value is None:
                first_value, first_unit = value, unit.lower()
            components.append(normalize_unit(value, unit))

    if not components:
        return None

    display = " ".join(re.sub(r"\s+", "", e) for e in expressions)
    return Dosage(
        text=display,
        components=tuple(sorted(components, key=lambda c: (c[1], c[0]))),
        value=first_value or 0.0,
        unit=first_unit,
    )


def strip_dosage(text: str) -> str:
    """Remove dosage expressions from `text` and tidy the remaining spaces."""
    stripped = DOSAGE_EXPRESSION.sub(" ", text or "")
    return re.sub(r"\s+", " ", stripped).strip(" -–,;:/+")


def dosages_equal(a: Optional[Dosage], b: Optional[Dosage]) -> bool:
    """True only when both dosages are present and structurally equal."""
    if a is None or b is None:
        return False
    return a.components == b.components


def is_percent_per_mass(dosage: Optional[Dosage]) -> bool:
    """True for topical strengths such as "1%/20g"."""
    if dosage is None:
        return False
    units = {unit for _, unit in dosage.components}
    return "%" in units and "mg" in units
