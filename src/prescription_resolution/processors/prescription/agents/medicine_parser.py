# ============================================================================
# src/prescription_resolution/processors/prescription/agents/medicine_parser.py
# ============================================================================
"""
Medicine Name Parser

Decomposes one validated prescription line into name, dosage and quantity:

    "1. Paracetamol 500mg SL: 20 viên - Sáng 1 viên, tối 1 viên"
        base_name = "Paracetamol"
        dosage    = 500mg
        quantity  = 20

Parsing is idempotent: feeding clean_text back in yields the same
base_name and dosage.
"""

import re
import logging
from typing import List, Optional, Tuple, Union

from ....constants.vocabulary import (
    MULTIPLIER_QUANTITY_PATTERN,
    ORDINAL_PREFIX,
    SL_QUANTITY_PATTERN,
    UNIT_QUANTITY_PATTERN,
    USAGE_CLAUSE_PATTERN,
)
from ....core.context.medicine import ParsedMedicine, PrescriptionLine
from ....utils.dosage import parse_dosage, strip_dosage
from ....utils.exceptions import ParsingError

logger = logging.getLogger(__name__)

_PARENTHETICAL = re.compile(r"\(([^()]*)\)")
_EMPTY_PARENS = re.compile(r"\(\s*\)")
_DANGLING = " -–,;:/+.&"
_BRAND_WORD = re.compile(r"[^\W\d_][^\W\d_\-]*")


def _tidy(text: str) -> str:
    text = text.replace("_", " ")
    text = _EMPTY_PARENS.sub(" ", text)
    text = " ".join(text.split())
    # Dangling separators can be nested ("Paracetamol 500mg - ,")
    previous = None
    while previous != text:
        previous = text
        text = text.strip(_DANGLING).strip()
    return text


def _remove_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    for start, end in sorted(spans, reverse=True):
        text = text[:start] + " " + text[end:]
    return text


def extract_brand(text: str) -> Optional[str]:
    """
    Brand from the last parenthetical group whose content opens with a
    capitalized word, e.g. "Diclofenac 1% (Voltaren Emulgel)" -> "Voltaren Emulgel".

    At most two words are taken, stopping at the first non-alphabetic one.
    """
    groups = _PARENTHETICAL.findall(text or "")
    for content in reversed(groups):
        words = content.split()
        if not words or not words[0][:1].isupper():
            continue
        brand_words = []
        for word in words[:2]:
            match = _BRAND_WORD.fullmatch(word.strip(",;:"))
            if not match:
                break
            brand_words.append(match.group(0))
        if brand_words and len(brand_words[0]) >= 3:
            return " ".join(brand_words)
    return None


class MedicineNameParser:
    """
    Turns a medicine line into a ParsedMedicine.

    Quantity sources, in order: "SL: N", "N <unit>" (last occurrence),
    "x N". Missing or zero quantity defaults to 1.
    """

    def parse(self, line: Union[PrescriptionLine, str], source_line_index: Optional[int] = None) -> ParsedMedicine:
        if isinstance(line, PrescriptionLine):
            original = line.text
            if source_line_index is None:
                source_line_index = line.source_line_index
        else:
            original = line or ""

        if not original.strip():
            raise ParsingError("Cannot parse an empty medicine line")

        warnings: List[str] = []
        body = self._strip_ordinal(original)

        # "SL: N" can sit after the usage clause, so read it first
        quantity: Optional[int] = None
        sl_matches = list(SL_QUANTITY_PATTERN.finditer(body))
        if sl_matches:
            quantity = int(sl_matches[0].group(1))
            body = _remove_spans(body, [m.span() for m in sl_matches])

        body = self._strip_usage_clause(body)

        unit_matches = list(UNIT_QUANTITY_PATTERN.finditer(body))
        if unit_matches:
            if quantity is None:
                quantity = int(unit_matches[-1].group(1))
            body = _remove_spans(body, [m.span() for m in unit_matches])

        multiplier_matches = list(MULTIPLIER_QUANTITY_PATTERN.finditer(body))
        if multiplier_matches:
            if quantity is None:
                quantity = int(multiplier_matches[-1].group(1))
            body = _remove_spans(body, [m.span() for m in multiplier_matches])

        if quantity is None:
            warnings.append("quantity_defaulted")
            quantity = 1
        elif quantity < 1:
            warnings.append("quantity_below_one")
            quantity = 1

        clean_text = _tidy(body)
        dosage = parse_dosage(clean_text)
        brand = extract_brand(clean_text)
        base_name = self._base_name(clean_text, brand)

        if not base_name:
            warnings.append("no_base_name")
            base_name = clean_text or original.strip()

        parsed = ParsedMedicine(
            original_text=original.strip(),
            clean_text=clean_text,
            base_name=base_name,
            dosage=dosage,
            quantity=quantity,
            brand=brand,
            source_line_index=source_line_index,
            warnings=warnings,
        )
        logger.debug(
            f"Parsed {original!r} -> base={base_name!r} "
            f"dosage={dosage.text if dosage else None} qty={quantity}"
        )
        return parsed

    @staticmethod
    def _strip_ordinal(text: str) -> str:
        match = ORDINAL_PREFIX.match(text)
        return text[match.end():] if match else text.strip()

    @staticmethod
    def _strip_usage_clause(text: str) -> str:
        for match in USAGE_CLAUSE_PATTERN.finditer(text):
            if text[:match.start()].strip(_DANGLING + " "):
                return text[:match.start()]
        return text

    @staticmethod
    def _base_name(clean_text: str, brand: Optional[str]) -> str:
        without_groups = _PARENTHETICAL.sub(" ", clean_text)
        base = _tidy(strip_dosage(without_groups))
        if not base and brand:
            base = brand
        return base
