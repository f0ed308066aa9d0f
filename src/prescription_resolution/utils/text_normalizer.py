# ============================================================================
# src/prescription_resolution/utils/text_normalizer.py
# ============================================================================
"""
OCR Text Normalization

Cleans up prescription text produced by OCR before segmentation:
- Misread digits (lowercase letters and "O" inside numbers)
- Stray separators glued to dosage and quantity tokens
- Drug names whose leading syllable was dropped
- Vietnamese keywords that lost their diacritics

Line structure is preserved so segment indices map back to OCR lines.
"""

import re
import logging
from typing import List, Tuple

from ..constants.vocabulary import (
    ACCENT_RESTORATIONS,
    DIGIT_CONFUSIONS,
    QUANTITY_UNITS,
    TRUNCATED_DRUG_PREFIXES,
)

logger = logging.getLogger(__name__)

_DOSE_UNIT = r"(?:mcg|µg|mg|ml|iu|ui|g|%)(?![^\W\d_])"
_CONFUSABLE = "".join(DIGIT_CONFUSIONS)

# (pattern, replacement) pairs applied in order to every line
OCR_ARTIFACT_PATTERNS: List[Tuple[re.Pattern, object]] = [
    # "5o0mg" -> "500mg", "1l0" -> "110"
    (re.compile(r"(?<=\d)([" + _CONFUSABLE + r"])(?=\d)"),
     lambda m: DIGIT_CONFUSIONS[m.group(1)]),
    # "50O mg" -> "500 mg"
    (re.compile(r"(?<=\d)([oO]+)(?=\s*" + _DOSE_UNIT + r")"),
     lambda m: "0" * len(m.group(1))),
    # Uppercase O between digits: "1O0" -> "100"
    (re.compile(r"(?<=\d)O(?=\d)"), "0"),
    # Misread digit starting a number: "l00mg" -> "100mg"
    (re.compile(r"(?<![^\W\d_])([ol])(?=\d)"),
     lambda m: DIGIT_CONFUSIONS[m.group(1)]),
    # Stray separator between a word and its strength: "Paracetamol-500mg"
    (re.compile(r"([^\W\d_])[_\-.,;:/]+(?=\d+(?:[.,]\d+)?\s*" + _DOSE_UNIT + r")"), r"\1 "),
    # Strength glued to a word: "Paracetamol500mg"
    (re.compile(r"([^\W\d_]{3})(?=\d+(?:[.,]\d+)?\s*" + _DOSE_UNIT + r")"), r"\1 "),
    # Count glued to its unit: "20viên" -> "20 viên"
    (re.compile(r"(\d)(?=(?:" + "|".join(QUANTITY_UNITS) + r")(?![^\W\d_]))", re.IGNORECASE), r"\1 "),
    # "SL:20" / "SL.20" -> "SL: 20"
    (re.compile(r"\b(S\.?L)\s*[:.]\s*(?=\d)", re.IGNORECASE), r"\1: "),
    # Underscore joins from OCR: "MALTAGIT_2500mg"
    (re.compile(r"_+"), " "),
]

_TRUNCATION_PATTERN = re.compile(
    r"(?<![^\W\d_])("
    + "|".join(sorted((re.escape(k) for k in TRUNCATED_DRUG_PREFIXES), key=len, reverse=True))
    + r")",
    re.IGNORECASE,
)

_ACCENT_PATTERNS = [(re.compile(p, re.IGNORECASE), r) for p, r in ACCENT_RESTORATIONS]


def fix_ocr_artifacts(line: str) -> str:
    """
    Apply the character-confusion table to one line.

    Examples:
        "Paracetamol 5o0mg" -> "Paracetamol 500mg"
        "Amoxicillin-500mg SL:20viên" -> "Amoxicillin 500mg SL: 20 viên"
    """
    if not line:
        return line

    result = line
    for pattern, replacement in OCR_ARTIFACT_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def restore_truncated_names(line: str) -> str:
    """
    Replace known truncated drug-name fragments with the full name.

    Longest fragment wins; only fragments that start a word are replaced,
    so "Paracetamol" itself is left alone.
    """
    def _replace(match: re.Match) -> str:
        fragment = match.group(1)
        full = TRUNCATED_DRUG_PREFIXES[fragment.lower()]
        return full.upper() if fragment.isupper() and len(fragment) > 1 else full

    return _TRUNCATION_PATTERN.sub(_replace, line)


def restore_diacritics(line: str) -> str:
    """Restore diacritics on common prescription keywords."""
    result = line
    for pattern, replacement in _ACCENT_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def normalize_whitespace(line: str) -> str:
    return re.sub(r"[ \t\u00a0\u200b]+", " ", line).strip()


class OCRNormalizer:
    """
    Corrects known OCR confusions in raw prescription text.

    Pure and total: text with nothing to fix passes through unchanged
    apart from whitespace tidying, and no input raises.
    """

    def normalize(self, text: str) -> str:
        if not text:
            return ""

        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        normalized = [self.normalize_line(line) for line in lines]

        changed = sum(1 for a, b in zip(lines, normalized) if a.strip() != b)
        if changed:
            logger.debug(f"OCR normalization changed {changed}/{len(lines)} lines")

        return "\n".join(normalized)

    def normalize_line(self, line: str) -> str:
        result = normalize_whitespace(line)
        if not result:
            return result
        result = fix_ocr_artifacts(result)
        result = restore_truncated_names(result)
        result = restore_diacritics(result)
        return normalize_whitespace(result)


def normalize_ocr_text(text: str) -> str:
    """Convenience wrapper around OCRNormalizer.normalize()."""
    return OCRNormalizer().normalize(text)
