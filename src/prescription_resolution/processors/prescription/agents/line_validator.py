# ============================================================================
# src/prescription_resolution/processors/prescription/agents/line_validator.py
# ============================================================================
"""
Prescription Line Validator

Rejects segmented lines that are clearly not medicine names:
- pure numbers and phone numbers
- bare diagnosis codes (K21, J06.9)
- labelled header fields (patient, address, doctor, insurance id)
- fragments with fewer than three letters

Rejection reasons are diagnostics only; they are never shown to the
customer.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional, Union

from ....constants.vocabulary import DIAGNOSIS_CODE, NON_MEDICINE_KEYWORD_PATTERNS, ORDINAL_PREFIX
from ....core.context.medicine import PrescriptionLine

logger = logging.getLogger(__name__)

# Ordinal followed by anything, for lines such as "3. 0901 234 567"
_LOOSE_ORDINAL = re.compile(r"^\s*\d{1,2}\s*[.)]\s+(?=\S)")
_PHONE_SHAPE = re.compile(r"^[\d\s.\-+()]+$")
_NUMERIC_SHAPE = re.compile(r"^[\d\s.,:/\-+*x%()]+$", re.IGNORECASE)

# Letter-rich remainder: enough letters, mostly letters
MIN_REMAINDER_LETTERS = 8
MIN_REMAINDER_LETTER_RATIO = 0.7
MIN_LETTERS = 3


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


def _letters(text: str) -> int:
    return sum(1 for c in text if c.isalpha())


def is_letter_rich(text: str) -> bool:
    compact = "".join(text.split())
    if not compact:
        return False
    letters = _letters(compact)
    return letters >= MIN_REMAINDER_LETTERS and letters / len(compact) >= MIN_REMAINDER_LETTER_RATIO


def strip_ordinal(text: str) -> str:
    match = ORDINAL_PREFIX.match(text) or _LOOSE_ORDINAL.match(text)
    return text[match.end():].strip() if match else text.strip()


class LineValidator:
    """
    Accept/reject filter for segmented prescription lines.
    """

    def validate(self, line: Union[PrescriptionLine, str]) -> ValidationResult:
        text = line.text if isinstance(line, PrescriptionLine) else (line or "")
        body = strip_ordinal(text)

        result = self._check(body)
        if not result.accepted:
            logger.debug(f"Rejected line {body!r}: {result.reason}")
        return result

    def _check(self, body: str) -> ValidationResult:
        if not body:
            return ValidationResult(False, "empty")

        if _PHONE_SHAPE.match(body):
            digits = sum(1 for c in body if c.isdigit())
            if 7 <= digits <= 15:
                return ValidationResult(False, "phone_number")

        if _NUMERIC_SHAPE.match(body):
            return ValidationResult(False, "pure_numeric")

        if DIAGNOSIS_CODE.search(body):
            remainder = DIAGNOSIS_CODE.sub(" ", body)
            if _letters(remainder) == 0:
                return ValidationResult(False, "diagnosis_code")

        keyword_reason = self._check_keyword(body)
        if keyword_reason:
            return ValidationResult(False, keyword_reason)

        if _letters(body) < MIN_LETTERS:
            return ValidationResult(False, "too_few_letters")

        return ValidationResult(True)

    @staticmethod
    def _check_keyword(body: str) -> Optional[str]:
        """
        A labelled field ("Họ tên: ...") is always rejected. A keyword that
        merely opens the line is rejected unless the rest is letter-rich.
        """
        for keyword, pattern in NON_MEDICINE_KEYWORD_PATTERNS:
            match = pattern.match(body)
            if not match:
                continue
            if match.group(1):
                return "non_medicine_keyword"
            remainder = body[match.end():]
            if not is_letter_rich(remainder):
                return "non_medicine_keyword"
            return None
        return None
