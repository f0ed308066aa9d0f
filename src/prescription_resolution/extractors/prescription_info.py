# ============================================================================
# src/prescription_resolution/extractors/prescription_info.py
# ============================================================================
"""
Prescription Header Extraction

Pulls the non-medicine fields printed on a prescription:
- patient name
- phone number
- doctor
- hospital / clinic
- examination date
- diagnosis

The engine does not need these to resolve medicines; they are passed
through to the result for the order workflow.
"""

import re
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_NAME = r"([^\W\d_][^\W\d_ ]*(?:\s+[^\W\d_][^\W\d_ ]*){0,4})"
_FIELD_BREAK = r"(?=\s*(?:năm\s*sinh|tuổi|giới|địa\s*chỉ|số|mạch|huyết|chẩn|ngày|$))"

PATIENT_NAME_PATTERNS = [
    re.compile(r"h[ọo]\s*(?:v[àa]\s*)?t[êe]n\s*(?:bệnh\s*nhân)?\s*[:.]?\s*" + _NAME + _FIELD_BREAK, re.IGNORECASE),
    re.compile(r"(?:tên\s+bệnh\s+nhân|bệnh\s+nhân|patient(?:\s+name)?)\s*[:.]\s*" + _NAME + _FIELD_BREAK, re.IGNORECASE),
]

PHONE_PATTERNS = [
    re.compile(r"(?<!\w)(?:số\s*điện\s*thoại|điện\s*thoại|đt|sđt|sdt|tel|phone)\s*[:.]?\s*([0-9Oo][0-9Oo\s.\-]{7,15})", re.IGNORECASE),
    re.compile(r"\b(0[35789][0-9]{8,9})\b"),
]

_DOCTOR_TITLE = r"(?<!\w)(?:bác\s*s[ĩỹiy]|bs\.?|y\s*sĩ)\s*(?:điều\s*trị|khám\s*bệnh)?"

DOCTOR_PATTERNS = [
    re.compile(_DOCTOR_TITLE + r"\s*[:.]?\s*(?!(?:khám|điều)\b)" + _NAME + r"\s*$", re.IGNORECASE),
    re.compile(r"(?<!\w)(?:dr\.?|doctor|physician)\s*[:.]?\s*" + _NAME + r"\s*$", re.IGNORECASE),
]

# Title alone on its line; the name is printed under it (signature block)
DOCTOR_TITLE_ONLY = re.compile(r"^\s*" + _DOCTOR_TITLE + r"\s*[:.]?\s*$", re.IGNORECASE)
NAME_LINE = re.compile(r"^\s*" + _NAME + r"\s*$")

HOSPITAL_PATTERNS = [
    re.compile(r"^\s*((?:bệnh\s*viện|phòng\s*khám|trung\s*tâm\s*y\s*tế|nhà\s*thuốc)\b.*?)\s*$", re.IGNORECASE),
    re.compile(r"^\s*(.*?\b(?:hospital|clinic|medical\s+center)\b.*?)\s*$", re.IGNORECASE),
]

DATE_PATTERNS = [
    re.compile(r"ngày\s*(\d{1,2})\s*tháng\s*(\d{1,2})\s*năm\s*(\d{4})", re.IGNORECASE),
    re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})\b"),
]

DIAGNOSIS_PATTERNS = [
    re.compile(r"(?:chẩn\s*đoán|diagnosis)\s*[:.]?\s*(.+?)\s*$", re.IGNORECASE),
]


class PrescriptionInfoExtractor:
    """Extracts header fields from normalized prescription text."""

    def extract(self, text: str) -> Dict[str, Any]:
        """
        Args:
            text: Normalized OCR text

        Returns:
            Dict with only the fields that were found
        """
        if not text or not text.strip():
            return {}

        lines = [line.strip() for line in text.split("\n") if line.strip()]
        info: Dict[str, Any] = {}

        for key, finder in (
            ("patient_name", self._find_patient_name),
            ("phone_number", self._find_phone),
            ("doctor_name", self._find_doctor),
            ("hospital_name", self._find_hospital),
            ("examination_date", self._find_date),
            ("diagnosis", self._find_diagnosis),
        ):
            value = finder(lines)
            if value:
                info[key] = value

        if info:
            logger.debug(f"Extracted prescription header fields: {sorted(info)}")
        return info

    @staticmethod
    def _clean_name(value: str) -> Optional[str]:
        name = " ".join(value.split()[:4]).strip(" .,;:")
        return name if 2 <= len(name) < 50 else None

    def _find_patient_name(self, lines: List[str]) -> Optional[str]:
        for line in lines:
            for pattern in PATIENT_NAME_PATTERNS:
                match = pattern.search(line)
                if match:
                    name = self._clean_name(match.group(1))
                    if name:
                        return name
        return None

    def _find_phone(self, lines: List[str]) -> Optional[str]:
        for pattern in PHONE_PATTERNS:
            for line in lines:
                match = pattern.search(line)
                if not match:
                    continue
                phone = re.sub(r"[\s.\-]", "", match.group(1)).replace("O", "0").replace("o", "0")
                if phone.isdigit() and 8 <= len(phone) <= 11 and phone.startswith("0"):
                    return phone
        return None

    def _find_doctor(self, lines: List[str]) -> Optional[str]:
        for index, line in enumerate(lines):
            for pattern in DOCTOR_PATTERNS:
                match = pattern.search(line)
                if match:
                    name = self._clean_name(match.group(1))
                    if name:
                        return name
            if DOCTOR_TITLE_ONLY.match(line) and index + 1 < len(lines):
                match = NAME_LINE.match(lines[index + 1])
                if match:
                    name = self._clean_name(match.group(1))
                    if name:
                        return name
        return None

    def _find_hospital(self, lines: List[str]) -> Optional[str]:
        for line in lines:
            for pattern in HOSPITAL_PATTERNS:
                match = pattern.search(line)
                if match and len(match.group(1)) <= 120:
                    return match.group(1)
        return None

    def _find_date(self, lines: List[str]) -> Optional[str]:
        """Return the date as YYYY-MM-DD."""
        for pattern in DATE_PATTERNS:
            for line in lines:
                match = pattern.search(line)
                if not match:
                    continue
                day, month, year = (int(g) for g in match.groups())
                if 1 <= day <= 31 and 1 <= month <= 12:
                    return f"{year:04d}-{month:02d}-{day:02d}"
        return None

    def _find_diagnosis(self, lines: List[str]) -> Optional[str]:
        for line in lines:
            for pattern in DIAGNOSIS_PATTERNS:
                match = pattern.search(line)
                if match and match.group(1):
                    return match.group(1).strip(" .;:")
        return None
