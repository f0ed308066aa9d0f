# ============================================================================
# src/prescription_resolution/extractors/line_segmenter.py
# ============================================================================
"""
Prescription Line Segmenter

Turns normalized OCR text into logical medicine entries:
1. Locate the medicine section (header keyword -> first numbered dosage
   line -> top of text)
2. Locate the section end (doctor/clinic footer, signature, phone, date),
   never ending on a dosing-schedule line
3. Walk the section once with a two-state machine, merging OCR-wrapped
   continuation lines and numbering entries the OCR lost the ordinal for
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..constants.drug_groups import infer_drug_group
from ..constants.vocabulary import (
    DOSING_SCHEDULE_PATTERN,
    DRUG_COMPONENT_VOCABULARY,
    INLINE_ORDINAL,
    NON_MEDICINE_KEYWORD_PATTERNS,
    ORDINAL_PREFIX,
    SCHEDULE_LINE_START,
    SECTION_HEADER_PATTERNS,
    SL_QUANTITY_PATTERN,
    STOP_PATTERNS,
    UNIT_QUANTITY_PATTERN,
)
from ..core.context.medicine import PrescriptionLine
from ..utils.dosage import DOSAGE_EXPRESSION

logger = logging.getLogger(__name__)

_CONNECTOR_END = ("+", "-", "–", "/", ",", "&")
_CONNECTOR_START = ("+", "-", "–", "(", "/", "&", ",")

# Text ending in a multiplier or SL label: the number after it is a quantity
_QUANTITY_TAIL = re.compile(r"(?:^|[\s\d])(?:[x×]|sl\s*:?)$", re.IGNORECASE)


class SegmenterState(str, Enum):
    AWAITING_ENTRY = "awaiting_entry"
    ACCUMULATING_ENTRY = "accumulating_entry"


class LineAction(str, Enum):
    START = "start"            # line carries its own ordinal
    MERGE = "merge"            # continuation of the current entry
    SYNTHESIZE = "synthesize"  # unnumbered drug line, next ordinal assigned
    SKIP = "skip"              # not part of any entry


@dataclass
class SegmentDecision:
    source_line_index: int
    state: SegmenterState
    action: LineAction


@dataclass
class SegmentationTrace:
    section_start: int = 0
    section_end: int = 0
    start_reason: str = "top_of_text"
    end_reason: Optional[str] = None
    decisions: List[SegmentDecision] = field(default_factory=list)


@dataclass
class _OpenEntry:
    ordinal: int
    source_line_index: int
    synthesized: bool
    parts: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.parts)


class LineSegmenter:
    """
    Splits prescription text into PrescriptionLine entries.

    A source line holding several numbered entries is split first; the
    merge / new-entry decision is then made exactly once per piece, left
    to right, with no backtracking.
    """

    def segment(self, text: str) -> List[PrescriptionLine]:
        lines, _ = self.segment_with_trace(text)
        return lines

    def segment_with_trace(self, text: str) -> Tuple[List[PrescriptionLine], SegmentationTrace]:
        trace = SegmentationTrace()
        if not text or not text.strip():
            return [], trace

        source_lines = text.split("\n")
        start, start_reason, first_line = self._find_section_start(source_lines)
        end, end_reason = self._find_section_end(source_lines, start)
        trace.section_start, trace.start_reason = start, start_reason
        trace.section_end, trace.end_reason = end, end_reason

        logger.debug(
            f"Medicine section lines {start}..{end - 1} "
            f"(start: {start_reason}, end: {end_reason or 'end_of_text'})"
        )

        entries: List[PrescriptionLine] = []
        state = SegmenterState.AWAITING_ENTRY
        current: Optional[_OpenEntry] = None
        last_ordinal = 0

        def flush():
            nonlocal current
            if current is not None and current.text.strip():
                entries.append(PrescriptionLine(
                    text=f"{current.ordinal}. {current.text.strip()}",
                    source_line_index=current.source_line_index,
                    ordinal=current.ordinal,
                    synthesized_ordinal=current.synthesized,
                ))
            current = None

        for index, line in self._section_pieces(source_lines, start, end, first_line):
            if not line:
                continue

            ordinal_match = ORDINAL_PREFIX.match(line)
            if ordinal_match:
                action = LineAction.START
            elif state == SegmenterState.ACCUMULATING_ENTRY and self.is_continuation(current.text, line):
                action = LineAction.MERGE
            elif self.looks_like_drug_name(line):
                action = LineAction.SYNTHESIZE
            else:
                action = LineAction.SKIP

            trace.decisions.append(SegmentDecision(index, state, action))

            if action == LineAction.START:
                flush()
                last_ordinal = int(ordinal_match.group(1))
                current = _OpenEntry(last_ordinal, index, False, [line[ordinal_match.end():].strip()])
                state = SegmenterState.ACCUMULATING_ENTRY
            elif action == LineAction.MERGE:
                current.parts.append(line)
            elif action == LineAction.SYNTHESIZE:
                flush()
                last_ordinal += 1
                current = _OpenEntry(last_ordinal, index, True, [line])
                state = SegmenterState.ACCUMULATING_ENTRY
            else:
                flush()
                state = SegmenterState.AWAITING_ENTRY

        flush()
        logger.info(f"Segmented {len(entries)} medicine entries from {len(source_lines)} OCR lines")
        return entries, trace

    def _section_pieces(self, lines: List[str], start: int, end: int, first_line: Optional[str]):
        """Yields (source line index, text) for the section, one per entry piece."""
        for index in range(start, end):
            line = lines[index].strip()
            if index == start and first_line is not None:
                line = first_line
            for piece in self.split_inline_entries(line):
                yield index, piece

    def split_inline_entries(self, line: str) -> List[str]:
        """
        "1. Paracetamol 500mg 2. Amoxicillin 500mg" -> two pieces.

        Only a line that opens with an ordinal is split, and only at the
        next ordinals in sequence. A number right after "x" or "SL:" is a
        quantity and never splits; decimals never match INLINE_ORDINAL.
        """
        opening = ORDINAL_PREFIX.match(line)
        if not opening:
            return [line]

        expected = int(opening.group(1)) + 1
        cuts = []
        for match in INLINE_ORDINAL.finditer(line, opening.end()):
            if int(match.group(1)) != expected:
                continue
            if _QUANTITY_TAIL.search(line[:match.start(1)].rstrip()):
                continue
            cuts.append(match.start(1))
            expected += 1

        if not cuts:
            return [line]
        bounds = [0] + cuts + [len(line)]
        return [line[a:b].strip() for a, b in zip(bounds, bounds[1:])]

    # ------------------------------------------------------------------------
    # Section boundaries
    # ------------------------------------------------------------------------

    def _find_section_start(self, lines: List[str]) -> Tuple[int, str, Optional[str]]:
        """
        Returns (index, reason, replacement text for that line).

        Header patterns are tried in priority order, so "Thuốc điều trị"
        wins over a generic "ĐƠN THUỐC" title.
        """
        for pattern in SECTION_HEADER_PATTERNS:
            for index, line in enumerate(lines):
                match = pattern.search(line)
                if not match:
                    continue
                tail = line[match.end():]
                inline = INLINE_ORDINAL.search(tail)
                if inline:
                    return index, "header_with_entry", tail[inline.start():].strip()
                return index + 1, "header", None

        for index, line in enumerate(lines):
            if ORDINAL_PREFIX.match(line) and DOSAGE_EXPRESSION.search(line):
                return index, "numbered_dosage_line", None

        return 0, "top_of_text", None

    def _find_section_end(self, lines: List[str], start: int) -> Tuple[int, Optional[str]]:
        for index in range(start, len(lines)):
            reason = self.stop_reason(lines[index])
            if reason:
                return index, reason
        return len(lines), None

    def stop_reason(self, line: str) -> Optional[str]:
        """Name of the stop rule this line triggers, or None."""
        text = line.strip()
        if not text or ORDINAL_PREFIX.match(text):
            return None
        if self.is_dosing_schedule(text):
            return None
        for name, pattern in STOP_PATTERNS:
            if pattern.search(text):
                return name
        return None

    # ------------------------------------------------------------------------
    # Line heuristics
    # ------------------------------------------------------------------------

    @staticmethod
    def is_dosing_schedule(line: str) -> bool:
        return bool(DOSING_SCHEDULE_PATTERN.search(line))

    def is_continuation(self, current: str, line: str) -> bool:
        current = current.rstrip()

        if current.count("(") > current.count(")"):
            return True
        if current.endswith(_CONNECTOR_END):
            return True
        if line.startswith(_CONNECTOR_START):
            return True

        first_letter = next((c for c in line if c.isalpha()), "")
        if line[0].isalpha() and first_letter.islower():
            return True

        if self.looks_like_drug_name(line):
            return False

        if SCHEDULE_LINE_START.match(line) or self.is_dosing_schedule(line):
            return True
        if DOSAGE_EXPRESSION.match(line.lstrip()):
            return True
        if SL_QUANTITY_PATTERN.search(line) or UNIT_QUANTITY_PATTERN.search(line):
            return True
        return bool(DRUG_COMPONENT_VOCABULARY.search(line))

    def looks_like_drug_name(self, line: str) -> bool:
        text = line.strip()
        if not text or SCHEDULE_LINE_START.match(text):
            return False

        if any(pattern.match(text) for _, pattern in NON_MEDICINE_KEYWORD_PATTERNS):
            return False

        first_word = re.match(r"[^\W\d_]+", text)
        if not first_word or len(first_word.group(0)) < 3 or not text[0].isupper():
            return False

        if DOSAGE_EXPRESSION.search(text):
            return True
        if SL_QUANTITY_PATTERN.search(text) or UNIT_QUANTITY_PATTERN.search(text):
            return True
        if infer_drug_group(text):
            return True

        letters = [c for c in text if c.isalpha()]
        upper_ratio = sum(1 for c in letters if c.isupper()) / len(letters)
        return len(letters) >= 4 and upper_ratio >= 0.8
