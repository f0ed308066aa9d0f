# ============================================================================
# src/prescription_resolution/core/context/line_context.py
# ============================================================================
"""
Per-line resolution context

Each prescription line gets its own LineContext. Agents read the parsed
medicine from it and write their outputs back; nothing in it is shared
between lines, so concurrent line tasks never touch the same object.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .medicine import ParsedMedicine, PrescriptionLine
from .results import ExactMatch, MatchCandidate
from .taxonomy import ClassificationResult
from .catalog_entry import CatalogEntry


@dataclass
class LineContext:
    line: PrescriptionLine
    parsed: ParsedMedicine
    line_index: int = 0

    # Stage outputs
    exact_match: Optional[ExactMatch] = None
    classification: Optional[ClassificationResult] = None
    candidates: List[CatalogEntry] = field(default_factory=list)
    scored: List[MatchCandidate] = field(default_factory=list)

    warnings: List[str] = field(default_factory=list)
    agent_executions: List[Dict[str, Any]] = field(default_factory=list)

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def log_agent_execution(self, agent_name: str, decision: Dict[str, Any]):
        self.agent_executions.append({
            "agent": agent_name,
            "timestamp": datetime.now(),
            "decision": decision
        })
