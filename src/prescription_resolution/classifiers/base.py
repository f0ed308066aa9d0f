# ============================================================================
# src/prescription_resolution/classifiers/base.py
# ============================================================================
"""
Taxonomy Classifier Interface

The external classifier guesses a medicine's four taxonomy attributes from
its name. It is optional and unreliable, so it is modeled as a capability
with a required "absent" variant:
- AbsentClassifier: always available, always answers empty
- OllamaTaxonomyClassifier: local LLM via Ollama (ollama_classifier.py)

Callers never check for None; they call classify() and treat an empty
response, an error and a timeout the same way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Dict, Any, Optional
import logging
import json

from json_repair import repair_json

from ..core.context.taxonomy import TaxonomyProfile


@dataclass
class ClassifierResponse:
    """Best-effort classifier answer; any field may be empty."""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    active_ingredient: Optional[str] = None
    analysis_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassifierResponse":
        """Build from a parsed JSON object, accepting camelCase keys."""
        if not isinstance(data, dict):
            return cls()
        aliases = {
            "dosageForm": "dosage_form",
            "activeIngredient": "active_ingredient",
            "analysisText": "analysis_text",
            "analysis": "analysis_text",
        }
        known = {f.name for f in fields(cls)}
        values: Dict[str, Optional[str]] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known or name in values:
                continue
            if value is None or isinstance(value, (dict, list)):
                continue
            text = str(value).strip()
            values[name] = text or None
        return cls(**values)

    def to_profile(self) -> TaxonomyProfile:
        return TaxonomyProfile(
            category=self.category,
            subcategory=self.subcategory,
            dosage_form=self.dosage_form,
            route=self.route,
        )

    @property
    def is_empty(self) -> bool:
        return self.to_profile().is_empty and not self.active_ingredient

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class TaxonomyClassifier(ABC):
    """
    Abstract base class for taxonomy classifiers.

    All backends must implement:
    - classify(): Async best-effort classification
    - backend_name: Identifier for logs and health checks
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._call_count = 0
        self._cache_hits = 0
        self._failure_count = 0

    @property
    @abstractmethod
    def backend_name(self) -> str:
        pass

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def classify(self, name: str, dosage: Optional[str] = None) -> ClassifierResponse:
        """
        Classify one medicine.

        Args:
            name: Medicine name as parsed from the prescription
            dosage: Dosage text, if any

        Returns:
            ClassifierResponse (possibly empty)

        Raises:
            ClassifierError: Backend failed; callers treat this as empty
        """
        pass

    async def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": self.is_available,
            "backend": self.backend_name,
            "model": None,
            "details": "",
        }

    async def close(self):
        pass

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "call_count": self._call_count,
            "cache_hits": self._cache_hits,
            "failure_count": self._failure_count,
        }

    def extract_json(self, response_text: str) -> Optional[Dict]:
        """
        Extract a JSON object from generated text.

        LLMs often wrap JSON in prose or emit it slightly malformed (single
        quotes, trailing commas). Uses json_repair as a fallback.
        """
        if not response_text or not response_text.strip():
            self.logger.warning("Empty response text, no JSON to extract")
            return None

        # Try 1: Direct parse of entire response
        try:
            parsed = json.loads(response_text.strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        # Try 2: Extract JSON block by brace matching
        start_idx = response_text.find('{')
        if start_idx == -1:
            self.logger.warning("No JSON found in response")
            return None

        depth = 0
        end_idx = len(response_text) - 1
        for i, char in enumerate(response_text[start_idx:], start=start_idx):
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    end_idx = i
                    break

        json_str = response_text[start_idx:end_idx + 1]
        try:
            parsed = json.loads(json_str)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        # Try 3: json_repair on the extracted block
        try:
            repaired = repair_json(json_str, return_objects=True)
        except Exception as e:
            self.logger.debug(f"json_repair failed: {e}")
            repaired = None
        if isinstance(repaired, dict) and repaired:
            self.logger.debug("json_repair fixed extracted JSON block")
            return repaired

        self.logger.warning("Failed to extract JSON from response")
        return None


class AbsentClassifier(TaxonomyClassifier):
    """Classifier used when no backend is configured; always answers empty."""

    @property
    def backend_name(self) -> str:
        return "none"

    @property
    def is_available(self) -> bool:
        return False

    async def classify(self, name: str, dosage: Optional[str] = None) -> ClassifierResponse:
        self._call_count += 1
        return ClassifierResponse()

    async def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": True,
            "backend": "none",
            "model": None,
            "details": "No classifier configured; taxonomy comes from catalog and rules only",
        }
