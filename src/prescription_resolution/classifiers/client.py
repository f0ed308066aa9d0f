# ============================================================================
# src/prescription_resolution/classifiers/client.py
# ============================================================================
"""
Taxonomy Classifier Factory

Backends:
- none: AbsentClassifier (default)
- ollama: OllamaTaxonomyClassifier

Usage:
    from prescription_resolution.classifiers import create_classifier

    classifier = create_classifier({'classifier_backend': 'ollama'})
    response = await classifier.classify("Voltaren Emulgel", "1%/20g")
"""

from typing import Dict, Any, Optional
import logging

from .base import TaxonomyClassifier, AbsentClassifier
from .ollama_classifier import OllamaTaxonomyClassifier
from ..core.config import get_config
from ..utils.exceptions import ConfigurationError


DEFAULT_BACKEND = "none"

# Singleton cache, keyed by (backend, host, model), so the Ollama HTTP
# session and answer cache are reused across prescriptions.
_classifier_cache: Dict[tuple, TaxonomyClassifier] = {}

_logger = logging.getLogger(__name__)


def create_classifier(config: Optional[Dict[str, Any]] = None) -> TaxonomyClassifier:
    """
    Factory function to create a taxonomy classifier.

    Passed config values take precedence over .env values.

    Raises:
        ConfigurationError: If the backend is not supported
    """
    config = {**get_config(), **(config or {})}
    backend = (config.get('classifier_backend') or DEFAULT_BACKEND).lower()

    if backend in ("none", "absent", "off"):
        return AbsentClassifier(config)

    if backend != "ollama":
        raise ConfigurationError(
            f"Unknown classifier backend: {backend}. Supported backends: none, ollama"
        )

    cache_key = (backend, config.get('ollama_host'), config.get('ollama_model'))
    if cache_key in _classifier_cache:
        _logger.debug(f"Reusing cached {backend} classifier: {cache_key}")
        return _classifier_cache[cache_key]

    classifier = OllamaTaxonomyClassifier(config)
    _classifier_cache[cache_key] = classifier
    _logger.info(f"Created and cached {backend} classifier: {cache_key}")
    return classifier


def clear_classifier_cache():
    """Forget cached classifier instances (sessions are not closed)."""
    _classifier_cache.clear()
