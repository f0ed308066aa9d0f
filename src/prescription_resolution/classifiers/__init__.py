# src/prescription_resolution/classifiers/__init__.py

from .base import TaxonomyClassifier, AbsentClassifier, ClassifierResponse
from .ollama_classifier import OllamaTaxonomyClassifier, DEFAULT_OLLAMA_MODEL
from .client import create_classifier, clear_classifier_cache, DEFAULT_BACKEND

__all__ = [
    "TaxonomyClassifier",
    "AbsentClassifier",
    "ClassifierResponse",
    "OllamaTaxonomyClassifier",
    "DEFAULT_OLLAMA_MODEL",
    "create_classifier",
    "clear_classifier_cache",
    "DEFAULT_BACKEND",
]
