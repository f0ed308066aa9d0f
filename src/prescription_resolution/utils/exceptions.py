# ============================================================================
# src/prescription_resolution/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the prescription resolution engine.
"""


class PrescriptionResolutionError(Exception):
    """Base exception for all prescription resolution errors."""
    pass


class CatalogError(PrescriptionResolutionError):
    """Error querying the medicine catalog."""
    pass


class CatalogUnavailableError(CatalogError):
    """Catalog backend could not be opened or reached."""
    pass


class ClassifierError(PrescriptionResolutionError):
    """Error from the taxonomy classifier backend."""
    pass


class ClassifierTimeoutError(ClassifierError):
    """Taxonomy classifier did not answer in time."""
    pass


class ParsingError(PrescriptionResolutionError):
    """A prescription line could not be decomposed."""
    pass


class ConfigurationError(PrescriptionResolutionError):
    """Invalid configuration."""
    pass
