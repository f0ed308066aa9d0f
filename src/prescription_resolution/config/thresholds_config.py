# ============================================================================
# src/prescription_resolution/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds
- Exact-match confidences
- Overall prescription confidence bands
- Candidate attribute agreement
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class ThresholdSettings(BaseSettings):
    EXACT_SAME_DOSAGE_CONFIDENCE: float = Field(
        default=0.95,
        ge=0.0, le=1.0,
        description="Exact name hit whose dosage equals the prescribed dosage"
    )
    EXACT_DIFFERENT_DOSAGE_CONFIDENCE: float = Field(
        default=0.80,
        ge=0.0, le=1.0,
        description="Exact name hit whose dosage differs from the prescribed dosage"
    )
    EXACT_NAME_ONLY_CONFIDENCE: float = Field(
        default=0.85,
        ge=0.0, le=1.0,
        description="Exact name hit where one side has no parseable dosage"
    )
    NO_MEDICINES_CONFIDENCE: float = Field(
        default=0.30,
        ge=0.0, le=1.0,
        description="Overall confidence when no medicine line could be parsed"
    )
    NONE_MATCHED_CONFIDENCE: float = Field(
        default=0.40,
        ge=0.0, le=1.0,
        description="Overall confidence when lines were parsed but none matched the catalog"
    )
    PARTIAL_MATCH_MIN_CONFIDENCE: float = Field(
        default=0.50,
        ge=0.0, le=1.0,
        description="Lower bound of the partial-match band"
    )
    PARTIAL_MATCH_MAX_CONFIDENCE: float = Field(
        default=0.70,
        ge=0.0, le=1.0,
        description="Upper bound of the partial-match band"
    )
    ALL_MATCHED_CONFIDENCE: float = Field(
        default=0.95,
        ge=0.0, le=1.0,
        description="Overall confidence when every parsed line matched the catalog"
    )
    STRICT_ATTRIBUTE_MATCHES: int = Field(
        default=4,
        ge=1, le=4,
        description="Taxonomy attributes a suggestion must share in strict mode"
    )
    RELAXED_ATTRIBUTE_MATCHES: int = Field(
        default=3,
        ge=1, le=4,
        description="Taxonomy attributes required once strict mode yields nothing"
    )

    @model_validator(mode="after")
    def _check_bands(self):
        if self.PARTIAL_MATCH_MIN_CONFIDENCE > self.PARTIAL_MATCH_MAX_CONFIDENCE:
            raise ValueError("PARTIAL_MATCH_MIN_CONFIDENCE must not exceed PARTIAL_MATCH_MAX_CONFIDENCE")
        if self.RELAXED_ATTRIBUTE_MATCHES > self.STRICT_ATTRIBUTE_MATCHES:
            raise ValueError("RELAXED_ATTRIBUTE_MATCHES must not exceed STRICT_ATTRIBUTE_MATCHES")
        return self


threshold_settings = ThresholdSettings()
