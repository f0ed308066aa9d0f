# ============================================================================
# TEST: Configuration and Setup
# ============================================================================

import pytest
from pydantic import ValidationError

from prescription_resolution.config import ThresholdSettings, threshold_settings, logging_settings
from prescription_resolution.core.config import get_config, get_config_instance, reload_config


def test_configuration():
    """Test that configuration loads correctly"""
    print("=" * 70)
    print("TEST: Configuration Loading")
    print("=" * 70)

    config = get_config()
    for key in (
        "catalog_path", "catalog_timeout", "classifier_backend", "classifier_timeout",
        "analysis_timeout", "max_concurrent_lines", "max_suggestions_per_line", "low_stock_threshold",
    ):
        assert key in config
    print(f"✓ Configuration loaded successfully")
    print(f"  - Catalog: {config['catalog_path']}")
    print(f"  - Classifier backend: {config['classifier_backend']}")
    print(f"  - Log level: {logging_settings.LOG_LEVEL}")

    assert get_config_instance().to_dict().keys() == config.keys()

    assert threshold_settings.PARTIAL_MATCH_MIN_CONFIDENCE <= threshold_settings.PARTIAL_MATCH_MAX_CONFIDENCE
    assert threshold_settings.RELAXED_ATTRIBUTE_MATCHES <= threshold_settings.STRICT_ATTRIBUTE_MATCHES
    print(f"✓ Configuration validators working")

    print("\n✅ Configuration test PASSED\n")


def test_threshold_defaults():
    settings = ThresholdSettings()
    assert settings.EXACT_SAME_DOSAGE_CONFIDENCE == 0.95
    assert settings.EXACT_NAME_ONLY_CONFIDENCE == 0.85
    assert settings.EXACT_DIFFERENT_DOSAGE_CONFIDENCE == 0.80
    assert settings.STRICT_ATTRIBUTE_MATCHES == 4
    assert settings.RELAXED_ATTRIBUTE_MATCHES == 3


def test_threshold_bands_validated():
    with pytest.raises(ValidationError):
        ThresholdSettings(PARTIAL_MATCH_MIN_CONFIDENCE=0.8, PARTIAL_MATCH_MAX_CONFIDENCE=0.6)
    with pytest.raises(ValidationError):
        ThresholdSettings(STRICT_ATTRIBUTE_MATCHES=2, RELAXED_ATTRIBUTE_MATCHES=3)


def test_reload_config_reads_environment(monkeypatch):
    monkeypatch.setenv("CATALOG_TIMEOUT", "2.5")
    monkeypatch.setenv("MAX_CONCURRENT_LINES", "not-a-number")

    config = reload_config()

    assert config["catalog_timeout"] == 2.5
    assert config["max_concurrent_lines"] == 4

    monkeypatch.undo()
    reload_config()
