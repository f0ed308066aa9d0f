# ============================================================================
# src/prescription_resolution/core/config.py
# ============================================================================
"""
Centralized Configuration Management

Loads configuration from environment variables (.env file) with sensible defaults.
All runtime config values flow from this single source of truth.

Usage:
    from prescription_resolution.core.config import get_config, Config

    # Get full config dict
    config = get_config()

    # Or use Config class for attribute access
    cfg = Config()
    print(cfg.catalog_timeout)
"""

import os
from pathlib import Path
from typing import Dict, Any
from dataclasses import dataclass, field, asdict
from functools import lru_cache

from dotenv import load_dotenv


def _load_dotenv() -> bool:
    """Load .env file if it exists."""
    # Project root: config.py -> core -> prescription_resolution -> src -> root
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False


def _get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')


def _get_int(key: str, default: int = 0) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """Get float from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Configuration container with attribute access.

    All values are loaded from environment variables with defaults.
    """

    # General
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    # Catalog
    catalog_path: str = field(default_factory=lambda: os.getenv('CATALOG_PATH', 'data/catalog/catalog.json'))
    catalog_timeout: float = field(default_factory=lambda: _get_float('CATALOG_TIMEOUT', 5.0))

    # Classifier backend ("none" or "ollama")
    classifier_backend: str = field(default_factory=lambda: os.getenv('CLASSIFIER_BACKEND', 'none'))
    ollama_host: str = field(default_factory=lambda: os.getenv('OLLAMA_HOST', 'http://localhost:11434'))
    ollama_model: str = field(default_factory=lambda: os.getenv('OLLAMA_MODEL', 'qwen2.5:7b-instruct'))
    max_tokens: int = field(default_factory=lambda: _get_int('MAX_TOKENS', 300))
    temperature: float = field(default_factory=lambda: _get_float('TEMPERATURE', 0.0))
    classifier_timeout: float = field(default_factory=lambda: _get_float('CLASSIFIER_TIMEOUT', 15.0))
    use_cache: bool = field(default_factory=lambda: _get_bool('USE_CACHE', True))
    cache_max_size: int = field(default_factory=lambda: _get_int('CACHE_MAX_SIZE', 500))

    # Analysis
    # 0 disables the whole-analysis deadline
    analysis_timeout: float = field(default_factory=lambda: _get_float('ANALYSIS_TIMEOUT', 0.0))
    max_concurrent_lines: int = field(default_factory=lambda: _get_int('MAX_CONCURRENT_LINES', 4))
    max_suggestions_per_line: int = field(default_factory=lambda: _get_int('MAX_SUGGESTIONS_PER_LINE', 5))
    low_stock_threshold: int = field(default_factory=lambda: _get_int('LOW_STOCK_THRESHOLD', 10))

    def __post_init__(self):
        """Ensure .env is loaded before accessing values."""
        _load_dotenv()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for passing to components."""
        return asdict(self)


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Get configuration dictionary.

    Cached for performance - call once and pass to components.
    """
    _load_dotenv()
    return Config().to_dict()


def get_config_instance() -> Config:
    """Get Config instance for attribute access."""
    _load_dotenv()
    return Config()


def reload_config() -> Dict[str, Any]:
    """Reload configuration from environment."""
    get_config.cache_clear()
    return get_config()
