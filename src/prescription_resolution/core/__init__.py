# ============================================================================
# src/prescription_resolution/core/__init__.py
# ============================================================================
"""
Core components for the prescription resolution engine.
"""

from .agent_base import Agent
from .config import Config, get_config, get_config_instance, reload_config
from .context import LineContext

__all__ = [
    'Agent',
    'LineContext',
    'Config',
    'get_config',
    'get_config_instance',
    'reload_config',
]
