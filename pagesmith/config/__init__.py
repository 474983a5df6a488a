"""
Configuration for Pagesmith.
"""

from .loader import load_config, parse_config
from .schemas import AppSettings, EngineConfig, Page

__all__ = [
    "AppSettings",
    "EngineConfig",
    "Page",
    "load_config",
    "parse_config",
]
