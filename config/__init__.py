"""Configuration module for PtScraper.

Process-wide settings (logging, HTTP transport, login heuristics) loaded
from the environment via pydantic-settings.
"""

from config.settings import GlobalConfig, get_config

__all__ = ["GlobalConfig", "get_config"]
