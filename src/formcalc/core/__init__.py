"""Core configuration and utilities for formcalc."""

from formcalc.core.config import Settings, get_settings, settings
from formcalc.core.logging import setup_logging

__all__ = ["Settings", "get_settings", "settings", "setup_logging"]
