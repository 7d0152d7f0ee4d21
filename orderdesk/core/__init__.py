"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from orderdesk.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from orderdesk.core.exceptions import AppError

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode", "AppError"]
