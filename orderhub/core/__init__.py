"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from orderhub.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from orderhub.core.exceptions import OrderHubError

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode", "OrderHubError"]
