"""
Infrastructure Configuration - Unified Configuration System
===========================================================
Single source of truth for all relay configuration.

AppSettings is created once by the server factory and handed to the
components that need it; nothing reads settings from module globals.
"""

from .settings import AppSettings, DuplicateIdPolicy, LoggingSettings, LogLevel, RelaySettings, ServerSettings
from .config_loader import get_settings_from_working_directory, load_app_settings_from_json

__all__ = [
    'AppSettings',
    'DuplicateIdPolicy',
    'LoggingSettings',
    'LogLevel',
    'RelaySettings',
    'ServerSettings',
    'get_settings_from_working_directory',
    'load_app_settings_from_json',
]
