"""
Core configuration module for the Conduit project.

Provides centralized configuration management with support for directory paths, logging and MongoDB connection
settings, environment variables, and JSON file loading/saving.
"""

from conduit.core.config.config import Config, CoreConfig, CoreSettings, SettingsLike, get_config

__all__ = ["Config", "CoreConfig", "CoreSettings", "SettingsLike", "get_config"]
