"""
Configuration loading.
"""

from sftpsync.config.loader import Config, build_settings, load_config

__all__ = ["Config", "build_settings", "load_config"]
