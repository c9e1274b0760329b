# Config Package
"""
Environment-driven configuration.

Usage:
    from homeguard.config import get_config

    config = get_config()
    window = config.correlation.window_seconds
"""

from homeguard.config.settings import Config, get_config, reload_config

__all__ = ["Config", "get_config", "reload_config"]
