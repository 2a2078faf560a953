"""
Utilities Module
================

Common utilities shared across the application:
- logger: Context-aware console logging
- config: Immutable configuration snapshots loaded from the environment
"""

from mailmind.utils.logger import Logger, logger
from mailmind.utils.config import get_config, reload_config, Config

__all__ = ["Logger", "logger", "get_config", "reload_config", "Config"]
