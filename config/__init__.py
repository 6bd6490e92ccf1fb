"""Configuration module for the CFP contract harness.

Centralized configuration management using pydantic-settings; values come
from environment variables (or a local .env file) and are validated at load.
"""

from config.settings import HarnessConfig, get_config

__all__ = ["HarnessConfig", "get_config"]
