"""Configuration module for the meeting notes pipeline."""

from .logging_config import JsonFormatter, setup_logging
from .settings import Settings, get_settings

__all__ = ["JsonFormatter", "Settings", "get_settings", "setup_logging"]
