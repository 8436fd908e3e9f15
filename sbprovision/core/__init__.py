"""Core module initialization."""

from .config_manager import BackendType, ConfigManager, SbProvisionConfig
from .logging_config import setup_logging, get_logger

__all__ = [
    "BackendType",
    "ConfigManager",
    "SbProvisionConfig",
    "setup_logging",
    "get_logger",
]
