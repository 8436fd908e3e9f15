"""
Configuration management for sbprovision.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BackendType(str, Enum):
    """Supported broker backends."""
    MEMORY = "memory"
    AZURE = "azure"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'sbprovision.backends.azure': 'DEBUG'}"
    )

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class AuditConfig(BaseModel):
    """Audit trail configuration."""
    enabled: bool = True
    file: Optional[str] = None
    user: str = "system"


class SbProvisionConfig(BaseModel):
    """Main sbprovision configuration schema."""

    version: str = Field(default="0.1.0", description="Configuration version")

    backend: BackendType = BackendType.AZURE

    default_namespace: Optional[str] = Field(
        default=None,
        description="Namespace used when a command does not name one"
    )

    namespaces: Dict[str, str] = Field(
        default_factory=dict,
        description="Known namespaces and their connection strings"
    )

    connection_string_template: Optional[str] = Field(
        default=None,
        description="Connection string for namespaces created on demand; '{namespace}' is substituted"
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    audit: AuditConfig = Field(default_factory=AuditConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        parts = v.split(".")
        if len(parts) != 3:
            raise ValueError("Version must be in format x.y.z")
        for part in parts:
            if not part.isdigit():
                raise ValueError("Version components must be numeric")
        return v

    @field_validator("connection_string_template")
    @classmethod
    def validate_template(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and "{namespace}" not in v:
            raise ValueError("Connection string template must contain '{namespace}'")
        return v

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages sbprovision configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (SBPROVISION_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[SbProvisionConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> SbProvisionConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated SbProvisionConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.debug(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.debug(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            overrides = {k: v for k, v in cli_overrides.items() if v is not None}
            config_dict = self._merge_configs(config_dict, overrides)

        try:
            self._config = SbProvisionConfig(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        self._log_configuration()
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if backend := os.getenv("SBPROVISION_BACKEND"):
            config["backend"] = backend.lower()
        if namespace := os.getenv("SBPROVISION_DEFAULT_NAMESPACE"):
            config["default_namespace"] = namespace
        if template := os.getenv("SBPROVISION_CONNECTION_STRING_TEMPLATE"):
            config["connection_string_template"] = template

        # A single connection string registers the default namespace
        if connection_string := os.getenv("SBPROVISION_CONNECTION_STRING"):
            namespace = config.get("default_namespace")
            if namespace:
                config.setdefault("namespaces", {})[namespace] = connection_string
            else:
                logger.warning(
                    "SBPROVISION_CONNECTION_STRING is set but SBPROVISION_DEFAULT_NAMESPACE is not; ignoring it"
                )

        if log_level := os.getenv("SBPROVISION_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("SBPROVISION_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()
        if log_file := os.getenv("SBPROVISION_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        if audit_file := os.getenv("SBPROVISION_AUDIT_FILE"):
            config.setdefault("audit", {})["file"] = audit_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration with connection strings redacted."""
        if not self._config:
            return

        config_dict = self._config.model_dump()
        config_dict["namespaces"] = {name: "***REDACTED***" for name in config_dict["namespaces"]}
        if config_dict.get("connection_string_template"):
            config_dict["connection_string_template"] = "***REDACTED***"

        logger.debug(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> SbProvisionConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> SbProvisionConfig:
        """Reload configuration from the same sources."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
