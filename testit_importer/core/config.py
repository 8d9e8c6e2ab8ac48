"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Configuration management for the importer.

This module provides a central location for all configuration settings. It
reads the ``tms.config.json`` file written next to an export, lets
environment variables override it, and validates the result.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, ClassVar, Never

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from testit_importer.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "tms.config.json"
DEFAULT_TIMEOUT_SECONDS = 10 * 60


class BaseConfig(BaseModel):
    """Base configuration class with common functionality."""

    model_config = ConfigDict(populate_by_name=True)

    ENV_PREFIX: ClassVar[str] = "IMPORTER_"

    @classmethod
    def from_env(cls, **overrides) -> Never:
        """
        Create a configuration instance from environment variables.

        Args:
        ----
            **overrides: Key-value pairs that override environment variables

        """
        raise NotImplementedError("Subclasses must implement from_env method")

    @classmethod
    def get_env_var(cls, key: str, default: Any = None) -> Any:
        """
        Get an environment variable with the class prefix.

        Args:
        ----
            key: Key name without prefix
            default: Default value if environment variable is not found

        """
        env_key = f"{cls.ENV_PREFIX}{key.upper()}"
        return os.environ.get(env_key, default)

    @classmethod
    def _env_overrides(cls, mapping: dict[str, str]) -> dict[str, Any]:
        """Collect the environment variables that are actually set."""
        values = {}
        for env_key, field_name in mapping.items():
            value = cls.get_env_var(env_key)
            if value is not None:
                values[field_name] = value
        return values

    @classmethod
    def _by_field_name(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Rename aliased (camelCase) keys to field names so later updates win."""
        aliases = {field.alias: name for name, field in cls.model_fields.items() if field.alias}
        return {aliases.get(key, key): value for key, value in data.items()}


class LoggingConfig(BaseConfig):
    """Configuration for logging settings."""

    level: str = Field(
        default="INFO",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_file: str | None = Field(
        default="logs/import-log.txt",
        alias="logFile",
        description="Path to the debug log file (None for console-only logging)",
    )
    use_rich: bool = Field(
        default=True,
        alias="useRich",
        description="Whether to use rich for console formatting",
    )
    json_format: bool = Field(
        default=False,
        alias="jsonFormat",
        description="Whether to use JSON format for logs",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        """Validate that the log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        value = value.upper()
        if value not in valid_levels:
            logger.warning(f"Invalid log level '{value}', defaulting to INFO")
            return "INFO"
        return value

    @classmethod
    def from_env(cls, **overrides) -> "LoggingConfig":
        """Create a logging configuration from environment variables."""
        config: dict[str, Any] = {
            "level": cls.get_env_var("LOG_LEVEL", "INFO"),
            "log_file": cls.get_env_var("LOG_FILE", "logs/import-log.txt"),
            "use_rich": cls.get_env_var("LOG_USE_RICH", "true").lower() == "true",
            "json_format": cls.get_env_var("LOG_JSON", "false").lower() == "true",
        }
        config.update(overrides)
        return cls(**config)

    def get_log_level_int(self) -> int:
        """Get the numeric logging level."""
        return getattr(logging, self.level)

    def configure_logging(self, debug: bool = False) -> None:
        """
        Configure logging based on the settings.

        Args:
        ----
            debug: Whether to force debug mode

        """
        from testit_importer.core.logging import configure_logging as configure_contextual_logging

        configure_contextual_logging(
            level=self.get_log_level_int(),
            log_file=self.log_file,
            json_format=self.json_format,
            use_rich=self.use_rich,
            debug=debug,
        )


class TmsConfig(BaseConfig):
    """Configuration for the Test IT API."""

    url: str = Field(
        ...,
        description="Base URL of the Test IT instance (e.g., https://testit.example.com)",
    )
    private_token: str = Field(
        ...,
        alias="privateToken",
        description="Private API token of the importing user",
    )
    cert_validation: bool = Field(
        default=True,
        alias="certValidation",
        description="Whether to verify the server's TLS certificate",
    )
    timeout: int = Field(
        default=0,
        description="Per-request timeout in seconds (0 selects the default)",
        ge=0,
    )
    project_name: str = Field(
        default="",
        alias="projectName",
        description="Import into a project with this name instead of the exported one",
    )
    import_to_existing_project: bool = Field(
        default=False,
        alias="importToExistingProject",
        description="Whether an existing project with the same name may be reused",
    )

    ENV_MAPPING: ClassVar[dict[str, str]] = {
        "TMS_URL": "url",
        "TMS_PRIVATE_TOKEN": "private_token",
        "TMS_CERT_VALIDATION": "cert_validation",
        "TMS_TIMEOUT": "timeout",
        "TMS_PROJECT_NAME": "project_name",
        "TMS_IMPORT_TO_EXISTING_PROJECT": "import_to_existing_project",
    }

    @field_validator("url")
    @classmethod
    def validate_url(cls, value):
        """Validate that the URL is absolute."""
        if not value or not value.startswith(("http://", "https://")):
            raise ValueError("tms.url must be a valid absolute http(s) URL")
        return value.rstrip("/")

    @field_validator("private_token")
    @classmethod
    def validate_private_token(cls, value):
        """Validate the API token."""
        if not value or not value.strip():
            raise ValueError("tms.privateToken must be provided")
        return value.strip()

    @field_validator("timeout")
    @classmethod
    def default_timeout(cls, value):
        """Replace an unset timeout with the default."""
        return value or DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, **overrides) -> "TmsConfig":
        """Create a Test IT configuration from environment variables."""
        config = cls._env_overrides(cls.ENV_MAPPING)
        config.update(overrides)
        return cls(**config)


class AppConfig(BaseConfig):
    """Main application configuration that aggregates all other configurations."""

    result_path: str = Field(
        ...,
        alias="resultPath",
        description="Directory holding the export to import",
    )
    tms: TmsConfig = Field(..., description="Test IT API configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    @field_validator("result_path")
    @classmethod
    def validate_result_path(cls, value):
        """Validate that the export directory is set."""
        if not value or not value.strip():
            raise ValueError("resultPath cannot be empty")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "AppConfig":
        """Create an application configuration from environment variables."""
        config: dict[str, Any] = {
            "result_path": cls.get_env_var("RESULT_PATH", ""),
            "logging": LoggingConfig.from_env(),
            "debug": cls.get_env_var("DEBUG", "false").lower() == "true",
        }
        config.update(overrides)

        tms = config.get("tms")
        try:
            if not isinstance(tms, TmsConfig):
                config["tms"] = TmsConfig.from_env(**(tms or {}))
            return cls(**config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_CONFIG_FILE, **overrides) -> "AppConfig":
        """
        Load the configuration from a JSON file.

        Environment variables override the file, and ``overrides`` override
        both. The file uses the camelCase keys written by the exporter.

        Args:
        ----
            path: Path of the JSON configuration file
            **overrides: Key-value pairs that override the file and environment

        Raises:
        ------
            ConfigurationError: If the file cannot be read or fails validation

        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Configuration file is not valid JSON: {path}: {e}") from e

        tms = TmsConfig._by_field_name(raw.get("tms") or {})
        tms.update(TmsConfig._env_overrides(TmsConfig.ENV_MAPPING))
        tms.update(overrides.pop("tms", None) or {})

        config: dict[str, Any] = {
            "result_path": cls.get_env_var("RESULT_PATH", raw.get("resultPath", "")),
            "logging": raw.get("logging") or LoggingConfig.from_env(),
            "debug": cls.get_env_var("DEBUG", str(raw.get("debug", False))).lower() == "true",
            "tms": tms,
        }
        config.update({key: value for key, value in overrides.items() if value is not None})

        try:
            app_config = cls(**config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

        logger.debug(f"Loaded configuration from {path}")
        return app_config

    def configure_logging(self) -> None:
        """Configure logging based on the settings."""
        self.logging.configure_logging(debug=self.debug)
