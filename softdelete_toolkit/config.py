"""
Configuration module for the Soft Delete Toolkit.

Provides centralized configuration for column names, timestamp handling,
read filtering and purge defaults.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args, get_origin

import pytz
import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Log levels accepted by the toolkit."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class SoftDeleteConfig(BaseModel):
    """Central configuration for soft delete behaviour.

    Defaults apply to every soft-deletable model. A model can override the
    column names with the ``__soft_delete_field__`` and
    ``__soft_delete_date_field__`` class attributes.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (SOFTDELETE_ prefix)
        3. Configuration files (JSON or YAML)
        4. Default values (lowest priority)

    Example:
        >>> config = SoftDeleteConfig(retention_days=30, timezone="Europe/Berlin")

        Loading from environment:

        >>> import os
        >>> os.environ['SOFTDELETE_RETENTION_DAYS'] = '30'
        >>> config = SoftDeleteConfig.from_env()

        Loading from file:

        >>> config = SoftDeleteConfig.from_file('softdelete.yaml')
    """

    # Column settings
    deleted_field: str = Field(
        "deleted", description="Name of the deleted flag column", min_length=1
    )
    deleted_date_field: str = Field(
        "deleted_date", description="Name of the deletion timestamp column", min_length=1
    )
    not_deleted_sentinel: str = Field(
        "0", description="Timestamp value stored on records that are not deleted"
    )
    timestamp_format: str = Field(
        "%Y-%m-%d %H:%M:%S", description="Format of string deletion timestamps"
    )
    timezone: str = Field("UTC", description="Timezone used for deletion timestamps")

    # Read settings
    with_deleted_option: str = Field(
        "with_deleted",
        description="Execution option that disables the soft delete filter",
        min_length=1,
    )

    # Delete settings
    check_rules: bool = Field(True, description="Check delete rules by default")
    cascade_enabled: bool = Field(
        True, description="Cascade soft deletes to dependent records"
    )

    # Purge settings
    retention_days: int = Field(
        90, description="Days to keep soft-deleted records before purge", gt=0
    )
    database_url: Optional[str] = Field(
        None, description="Database URL used by the command line tools"
    )

    log_level: LogLevel = Field(LogLevel.INFO, description="Logging level")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone is known."""
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("timestamp_format")
    @classmethod
    def validate_timestamp_format(cls, v: str) -> str:
        """Ensure the format produces a round-trippable timestamp."""
        sample = datetime(2000, 1, 2, 3, 4, 5)
        try:
            parsed = datetime.strptime(sample.strftime(v), v)
        except ValueError:
            raise ValueError(f"Timestamp format '{v}' cannot be parsed back")
        if parsed.date() != sample.date():
            raise ValueError("Timestamp format must include year, month and day")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    def now(self) -> datetime:
        """Current wall-clock time in the configured timezone, without tzinfo."""
        return datetime.now(pytz.timezone(self.timezone)).replace(tzinfo=None)

    def format_timestamp(self, moment: datetime) -> str:
        """Render a timestamp the way it is stored in string columns."""
        return moment.strftime(self.timestamp_format)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "SOFTDELETE_") -> "SoftDeleteConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation

            # Handle Optional types
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            try:
                if field_type == bool:
                    config_dict[field_name] = value.lower() in (
                        "true",
                        "1",
                        "yes",
                        "on",
                    )
                elif field_type == int:
                    config_dict[field_name] = int(value)
                else:
                    config_dict[field_name] = value
            except (ValueError, TypeError):
                # Let pydantic report the bad value
                config_dict[field_name] = value

        return cls.model_validate(config_dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SoftDeleteConfig":
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: Path to a ``.json``, ``.yaml`` or ``.yml`` file

        Returns:
            Configuration instance
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")

        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")

        return cls.model_validate(data)


# Global configuration instance
_config: Optional[SoftDeleteConfig] = None


def get_config() -> SoftDeleteConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        try:
            _config = SoftDeleteConfig.from_env()
        except ValueError as e:
            logger.warning(f"Ignoring invalid SOFTDELETE_ environment settings: {e}")
            _config = SoftDeleteConfig.model_validate({})

    return _config


def set_config(config: Optional[SoftDeleteConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> SoftDeleteConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig(**kwargs)
    else:
        config_dict = _config.model_dump()
        config_dict.update(kwargs)
        _config = SoftDeleteConfig(**config_dict)

    return _config
