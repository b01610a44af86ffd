"""
Configuration data models for hostkit.

This module defines the configuration structures for the sized query resolver,
the directory mirror and logging.
"""

from typing import Dict, List, Any
from enum import Enum
from pydantic import BaseModel, Field, ValidationError, field_validator


class ContainmentCheck(Enum):
    """How the mirror decides whether a destination lies inside its source."""
    RESOLVED = "resolved"
    PREFIX = "prefix"


class LogFormat(Enum):
    """Supported log output formats."""
    TEXT = "text"
    JSON = "json"


VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class QueryConfig(BaseModel):
    """
    Configuration for sized queries.

    Attributes:
        max_retries: Number of grow-and-refill attempts before giving up
    """

    max_retries: int = Field(8, gt=0, le=1000, description="Grow-and-refill attempts before giving up")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class MirrorConfig(BaseModel):
    """
    Configuration for the directory mirror.

    Attributes:
        containment_check: Self-copy guard mode ('resolved' or 'prefix')
        follow_symlinks: Treat symlinked entries as their targets instead of skipping them
    """

    containment_check: ContainmentCheck = Field(ContainmentCheck.RESOLVED, description="Self-copy guard mode")
    follow_symlinks: bool = Field(True, description="Treat symlinked entries as their targets")

    @field_validator('containment_check', mode='before')
    @classmethod
    def validate_containment_check(cls, v) -> ContainmentCheck:
        """Validate and convert containment check to enum."""
        if isinstance(v, str):
            try:
                return ContainmentCheck(v.lower())
            except ValueError:
                raise ValueError(f"Invalid containment check: {v}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['containment_check'] = self.containment_check.value
        return data


class LoggingConfig(BaseModel):
    """
    Configuration for logging output.

    Attributes:
        level: Root log level
        format: Output format ('text' or 'json')
    """

    level: str = Field("INFO", description="Root log level")
    format: LogFormat = Field(LogFormat.TEXT, description="Output format")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper().strip()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator('format', mode='before')
    @classmethod
    def validate_format(cls, v) -> LogFormat:
        """Validate and convert format to enum."""
        if isinstance(v, str):
            try:
                return LogFormat(v.lower())
            except ValueError:
                raise ValueError(f"Invalid log format: {v}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['format'] = self.format.value
        return data


class HostKitConfig(BaseModel):
    """
    Main configuration class for hostkit.

    Attributes:
        query: Sized query settings
        mirror: Directory mirror settings
        logging: Logging settings
    """

    query: QueryConfig = Field(default_factory=QueryConfig, description="Sized query settings")
    mirror: MirrorConfig = Field(default_factory=MirrorConfig, description="Directory mirror settings")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")

    def validate_configuration(self) -> List[str]:
        """
        Check the configuration for settings that are valid but questionable.

        Returns:
            List of warning messages
        """
        warnings = []

        if self.query.max_retries > 100:
            warnings.append(f"High query retry limit ({self.query.max_retries}) may hide an unstable value")

        if self.mirror.containment_check == ContainmentCheck.PREFIX:
            warnings.append("Prefix containment check does not resolve symlinks or relative paths")

        if self.logging.level == 'DEBUG':
            warnings.append("Debug logging reports every skipped file")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary representation."""
        return {
            'query': self.query.to_dict(),
            'mirror': self.mirror.to_dict(),
            'logging': self.logging.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HostKitConfig':
        """Create configuration from dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        return (
            f"HostKitConfig(max_retries={self.query.max_retries}, "
            f"containment_check={self.mirror.containment_check.value}, "
            f"follow_symlinks={self.mirror.follow_symlinks}, "
            f"log_level={self.logging.level})"
        )


KNOWN_SECTIONS = {'query', 'mirror', 'logging'}


def validate_config_dict(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a raw configuration dictionary.

    Args:
        config_data: Raw configuration data

    Returns:
        The validated configuration data

    Raises:
        ValueError: If the data has unknown sections or invalid values
    """
    unknown = set(config_data) - KNOWN_SECTIONS
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    for section, value in config_data.items():
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"Section '{section}' must be a mapping, got {type(value).__name__}")

    cleaned = {key: value for key, value in config_data.items() if value is not None}

    try:
        HostKitConfig.model_validate(cleaned)
    except ValidationError as e:
        raise ValueError(str(e)) from e

    return cleaned
