"""YAML file plus HOSTKIT_* environment configuration for hostkit."""

from .loader import (
    CONFIG_FILE_NAMES,
    ENVIRONMENT_SETTINGS,
    ConfigurationError,
    LoadedConfig,
    environment_overrides,
    load_config,
    locate_config_file,
    read_config_file,
    write_config,
)

__all__ = [
    'CONFIG_FILE_NAMES',
    'ENVIRONMENT_SETTINGS',
    'ConfigurationError',
    'LoadedConfig',
    'environment_overrides',
    'load_config',
    'locate_config_file',
    'read_config_file',
    'write_config',
]
