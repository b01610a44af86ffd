"""
Configuration loading for hostkit.

Settings come from two layers. A YAML file supplies the base values and
``HOSTKIT_*`` environment variables override single keys on top of it:

    HOSTKIT_CONFIG                  explicit path to the YAML file
    HOSTKIT_QUERY_MAX_RETRIES       query.max_retries
    HOSTKIT_MIRROR_CONTAINMENT      mirror.containment_check
    HOSTKIT_MIRROR_FOLLOW_SYMLINKS  mirror.follow_symlinks
    HOSTKIT_LOG_LEVEL               logging.level
    HOSTKIT_LOG_FORMAT              logging.format

Without HOSTKIT_CONFIG the file is looked up like a project marker: the start
directory first, then each parent up to the filesystem root.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from ..models.config import HostKitConfig, validate_config_dict


logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ('hostkit.yaml', '.hostkit.yaml')
CONFIG_PATH_VARIABLE = 'HOSTKIT_CONFIG'

ENVIRONMENT_SETTINGS: Dict[str, Tuple[str, str]] = {
    'HOSTKIT_QUERY_MAX_RETRIES': ('query', 'max_retries'),
    'HOSTKIT_MIRROR_CONTAINMENT': ('mirror', 'containment_check'),
    'HOSTKIT_MIRROR_FOLLOW_SYMLINKS': ('mirror', 'follow_symlinks'),
    'HOSTKIT_LOG_LEVEL': ('logging', 'level'),
    'HOSTKIT_LOG_FORMAT': ('logging', 'format'),
}


class ConfigurationError(Exception):
    """Raised when configuration cannot be read or does not validate."""
    pass


@dataclass
class LoadedConfig:
    """
    A validated configuration and where its values came from.

    Attributes:
        config: The merged configuration
        source: YAML file that was read, None when only defaults applied
        overrides: Environment variables that replaced a file or default value
        warnings: Non-fatal problems found while loading
    """
    config: HostKitConfig
    source: Optional[Path] = None
    overrides: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def locate_config_file(start: Optional[Union[str, Path]] = None,
                       environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Find the configuration file for a directory.

    Args:
        start: Directory to start from (defaults to the working directory)
        environ: Environment to read HOSTKIT_CONFIG from (defaults to os.environ)

    Returns:
        Path of the file, or None if there is none

    Raises:
        ConfigurationError: If HOSTKIT_CONFIG names a file that does not exist
    """
    environ = os.environ if environ is None else environ

    explicit = environ.get(CONFIG_PATH_VARIABLE)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigurationError(f"{CONFIG_PATH_VARIABLE} points to a missing file: {path}")
        return path

    directory = Path(start) if start is not None else Path.cwd()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read the raw section mapping from a YAML file.

    An empty file, or one holding only comments, reads as an empty mapping.

    Raises:
        ConfigurationError: If the file cannot be read, is not YAML, or is not a mapping
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must hold a mapping of sections, got {type(data).__name__}")
    return data


def environment_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Collect the HOSTKIT_* variables that override configuration keys.

    Empty values are ignored. HOSTKIT_CONFIG is not an override and is left out.
    """
    environ = os.environ if environ is None else environ
    return {
        name: environ[name]
        for name in ENVIRONMENT_SETTINGS
        if environ.get(name, '').strip()
    }


def merge_overrides(file_data: Dict[str, Any], overrides: Mapping[str, str]) -> Dict[str, Any]:
    """
    Lay environment overrides over raw file sections.

    Values stay strings; the config models coerce them ('4' -> 4, 'false' -> False).
    The input mapping is not modified.
    """
    merged = {name: dict(section) if isinstance(section, dict) else section
              for name, section in file_data.items()}

    for variable, value in overrides.items():
        section_name, key = ENVIRONMENT_SETTINGS[variable]
        section = merged.get(section_name)
        if section is None:
            section = merged[section_name] = {}
        elif not isinstance(section, dict):
            # Left for validate_config_dict to reject
            continue
        section[key] = value.strip()

    return merged


def load_config(path: Optional[Union[str, Path]] = None,
                start: Optional[Union[str, Path]] = None,
                environ: Optional[Mapping[str, str]] = None,
                strict: bool = False) -> LoadedConfig:
    """
    Load the effective hostkit configuration.

    Args:
        path: YAML file to read; located with locate_config_file when None
        start: Directory the lookup starts from when no path is given
        environ: Environment providing HOSTKIT_* values (defaults to os.environ)
        strict: Raise instead of returning warnings

    Returns:
        LoadedConfig with the merged configuration

    Raises:
        ConfigurationError: If a file or override is invalid, or on warnings in strict mode
    """
    environ = os.environ if environ is None else environ

    if path is not None:
        source: Optional[Path] = Path(path)
        if not source.is_file():
            raise ConfigurationError(f"Configuration file not found: {source}")
    else:
        source = locate_config_file(start, environ)

    file_data = read_config_file(source) if source is not None else {}
    overrides = environment_overrides(environ)
    merged = merge_overrides(file_data, overrides)

    try:
        config = HostKitConfig.from_dict(validate_config_dict(merged))
    except ValueError as e:
        origin = f"{source}" if source is not None else "defaults"
        if overrides:
            origin += f" with {', '.join(sorted(overrides))}"
        raise ConfigurationError(f"Invalid configuration ({origin}): {e}") from e

    warnings = config.validate_configuration()
    if strict and warnings:
        raise ConfigurationError(f"Configuration warnings in strict mode: {'; '.join(warnings)}")

    for warning in warnings:
        logger.warning(warning)
    logger.debug(f"Configuration loaded from {source or 'defaults'}"
                 f"{' with overrides ' + ', '.join(sorted(overrides)) if overrides else ''}")

    return LoadedConfig(config=config, source=source, overrides=overrides, warnings=warnings)


def write_config(config: HostKitConfig, path: Union[str, Path]) -> Path:
    """
    Write a configuration as YAML that load_config reads back unchanged.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    path = Path(path)
    content = yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Cannot write {path}: {e}") from e
    return path
