"""
Environment queries for hostkit.

Each function runs one sized query through SizedQueryResolver and returns a
QueryResult instead of raising on OS failures.
"""

from typing import Optional

from ..models.query_result import QueryKind, QueryResult
from ..models.config import HostKitConfig
from .native import NativeBackend, get_default_backend, is_running_64bit_process
from .sized_query import SizedQueryResolver


def expand_template(template: str, config: Optional[HostKitConfig] = None,
                    backend: Optional[NativeBackend] = None) -> QueryResult:
    """
    Expand environment variable references in a template.

    References to unset variables are left as written.

    Returns:
        Value with the expanded text, or Error
    """
    return SizedQueryResolver(config, backend).resolve(QueryKind.EXPAND_TEMPLATE, template)


def lookup_variable(name: str, config: Optional[HostKitConfig] = None,
                    backend: Optional[NativeBackend] = None) -> QueryResult:
    """
    Look up a single environment variable.

    A variable set to the empty string is reported as Absent, like an unset one.

    Returns:
        Value, Absent, or Error
    """
    return SizedQueryResolver(config, backend).resolve(QueryKind.LOOKUP_VARIABLE, name)


def current_directory(config: Optional[HostKitConfig] = None,
                      backend: Optional[NativeBackend] = None) -> QueryResult:
    """Get the current working directory as Value, or Error."""
    return SizedQueryResolver(config, backend).resolve(QueryKind.CURRENT_DIRECTORY)


def search_path_directory(config: Optional[HostKitConfig] = None,
                          backend: Optional[NativeBackend] = None) -> QueryResult:
    """
    Get the process-wide search-path directory.

    An unset directory is Value(""), not an Error.
    """
    return SizedQueryResolver(config, backend).resolve(QueryKind.SEARCH_PATH_DIRECTORY)


def set_search_path_directory(path: Optional[str], backend: Optional[NativeBackend] = None) -> bool:
    """
    Set the process-wide search-path directory.

    Args:
        path: Directory to set, or None/"" to clear it

    Returns:
        True if the backend accepted the new directory
    """
    backend = backend or get_default_backend()
    return backend.set_search_path_directory(path)


__all__ = [
    'expand_template',
    'lookup_variable',
    'current_directory',
    'search_path_directory',
    'set_search_path_directory',
    'is_running_64bit_process',
]
