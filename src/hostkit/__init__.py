"""
hostkit - Core Package

Low-level host utilities: reading variable-length values from size-then-fill
OS queries, and one-way incremental directory mirroring.
"""

__version__ = "0.1.0"
__author__ = "hostkit Team"

from .tools.environment import (
    expand_template,
    lookup_variable,
    current_directory,
    search_path_directory,
    set_search_path_directory,
    is_running_64bit_process,
)
from .tools.dir_mirror import DirectoryMirror, mirror_directory

__all__ = [
    'expand_template',
    'lookup_variable',
    'current_directory',
    'search_path_directory',
    'set_search_path_directory',
    'is_running_64bit_process',
    'DirectoryMirror',
    'mirror_directory',
]
