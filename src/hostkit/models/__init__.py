"""
Data models for hostkit.

This module contains all the core data structures used throughout the system.
"""

from .query_result import (
    QueryKind,
    QueryStatus,
    QueryErrorKind,
    QueryError,
    QueryResult,
    SizeConvention,
    NativeReply,
    SizedQueryError,
)
from .mirror import MirrorTask, MirrorResult, MirrorFailure, MirrorErrorKind
from .config import HostKitConfig

__all__ = [
    'QueryKind',
    'QueryStatus',
    'QueryErrorKind',
    'QueryError',
    'QueryResult',
    'SizeConvention',
    'NativeReply',
    'SizedQueryError',
    'MirrorTask',
    'MirrorResult',
    'MirrorFailure',
    'MirrorErrorKind',
    'HostKitConfig',
]
