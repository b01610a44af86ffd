"""
Growable query resolver for hostkit.

This module runs "tell me how big a buffer I need, then fill it" queries to
completion. The queried value may change size between the sizing call and the
fill call, so the resolver grows the buffer and refills until the value fits,
giving up after a bounded number of attempts. Each query's way of reporting
emptiness, absence and failure is captured in a SizeConvention, and all of them
are normalized into a single QueryResult shape.
"""

import logging
from typing import Dict, Optional

from ..models.query_result import (
    QueryKind,
    QueryResult,
    QueryErrorKind,
    SizeConvention,
    NativeReply,
    ERROR_ENVVAR_NOT_FOUND,
)
from ..models.config import HostKitConfig
from .native import NativeBackend, get_default_backend


logger = logging.getLogger(__name__)


CONVENTIONS: Dict[QueryKind, SizeConvention] = {
    QueryKind.EXPAND_TEMPLATE: SizeConvention(
        zero_means_error=True,
        fill_counts_terminator=True
    ),
    QueryKind.LOOKUP_VARIABLE: SizeConvention(
        zero_means_error=False,
        zero_means_not_found=True,
        single_terminator_means_absent=True
    ),
    QueryKind.CURRENT_DIRECTORY: SizeConvention(
        zero_means_error=True
    ),
    QueryKind.SEARCH_PATH_DIRECTORY: SizeConvention(
        zero_means_error=False,
        zero_means_empty=True,
        requires_precleared_error=True
    ),
}

OPERATION_NAMES: Dict[QueryKind, str] = {
    QueryKind.EXPAND_TEMPLATE: "ExpandEnvironmentStrings",
    QueryKind.LOOKUP_VARIABLE: "GetEnvironmentVariable",
    QueryKind.CURRENT_DIRECTORY: "GetCurrentDirectory",
    QueryKind.SEARCH_PATH_DIRECTORY: "GetDllDirectory",
}


class SizedQueryResolver:
    """
    Runs sized queries against a native backend.

    The resolver holds no state between calls; the backend and retry limit
    are fixed at construction.
    """

    def __init__(self, config: Optional[HostKitConfig] = None, backend: Optional[NativeBackend] = None):
        """
        Initialize the resolver.

        Args:
            config: Configuration supplying the retry limit (defaults apply if None)
            backend: Native backend to query (platform default if None)
        """
        self.config = config or HostKitConfig()
        self.backend = backend or get_default_backend()
        self.max_retries = self.config.query.max_retries

    def resolve(self, kind: QueryKind, argument: Optional[str] = None,
                convention: Optional[SizeConvention] = None) -> QueryResult:
        """
        Run a sized query until its value fits the buffer.

        Args:
            kind: Which native query to run
            argument: Template or variable name, for queries that take one
            convention: Override for the query's size convention

        Returns:
            QueryResult holding the value, absent, or the failure
        """
        convention = convention or CONVENTIONS[kind]
        operation = OPERATION_NAMES[kind]

        reply = self._call(kind, argument, 0, convention)
        if reply.size == 0:
            return self._interpret_zero(reply, convention, operation)

        # An empty variable reports just its terminator, same as a missing one
        if convention.single_terminator_means_absent and reply.size == 1:
            return QueryResult.absent()

        capacity = reply.size
        for attempt in range(1, self.max_retries + 1):
            reply = self._call(kind, argument, capacity, convention)
            if reply.size == 0:
                return self._interpret_zero(reply, convention, operation)

            if convention.fill_complete(capacity, reply.size):
                length = convention.logical_length(reply.size)
                return QueryResult.of(reply.data[:length])

            logger.debug(
                f"{operation}: value no longer fits {capacity} characters, "
                f"now needs {reply.size} (attempt {attempt}/{self.max_retries})"
            )
            capacity = reply.size

        logger.warning(f"{operation}: size did not stabilize after {self.max_retries} attempts")
        return QueryResult.failure(operation, kind=QueryErrorKind.UNSTABLE_QUERY_SIZE)

    def _call(self, kind: QueryKind, argument: Optional[str], capacity: int,
              convention: SizeConvention) -> NativeReply:
        return self.backend.call(kind, argument, capacity, preclear=convention.requires_precleared_error)

    def _interpret_zero(self, reply: NativeReply, convention: SizeConvention, operation: str) -> QueryResult:
        """Map a zero-size reply to empty, absent or failure."""
        if convention.zero_means_empty and reply.succeeded:
            return QueryResult.of("")

        if convention.zero_means_not_found and reply.error_code == ERROR_ENVVAR_NOT_FOUND:
            return QueryResult.absent()

        logger.debug(f"{operation} failed with native code {reply.error_code}")
        return QueryResult.failure(operation, native_code=reply.error_code)
