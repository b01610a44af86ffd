"""
Sized query data models for hostkit.

This module defines the data structures exchanged by the growable query resolver:
the per-query convention descriptor, the structured native reply, and the
normalized query result returned to callers.
"""

from typing import Dict, Optional, Any
from enum import Enum
from pydantic import BaseModel, Field, model_validator


ERROR_SUCCESS = 0
ERROR_ENVVAR_NOT_FOUND = 203


class QueryKind(Enum):
    """The four sized queries exposed by the native layer."""
    EXPAND_TEMPLATE = "expand_template"
    LOOKUP_VARIABLE = "lookup_variable"
    CURRENT_DIRECTORY = "current_directory"
    SEARCH_PATH_DIRECTORY = "search_path_directory"


class QueryStatus(Enum):
    """Outcome of a sized query."""
    VALUE = "value"
    ABSENT = "absent"
    ERROR = "error"


class QueryErrorKind(Enum):
    """Kinds of query failure."""
    OS_QUERY_FAILED = "os_query_failed"
    UNSTABLE_QUERY_SIZE = "unstable_query_size"


class SizedQueryError(Exception):
    """Raised by QueryResult.unwrap() when the query did not produce a value."""

    def __init__(self, message: str, kind: Optional[QueryErrorKind] = None, native_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.native_code = native_code


class SizeConvention(BaseModel):
    """
    Describes how a sized query reports success, emptiness and failure.

    Attributes:
        zero_means_error: A zero size is always a failure
        zero_means_empty: A zero size with a success code is the empty string
        zero_means_not_found: A zero size with ERROR_ENVVAR_NOT_FOUND is "absent"
        requires_precleared_error: The error register must be cleared before calling
        fill_counts_terminator: The fill call's size includes the terminator
        single_terminator_means_absent: A sizing result of 1 (terminator only) is "absent"
    """

    zero_means_error: bool = Field(True, description="A zero size is always a failure")
    zero_means_empty: bool = Field(False, description="A zero size with a success code is the empty string")
    zero_means_not_found: bool = Field(False, description="A zero size with ERROR_ENVVAR_NOT_FOUND means absent")
    requires_precleared_error: bool = Field(False, description="Clear the error register before calling")
    fill_counts_terminator: bool = Field(False, description="Fill size includes the terminator")
    single_terminator_means_absent: bool = Field(False, description="Sizing result of 1 means absent")

    model_config = {'frozen': True}

    @model_validator(mode='after')
    def validate_zero_rule(self):
        """Exactly one interpretation of a zero size must be selected."""
        selected = [self.zero_means_error, self.zero_means_empty, self.zero_means_not_found]
        if sum(selected) != 1:
            raise ValueError("Exactly one of zero_means_error, zero_means_empty, zero_means_not_found must be set")
        return self

    def fill_complete(self, capacity: int, written: int) -> bool:
        """
        Check whether a fill of the given capacity returned the whole value.

        A successful fill reports no more than the capacity (terminator
        counted) or less than it (terminator not counted). A buffer that was
        too small reports the larger size it now needs.
        """
        if self.fill_counts_terminator:
            return written <= capacity
        return written < capacity

    def logical_length(self, written: int) -> int:
        """Length of the value once the terminator is trimmed."""
        if self.fill_counts_terminator:
            return max(written - 1, 0)
        return written


class NativeReply(BaseModel):
    """
    Structured answer of one native sized call.

    Replaces the process-wide "last error" register: the error code that the
    call set (or ERROR_SUCCESS when it set none) travels with the size.

    Attributes:
        size: Size or count reported by the call
        error_code: Native error code observed after the call
        data: Buffer contents, up to the supplied capacity
    """

    size: int = Field(..., ge=0, description="Size or count reported by the call")
    error_code: int = Field(ERROR_SUCCESS, description="Native error code observed after the call")
    data: str = Field("", description="Buffer contents")

    @property
    def succeeded(self) -> bool:
        """Whether the call left a success code."""
        return self.error_code == ERROR_SUCCESS


class QueryError(BaseModel):
    """Details of a failed query."""

    kind: QueryErrorKind = Field(..., description="Failure kind")
    native_code: Optional[int] = Field(None, description="Native error code, if any")
    operation: str = Field(..., description="Name of the native operation that failed")

    def __str__(self) -> str:
        if self.native_code is None:
            return f"{self.operation}: {self.kind.value}"
        return f"{self.operation}: {self.kind.value} (native code {self.native_code})"


class QueryResult(BaseModel):
    """
    Normalized outcome of a sized query.

    Exactly one of the three shapes holds: a value (possibly empty), absent,
    or an error carrying the native code for diagnostics.
    """

    status: QueryStatus = Field(..., description="Outcome of the query")
    value: Optional[str] = Field(None, description="Resolved text when status is VALUE")
    error: Optional[QueryError] = Field(None, description="Failure details when status is ERROR")

    @model_validator(mode='after')
    def validate_shape(self):
        """Validate that fields agree with the status."""
        if self.status == QueryStatus.VALUE:
            if self.value is None:
                raise ValueError("A value result must carry text")
            if self.error is not None:
                raise ValueError("A value result cannot carry an error")
        elif self.status == QueryStatus.ABSENT:
            if self.value is not None or self.error is not None:
                raise ValueError("An absent result carries neither value nor error")
        else:
            if self.error is None:
                raise ValueError("An error result must carry error details")
            if self.value is not None:
                raise ValueError("An error result cannot carry a value")
        return self

    @classmethod
    def of(cls, text: str) -> 'QueryResult':
        return cls(status=QueryStatus.VALUE, value=text)

    @classmethod
    def absent(cls) -> 'QueryResult':
        return cls(status=QueryStatus.ABSENT)

    @classmethod
    def failure(cls, operation: str, kind: QueryErrorKind = QueryErrorKind.OS_QUERY_FAILED,
                native_code: Optional[int] = None) -> 'QueryResult':
        return cls(
            status=QueryStatus.ERROR,
            error=QueryError(kind=kind, native_code=native_code, operation=operation)
        )

    @property
    def is_value(self) -> bool:
        return self.status == QueryStatus.VALUE

    @property
    def is_absent(self) -> bool:
        return self.status == QueryStatus.ABSENT

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    def unwrap(self) -> str:
        """
        Return the value or raise.

        Raises:
            SizedQueryError: If the result is absent or an error
        """
        if self.is_value:
            return self.value
        if self.is_absent:
            raise SizedQueryError("Query returned no value")
        raise SizedQueryError(str(self.error), kind=self.error.kind, native_code=self.error.native_code)

    def value_or(self, default: Optional[str] = None) -> Optional[str]:
        """Return the value, or the default when absent or failed."""
        return self.value if self.is_value else default

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = {'status': self.status.value, 'value': self.value, 'error': None}
        if self.error is not None:
            data['error'] = {
                'kind': self.error.kind.value,
                'native_code': self.error.native_code,
                'operation': self.error.operation
            }
        return data

    def __str__(self) -> str:
        if self.is_value:
            return f"Value({self.value!r})"
        if self.is_absent:
            return "Absent"
        return f"Error({self.error})"
