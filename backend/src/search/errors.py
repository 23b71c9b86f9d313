"""
Error taxonomy for nearby search.

InvalidArgument, ResourceExceeded and SourceUnavailable abort a search and are raised
as SearchError subclasses. DataQuality never aborts: it travels back with the result
as DataQualityWarning values (see src.search.models).
"""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    DATA_QUALITY = "data_quality"
    RESOURCE_EXCEEDED = "resource_exceeded"
    SOURCE_UNAVAILABLE = "source_unavailable"


class SearchError(Exception):
    """Base class for failures that stop a search. `kind` tells the boundary how to map it."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(SearchError, ValueError):
    kind = ErrorKind.INVALID_ARGUMENT


class ResourceExceededError(SearchError):
    kind = ErrorKind.RESOURCE_EXCEEDED

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class SourceUnavailableError(SearchError, RuntimeError):
    """Candidate source could not answer the range query. Retry policy belongs to the caller."""

    kind = ErrorKind.SOURCE_UNAVAILABLE
