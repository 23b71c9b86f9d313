from src.search.errors import (
    ErrorKind,
    InvalidArgumentError,
    ResourceExceededError,
    SearchError,
    SourceUnavailableError,
)
from src.search.models import Candidate, CountResult, DataQualityWarning, RankedResult, SearchResult
from src.search.service import count_nearby, search

__all__ = [
    "Candidate",
    "CountResult",
    "DataQualityWarning",
    "ErrorKind",
    "InvalidArgumentError",
    "RankedResult",
    "ResourceExceededError",
    "SearchError",
    "SearchResult",
    "SourceUnavailableError",
    "count_nearby",
    "search",
]
