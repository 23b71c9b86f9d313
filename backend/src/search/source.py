"""
Candidate source interface: anything that can answer "which records fall inside this
rectangle?" one page at a time. SQLite-backed sources live in src.data; the in-memory
source here serves tests and small fixed catalogs.
"""
from typing import Any, Generic, NamedTuple, Protocol, Sequence, TypeVar

from src.search.bbox import BoundingBox, prefilter
from src.search.models import Candidate

P = TypeVar("P")


class CandidatePage(NamedTuple):
    candidates: list[Candidate]
    next_cursor: Any = None


class CandidateSource(Protocol):
    def fetch_in_box(
        self,
        box: BoundingBox,
        cursor: Any = None,
        *,
        include_payload: bool = True,
    ) -> CandidatePage:
        """
        Return one page of records inside `box`, starting after `cursor`.
        `next_cursor` is None on the last page. With include_payload=False the
        candidates may carry no payload (used for count-only queries).
        Storage failures must surface as SourceUnavailableError.
        """
        ...


class InMemorySource(Generic[P]):
    """Candidate source over a fixed sequence. Cursor is the index of the next item to scan."""

    def __init__(self, candidates: Sequence[Candidate[P]], page_size: int = 500):
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        self._candidates = list(candidates)
        self._page_size = page_size
        self.calls = 0

    def fetch_in_box(
        self,
        box: BoundingBox,
        cursor: Any = None,
        *,
        include_payload: bool = True,
    ) -> CandidatePage:
        self.calls += 1
        i = int(cursor or 0)
        page: list[Candidate[P]] = []
        # Each item is scanned once across all pages of a search
        while i < len(self._candidates) and len(page) < self._page_size:
            chunk = self._candidates[i:i + self._page_size - len(page)]
            i += len(chunk)
            page.extend(prefilter(chunk, box))
        if not include_payload:
            page = [Candidate(id=c.id, point=c.point) for c in page]
        return CandidatePage(candidates=page, next_cursor=i if i < len(self._candidates) else None)
