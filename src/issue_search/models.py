"""Pydantic models for issue search data structures.

Every object here is created per request and is immutable once built:
criteria are read-only input to each strategy, and strategy results are
merged by building new values rather than mutating old ones.
"""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class IssueState(str, Enum):
    """Issue state filter applied uniformly by every strategy."""

    ALL = "all"
    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def parse(cls, value: "str | IssueState | None") -> "IssueState":
        """Parse a caller-supplied state; unknown values mean no filtering."""
        if isinstance(value, IssueState):
            return value
        normalized = (value or "").strip().lower()
        for state in cls:
            if state.value == normalized:
                return state
        return cls.ALL


class LabelInfo(BaseModel):
    """A GitHub label attached to an issue."""

    model_config = ConfigDict(frozen=True)

    name: str
    color: str = "ededed"


class ParsedIssueNumber(BaseModel):
    """An issue reference extracted from a query.

    Attributes:
        number: GitHub issue number (not the database id)
        repository: Optional "repo" or "owner/repo" qualifier
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=0)
    repository: str | None = None


class SearchCriteria(BaseModel):
    """Normalized representation of one search request.

    Attributes:
        raw_query: Query text as supplied, never mutated
        parsed_numbers: Issue references found in the query, in order
        semantic_query: Free text left after removing references (None if empty)
        state: State filter
        repository_ids: Repository restriction (None means unrestricted)
        page: 1-based page of the final merged result
        page_size: Size of the final merged page
    """

    model_config = ConfigDict(frozen=True)

    raw_query: str = ""
    parsed_numbers: tuple[ParsedIssueNumber, ...] = ()
    semantic_query: str | None = None
    state: IssueState = IssueState.ALL
    repository_ids: frozenset[int] | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @classmethod
    def from_query(
        cls,
        query: str | None,
        state: "str | IssueState | None" = IssueState.ALL,
        repository_ids: "set[int] | frozenset[int] | list[int] | None" = None,
        page: int = 1,
        page_size: int = 10,
    ) -> "SearchCriteria":
        """Build criteria from raw request parameters.

        Issue references and the semantic remainder are derived here, once.
        """
        from issue_search.parsing import get_semantic_query, parse_issue_numbers

        raw = query or ""
        return cls(
            raw_query=raw,
            parsed_numbers=tuple(parse_issue_numbers(raw)),
            semantic_query=get_semantic_query(raw),
            state=IssueState.parse(state),
            repository_ids=frozenset(repository_ids) if repository_ids is not None else None,
            page=page,
            page_size=page_size,
        )

    @property
    def has_issue_numbers(self) -> bool:
        return len(self.parsed_numbers) > 0

    @property
    def has_semantic_query(self) -> bool:
        return bool(self.semantic_query and self.semantic_query.strip())

    @property
    def has_repository_filter(self) -> bool:
        return bool(self.repository_ids)

    @property
    def skip(self) -> int:
        """Number of merged results preceding this page."""
        return (self.page - 1) * self.page_size

    @property
    def window_end(self) -> int:
        """Number of merged results through the end of this page."""
        return self.page * self.page_size


class IssueRecord(BaseModel):
    """Issue row as returned by the lookup collaborators.

    Attributes:
        id: Database primary key
        issue_number: GitHub issue number
        title: Issue title
        is_open: Whether the issue is open
        url: Canonical GitHub URL
        repository_full_name: Owning repository as "owner/repo"
        labels: Labels attached to the issue
        similarity: Optional relevance score reported by the collaborator
    """

    model_config = ConfigDict(frozen=True)

    id: int
    issue_number: int
    title: str
    is_open: bool
    url: str
    repository_full_name: str
    labels: tuple[LabelInfo, ...] = ()
    similarity: float | None = None


class IssuePage(BaseModel):
    """One page of collaborator results plus the collaborator's total."""

    model_config = ConfigDict(frozen=True)

    items: tuple[IssueRecord, ...] = ()
    total_count: int = Field(default=0, ge=0)


class VectorSearchResult(BaseModel):
    """Row returned by a vector similarity repository.

    ``similarity`` is ``1 - cosine_distance`` and is not clamped here; it lies
    in [-1, 1] in general and in [0, 1] for typical normalized embeddings.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    issue_number: int
    title: str
    is_open: bool
    url: str
    repository_full_name: str
    similarity: float


class ResultItem(BaseModel):
    """A ranked match returned to the caller.

    Attributes:
        id: Database primary key (unique within one response)
        issue_number: GitHub issue number
        title: Issue title
        is_open: Whether the issue is open
        url: Canonical GitHub URL
        repository_name: Owning repository as "owner/repo"
        labels: Labels attached to the issue
        is_exact_match: True when found by issue-number lookup
        similarity: Vector similarity in [0, 1] (vector-ranked items only)
    """

    model_config = ConfigDict(frozen=True)

    id: int
    issue_number: int
    title: str
    is_open: bool
    url: str
    repository_name: str
    labels: tuple[LabelInfo, ...] = ()
    is_exact_match: bool = False
    similarity: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def owner(self) -> str:
        parts = self.repository_name.split("/")
        return parts[0] if len(parts) == 2 else ""

    @property
    def repo_name(self) -> str:
        parts = self.repository_name.split("/")
        return parts[1] if len(parts) == 2 else ""

    @property
    def similarity_percent(self) -> str:
        """Similarity formatted for display, e.g. "85.3%"."""
        return f"{(self.similarity or 0.0) * 100:.1f}%"


class StrategyResult(BaseModel):
    """Output of a single strategy execution.

    Attributes:
        items: New matches, already excluding the supplied exclusion set
        found_ids: Primary keys of ``items``
        is_terminal: True when this result is a complete, authoritative page
        total_count: Total matches known to the strategy (terminal results only)
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[ResultItem, ...] = ()
    found_ids: frozenset[int] = frozenset()
    is_terminal: bool = False
    total_count: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_consistency(self) -> "StrategyResult":
        """Ensure found_ids mirrors items and totals only accompany terminal results."""
        if self.total_count is not None and not self.is_terminal:
            raise ValueError("total_count is only reported by terminal results")
        if self.found_ids != frozenset(item.id for item in self.items):
            raise ValueError("found_ids must contain exactly the ids of items")
        return self

    @classmethod
    def from_items(
        cls,
        items: "list[ResultItem] | tuple[ResultItem, ...]",
        *,
        is_terminal: bool = False,
        total_count: int | None = None,
    ) -> "StrategyResult":
        return cls(
            items=tuple(items),
            found_ids=frozenset(item.id for item in items),
            is_terminal=is_terminal,
            total_count=total_count,
        )


class SearchResultPage(BaseModel):
    """Final paginated result of a search request.

    Attributes:
        items: Merged, deduplicated results for this page
        total_count: Total matches (authoritative when a terminal strategy ran)
        page: Current page (1-based)
        page_size: Requested page size
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[ResultItem, ...] = ()
    total_count: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages
