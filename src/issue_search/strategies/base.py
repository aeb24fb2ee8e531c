"""Search strategy contract and shared result mapping.

The set of strategies is closed: every implementation carries a
`StrategyKind` tag and a fixed priority. Strategies with higher priority
run first.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum

from issue_search.models import IssueRecord, ResultItem, SearchCriteria, StrategyResult


class StrategyKind(str, Enum):
    """Tag identifying each strategy variant."""

    EXACT = "exact"
    SEMANTIC = "semantic"
    BROWSE = "browse"


def clamp_similarity(value: float | None) -> float | None:
    """Clamp a similarity into [0, 1] (float error can push it past 1.0)."""
    if value is None:
        return None
    return min(1.0, max(0.0, value))


def to_result_item(
    record: IssueRecord,
    *,
    is_exact_match: bool,
    similarity: float | None = None,
) -> ResultItem:
    """Map a collaborator row to a result item."""
    return ResultItem(
        id=record.id,
        issue_number=record.issue_number,
        title=record.title,
        is_open=record.is_open,
        url=record.url,
        repository_name=record.repository_full_name,
        labels=record.labels,
        is_exact_match=is_exact_match,
        similarity=clamp_similarity(similarity),
    )


class SearchStrategy(ABC):
    """Abstract base class for search strategies."""

    kind: StrategyKind
    priority: int
    # Authoritative strategies produce the whole page; their failure fails the request
    is_authoritative: bool = False

    @abstractmethod
    def can_handle(self, criteria: SearchCriteria) -> bool:
        """Return True if this strategy applies to the criteria.

        Must be a pure predicate over the criteria; no I/O.
        """
        ...

    @abstractmethod
    async def execute(self, criteria: SearchCriteria, exclude_ids: frozenset[int]) -> StrategyResult:
        """Run the search.

        Args:
            criteria: Normalized request
            exclude_ids: Ids already found by higher-priority strategies

        Returns:
            New matches only; nothing in ``exclude_ids`` is returned
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, priority={self.priority})"

    @staticmethod
    def exclude(
        items: Iterable[ResultItem],
        exclude_ids: frozenset[int],
        limit: int | None = None,
    ) -> list[ResultItem]:
        """Drop excluded and repeated ids, keeping order, up to ``limit`` items."""
        kept: list[ResultItem] = []
        seen: set[int] = set()
        for item in items:
            if limit is not None and len(kept) >= limit:
                break
            if item.id in exclude_ids or item.id in seen:
                continue
            seen.add(item.id)
            kept.append(item)
        return kept
