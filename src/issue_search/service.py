"""Search orchestration across strategies.

A request is a left fold over the applicable strategies in descending
priority order. Each step executes one strategy with the ids found so far and
merges its result with `merge_strategy_result`, a pure function. The fold
stops on a terminal result or once the merged list reaches the end of
the requested page.

Strategies run one after another, never concurrently: each one needs the
exclusion set produced by the ones before it.
"""

from collections.abc import Collection, Iterable

from loguru import logger
from pydantic import BaseModel, ConfigDict

from issue_search.exceptions import SearchUnavailableError
from issue_search.models import (
    IssueState,
    ResultItem,
    SearchCriteria,
    SearchResultPage,
    StrategyResult,
)
from issue_search.strategies.base import SearchStrategy


class SearchAccumulator(BaseModel):
    """State carried between strategy executions of one request."""

    model_config = ConfigDict(frozen=True)

    items: tuple[ResultItem, ...] = ()
    exclude_ids: frozenset[int] = frozenset()
    is_terminal: bool = False
    total_count: int | None = None


def merge_strategy_result(acc: SearchAccumulator, result: StrategyResult) -> SearchAccumulator:
    """Fold one strategy result into the accumulator.

    Items are appended in order, found ids join the exclusion set, and a
    terminal result records its total and ends the fold.
    """
    new_items = tuple(item for item in result.items if item.id not in acc.exclude_ids)
    return SearchAccumulator(
        items=acc.items + new_items,
        exclude_ids=acc.exclude_ids | result.found_ids,
        is_terminal=acc.is_terminal or result.is_terminal,
        total_count=result.total_count if result.is_terminal else acc.total_count,
    )


def finalize_page(acc: SearchAccumulator, criteria: SearchCriteria) -> SearchResultPage:
    """Cut the requested page out of the merged items and settle the total.

    Non-terminal strategies rank from the top, so their merged list is windowed
    here. A terminal result is already the requested page of its
    collaborator and is only capped. Truncation keeps the earliest
    (highest-priority) items. Without a terminal strategy the total is the
    number of items on this page.
    """
    if acc.is_terminal:
        items = acc.items[: criteria.page_size]
    else:
        items = acc.items[criteria.skip : criteria.window_end]
    if acc.is_terminal and acc.total_count is not None:
        total_count = acc.total_count
    else:
        total_count = len(items)
    return SearchResultPage(
        items=items,
        total_count=total_count,
        page=criteria.page,
        page_size=criteria.page_size,
    )


class IssueSearchService:
    """Runs search strategies in priority order and merges their results."""

    def __init__(
        self,
        strategies: Iterable[SearchStrategy],
        max_page_size: int | None = None,
        default_page_size: int = 10,
    ):
        """Initialize service.

        Args:
            strategies: Strategy instances (any order)
            max_page_size: Optional upper bound applied to requested page sizes
            default_page_size: Page size used when the caller passes none
        """
        self.strategies = sorted(strategies, key=lambda s: s.priority, reverse=True)
        self.max_page_size = max_page_size
        self.default_page_size = default_page_size

    async def search(
        self,
        query: str | None,
        state: str | IssueState = IssueState.ALL,
        repository_ids: Collection[int] | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> SearchResultPage:
        """Search issues.

        Args:
            query: Raw query text (issue references and/or free text)
            state: "open", "closed" or "all"
            repository_ids: Optional repository restriction
            page: 1-based page number
            page_size: Results per page (defaults to ``default_page_size``)

        Returns:
            Merged, deduplicated page of results

        Raises:
            SearchUnavailableError: If the authoritative (browse) strategy fails
            asyncio.CancelledError: If the calling task is cancelled
        """
        if page_size is None:
            page_size = self.default_page_size
        if self.max_page_size is not None:
            page_size = min(page_size, self.max_page_size)

        criteria = SearchCriteria.from_query(
            query,
            state=state,
            repository_ids=repository_ids,
            page=page,
            page_size=page_size,
        )
        return await self.search_criteria(criteria)

    async def search_criteria(self, criteria: SearchCriteria) -> SearchResultPage:
        """Run the strategy fold for already-normalized criteria."""
        applicable = [s for s in self.strategies if s.can_handle(criteria)]
        if not applicable:
            logger.debug(f"No applicable search strategy for query: {criteria.raw_query!r}")
            return SearchResultPage(page=criteria.page, page_size=criteria.page_size)

        acc = SearchAccumulator()
        for strategy in applicable:
            if acc.is_terminal:
                break
            if len(acc.items) >= criteria.window_end:
                logger.debug(f"Page full, skipping {strategy!r}")
                break

            result = await self._execute(strategy, criteria, acc.exclude_ids)
            acc = merge_strategy_result(acc, result)
            logger.debug(
                f"{strategy.kind.value} contributed {len(result.items)} items "
                f"(merged={len(acc.items)}, terminal={result.is_terminal})"
            )

        return finalize_page(acc, criteria)

    async def _execute(
        self,
        strategy: SearchStrategy,
        criteria: SearchCriteria,
        exclude_ids: frozenset[int],
    ) -> StrategyResult:
        try:
            return await strategy.execute(criteria, exclude_ids)
        except Exception as e:
            if not strategy.is_authoritative:
                raise
            logger.error(f"{strategy.kind.value} strategy failed: {e}")
            raise SearchUnavailableError(strategy.kind.value) from e
