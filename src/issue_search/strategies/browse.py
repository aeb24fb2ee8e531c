"""Repository browsing when there is no search intent at all."""

from loguru import logger

from issue_search.collaborators import RepositoryIssueListing
from issue_search.models import SearchCriteria, StrategyResult
from issue_search.strategies.base import SearchStrategy, StrategyKind, to_result_item


class RepositoryBrowseStrategy(SearchStrategy):
    """Lists issues of the selected repositories, newest first.

    Always terminal: the listing is already an authoritative page with a total.
    """

    kind = StrategyKind.BROWSE
    priority = 50
    is_authoritative = True

    def __init__(self, listing: RepositoryIssueListing):
        self.listing = listing

    def can_handle(self, criteria: SearchCriteria) -> bool:
        return (
            not criteria.has_issue_numbers
            and not criteria.has_semantic_query
            and criteria.has_repository_filter
        )

    async def execute(self, criteria: SearchCriteria, exclude_ids: frozenset[int]) -> StrategyResult:
        page = await self.listing.list_by_repositories(
            sorted(criteria.repository_ids or ()),
            criteria.state,
            criteria.page,
            criteria.page_size,
        )
        items = self.exclude(
            (to_result_item(r, is_exact_match=False) for r in page.items), exclude_ids
        )
        logger.debug(
            f"RepositoryBrowse returned {len(items)} of {page.total_count} issues "
            f"(page {criteria.page})"
        )
        return StrategyResult.from_items(items, is_terminal=True, total_count=page.total_count)
