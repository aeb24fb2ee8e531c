"""Exact issue-number lookup (``#42``, ``repo#42``, ``owner/repo#42``)."""

from loguru import logger

from issue_search.collaborators import ExactIssueLookup
from issue_search.models import ResultItem, SearchCriteria, StrategyResult
from issue_search.strategies.base import SearchStrategy, StrategyKind, to_result_item


class ExactMatchStrategy(SearchStrategy):
    """Resolves parsed issue references; runs before everything else.

    References are grouped by repository qualifier so each qualifier becomes
    one lookup. An unqualified number matches in every repository; the
    qualifier is the caller's way to disambiguate.
    """

    kind = StrategyKind.EXACT
    priority = 100

    def __init__(self, lookup: ExactIssueLookup):
        self.lookup = lookup

    def can_handle(self, criteria: SearchCriteria) -> bool:
        return criteria.has_issue_numbers

    async def execute(self, criteria: SearchCriteria, exclude_ids: frozenset[int]) -> StrategyResult:
        groups: dict[str | None, list[int]] = {}
        for reference in criteria.parsed_numbers:
            numbers = groups.setdefault(reference.repository, [])
            if reference.number not in numbers:
                numbers.append(reference.number)

        items: list[ResultItem] = []
        for repository, numbers in groups.items():
            records = await self.lookup.find_by_numbers(
                numbers, repository, criteria.state, criteria.repository_ids
            )
            # Keep identifier order; collaborator order breaks ties
            records = sorted(
                (r for r in records if r.issue_number in numbers),
                key=lambda r: numbers.index(r.issue_number),
            )
            items.extend(to_result_item(r, is_exact_match=True) for r in records)

        kept = self.exclude(items, exclude_ids)
        logger.debug(
            f"ExactMatchStrategy found {len(kept)} matches for issue numbers: "
            f"{', '.join(str(p.number) for p in criteria.parsed_numbers)}"
        )
        return StrategyResult.from_items(kept)
