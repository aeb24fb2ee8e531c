"""Lookup contracts the search strategies depend on.

Each protocol covers one lookup; `issue_search.queries.SqlIssueQueries`
implements all three against the relational schema.
"""

from collections.abc import Collection
from typing import Protocol

from issue_search.models import IssuePage, IssueRecord, IssueState


class ExactIssueLookup(Protocol):
    """Resolves issue numbers to issues."""

    async def find_by_numbers(
        self,
        numbers: Collection[int],
        repository: str | None,
        state: IssueState,
        repository_ids: Collection[int] | None,
    ) -> list[IssueRecord]:
        """Find issues by GitHub issue number.

        Args:
            numbers: Issue numbers to resolve
            repository: Optional "repo" or "owner/repo" qualifier
            state: State filter
            repository_ids: Optional repository restriction

        Returns:
            Every matching issue; unqualified numbers match in all repositories
        """
        ...


class TextIssueSearch(Protocol):
    """Keyword lookup used as the semantic search fallback."""

    async def find_by_text(
        self,
        text: str,
        state: IssueState,
        repository_ids: Collection[int] | None,
        page: int,
        page_size: int,
    ) -> IssuePage:
        ...


class RepositoryIssueListing(Protocol):
    """Plain paginated listing of issues in a set of repositories."""

    async def list_by_repositories(
        self,
        repository_ids: Collection[int],
        state: IssueState,
        page: int,
        page_size: int,
    ) -> IssuePage:
        ...
