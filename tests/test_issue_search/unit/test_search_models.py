"""Unit tests for search data models."""

import pytest
from pydantic import ValidationError

from issue_search.models import (
    IssueState,
    ResultItem,
    SearchCriteria,
    SearchResultPage,
    StrategyResult,
)


def _item(id: int, **kwargs) -> ResultItem:
    defaults = {
        "issue_number": id,
        "title": f"Issue {id}",
        "is_open": True,
        "url": f"https://github.com/octo/app/issues/{id}",
        "repository_name": "octo/app",
    }
    defaults.update(kwargs)
    return ResultItem(id=id, **defaults)


class TestIssueState:
    """Tests for IssueState.parse."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("open", IssueState.OPEN),
            ("OPEN", IssueState.OPEN),
            (" closed ", IssueState.CLOSED),
            ("all", IssueState.ALL),
            ("merged", IssueState.ALL),
            ("", IssueState.ALL),
            (None, IssueState.ALL),
            (IssueState.CLOSED, IssueState.CLOSED),
        ],
    )
    def test_parse(self, value, expected):
        """Unknown values mean no state filter."""
        assert IssueState.parse(value) is expected


class TestSearchCriteria:
    """Tests for SearchCriteria construction."""

    def test_from_query_derives_parts(self):
        """References and free text are derived once."""
        criteria = SearchCriteria.from_query(
            "org/repo#42 login crash", state="open", repository_ids=[3, 1], page=2, page_size=5
        )

        assert criteria.raw_query == "org/repo#42 login crash"
        assert criteria.has_issue_numbers
        assert criteria.parsed_numbers[0].repository == "org/repo"
        assert criteria.semantic_query == "login crash"
        assert criteria.state is IssueState.OPEN
        assert criteria.repository_ids == frozenset({1, 3})
        assert criteria.skip == 5
        assert criteria.window_end == 10

    def test_empty_query(self):
        """An empty query has neither numbers nor semantic text."""
        criteria = SearchCriteria.from_query(None)

        assert criteria.raw_query == ""
        assert not criteria.has_issue_numbers
        assert not criteria.has_semantic_query
        assert not criteria.has_repository_filter

    def test_empty_repository_set_is_not_a_filter(self):
        """An empty repository set behaves like no restriction."""
        criteria = SearchCriteria.from_query("", repository_ids=[])
        assert criteria.repository_ids == frozenset()
        assert not criteria.has_repository_filter

    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_paging(self, page, page_size):
        """Page and page size must be positive."""
        with pytest.raises(ValidationError):
            SearchCriteria.from_query("crash", page=page, page_size=page_size)

    def test_frozen(self):
        """Criteria cannot be mutated by a strategy."""
        criteria = SearchCriteria.from_query("crash")
        with pytest.raises(ValidationError):
            criteria.page = 3  # type: ignore[misc]


class TestResultItem:
    """Tests for ResultItem."""

    def test_repository_parts(self):
        item = _item(1, repository_name="octo/app")
        assert item.owner == "octo"
        assert item.repo_name == "app"

    def test_malformed_repository_name(self):
        item = _item(1, repository_name="no-slash")
        assert item.owner == ""
        assert item.repo_name == ""

    def test_similarity_percent(self):
        assert _item(1, similarity=0.853).similarity_percent == "85.3%"
        assert _item(1).similarity_percent == "0.0%"

    @pytest.mark.parametrize("similarity", [-0.1, 1.01])
    def test_similarity_range(self, similarity):
        """Similarity reported to callers stays within [0, 1]."""
        with pytest.raises(ValidationError):
            _item(1, similarity=similarity)


class TestStrategyResult:
    """Tests for StrategyResult invariants."""

    def test_from_items(self):
        result = StrategyResult.from_items([_item(1), _item(2)])
        assert result.found_ids == frozenset({1, 2})
        assert not result.is_terminal
        assert result.total_count is None

    def test_found_ids_must_match_items(self):
        with pytest.raises(ValidationError):
            StrategyResult(items=(_item(1),), found_ids=frozenset({1, 2}))

    def test_total_count_requires_terminal(self):
        with pytest.raises(ValidationError):
            StrategyResult.from_items([_item(1)], total_count=1)

    def test_terminal_with_total(self):
        result = StrategyResult.from_items([_item(1)], is_terminal=True, total_count=40)
        assert result.total_count == 40


class TestSearchResultPage:
    """Tests for page arithmetic."""

    @pytest.mark.parametrize(
        "total, page, page_size, pages, has_prev, has_next",
        [
            (0, 1, 10, 0, False, False),
            (10, 1, 10, 1, False, False),
            (11, 1, 10, 2, False, True),
            (25, 2, 10, 3, True, True),
            (25, 3, 10, 3, True, False),
        ],
    )
    def test_navigation(self, total, page, page_size, pages, has_prev, has_next):
        result = SearchResultPage(total_count=total, page=page, page_size=page_size)
        assert result.total_pages == pages
        assert result.has_previous_page is has_prev
        assert result.has_next_page is has_next
