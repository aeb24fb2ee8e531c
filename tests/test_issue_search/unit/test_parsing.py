"""Unit tests for issue-reference parsing."""

import string

import pytest
from hypothesis import given
from hypothesis import strategies as st

from issue_search.models import ParsedIssueNumber
from issue_search.parsing import get_semantic_query, parse_issue_numbers

words = st.text(alphabet=string.ascii_letters + " ", min_size=1, max_size=60).filter(
    lambda t: t.strip()
)


class TestParseIssueNumbers:
    """Tests for parse_issue_numbers."""

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("#42", [ParsedIssueNumber(number=42)]),
            ("42", [ParsedIssueNumber(number=42)]),
            ("  42  ", [ParsedIssueNumber(number=42)]),
            ("issue 12", [ParsedIssueNumber(number=12)]),
            ("Issues #5 crash", [ParsedIssueNumber(number=5)]),
            ("repo#7", [ParsedIssueNumber(number=7, repository="repo")]),
            ("org/repo#42 login crash", [ParsedIssueNumber(number=42, repository="org/repo")]),
            ("issue#5", [ParsedIssueNumber(number=5)]),
        ],
    )
    def test_recognized_references(self, query, expected):
        """Supported reference forms should parse."""
        assert parse_issue_numbers(query) == expected

    @pytest.mark.parametrize(
        "query",
        ["", "   ", None, "fix bug 27 times", "#12abc", "abc#", "login crash"],
    )
    def test_no_references(self, query):
        """Numbers embedded in prose and malformed references are ignored."""
        assert parse_issue_numbers(query) == []

    def test_multiple_references_in_order(self):
        """Several references keep their order of appearance."""
        assert parse_issue_numbers("#3 and a/b#3 then #9") == [
            ParsedIssueNumber(number=3),
            ParsedIssueNumber(number=3, repository="a/b"),
            ParsedIssueNumber(number=9),
        ]

    def test_duplicates_removed(self):
        """Repeated references are reported once."""
        assert parse_issue_numbers("#1 #1 crash #1") == [ParsedIssueNumber(number=1)]

    @given(st.integers(min_value=0, max_value=10**9))
    def test_hash_number_roundtrip(self, n):
        """"#n" always parses to n with no semantic remainder."""
        assert parse_issue_numbers(f"#{n}") == [ParsedIssueNumber(number=n)]
        assert get_semantic_query(f"#{n}") is None

    @given(st.integers(min_value=0, max_value=10**9))
    def test_bare_number_query(self, n):
        """A query that is only a number is an issue reference."""
        assert parse_issue_numbers(str(n)) == [ParsedIssueNumber(number=n)]


class TestGetSemanticQuery:
    """Tests for get_semantic_query."""

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("org/repo#42 login crash", "login crash"),
            ("login #42 crash", "login crash"),
            ("fix bug 27 times", "fix bug 27 times"),
            ("Issues #5 crash", "crash"),
            ("  spaced    out\tquery ", "spaced out query"),
        ],
    )
    def test_remainder(self, query, expected):
        """References are removed and whitespace collapsed."""
        assert get_semantic_query(query) == expected

    @pytest.mark.parametrize("query", ["", "  ", None, "#42", "42", "issue 7", "#42 ???", "#1 - #2"])
    def test_nothing_meaningful_left(self, query):
        """Queries with no free text have no semantic part."""
        assert get_semantic_query(query) is None

    @given(words)
    def test_plain_text_is_kept(self, text):
        """Text without references is the semantic query, whitespace-normalized."""
        assert parse_issue_numbers(text) == []
        assert get_semantic_query(text) == " ".join(text.split())

    @given(st.integers(min_value=1, max_value=10**6), words)
    def test_reference_plus_text(self, n, text):
        """A leading reference and trailing text split cleanly."""
        query = f"#{n} {text}"
        assert parse_issue_numbers(query) == [ParsedIssueNumber(number=n)]
        assert get_semantic_query(query) == " ".join(text.split())
