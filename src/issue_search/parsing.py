"""Issue-reference parsing for search queries.

Recognized references:
- ``#123``, ``repo#123``, ``owner/repo#123`` anywhere in the query
- ``123`` when the whole query is the number
- ``issue 123`` / ``issues #123`` at the start of the query

Numbers buried in ordinary text ("fix bug 27 times") are left alone and stay
part of the semantic query.
"""

import re

from issue_search.models import ParsedIssueNumber

# Qualifier must be attached to "#" and must start a token.
_QUALIFIED_PATTERN = re.compile(r"(?<![\w/.#-])(?P<repo>[\w.-]+(?:/[\w.-]+)?)?#(?P<num>\d+)\b")
_KEYWORD_PATTERN = re.compile(r"^issues?\s+#?(?P<num>\d+)\b", re.IGNORECASE)
_BARE_NUMBER_PATTERN = re.compile(r"\d+")
_WHITESPACE_PATTERN = re.compile(r"\s+")

_KEYWORDS = frozenset({"issue", "issues"})


def _find_references(text: str) -> list[tuple[int, int, ParsedIssueNumber]]:
    """Return (start, end, reference) spans found in already-stripped text."""
    references: list[tuple[int, int, ParsedIssueNumber]] = []

    keyword_match = _KEYWORD_PATTERN.match(text)
    if keyword_match:
        references.append(
            (0, keyword_match.end(), ParsedIssueNumber(number=int(keyword_match["num"])))
        )
    elif _BARE_NUMBER_PATTERN.fullmatch(text):
        return [(0, len(text), ParsedIssueNumber(number=int(text)))]

    covered_until = keyword_match.end() if keyword_match else 0
    for match in _QUALIFIED_PATTERN.finditer(text):
        if match.start() < covered_until:
            continue
        repository = match["repo"]
        if repository and repository.lower() in _KEYWORDS:
            repository = None
        references.append(
            (
                match.start(),
                match.end(),
                ParsedIssueNumber(number=int(match["num"]), repository=repository),
            )
        )

    return references


def parse_issue_numbers(query: str | None) -> list[ParsedIssueNumber]:
    """Extract issue references from a query, in order of appearance.

    Args:
        query: Raw search query

    Returns:
        Distinct parsed references (empty when none are found)

    Example:
        >>> parse_issue_numbers("org/repo#42 login crash")
        [ParsedIssueNumber(number=42, repository='org/repo')]
    """
    if not query or not query.strip():
        return []

    seen: set[ParsedIssueNumber] = set()
    parsed: list[ParsedIssueNumber] = []
    for _, _, reference in _find_references(query.strip()):
        if reference not in seen:
            seen.add(reference)
            parsed.append(reference)
    return parsed


def get_semantic_query(query: str | None) -> str | None:
    """Return the free-text part of a query with issue references removed.

    Returns None when nothing meaningful remains (e.g. the query is "#42").
    """
    if not query or not query.strip():
        return None

    text = query.strip()
    pieces: list[str] = []
    position = 0
    for start, end, _ in _find_references(text):
        pieces.append(text[position:start])
        position = end
    pieces.append(text[position:])

    remainder = _WHITESPACE_PATTERN.sub(" ", " ".join(pieces)).strip()
    if not any(ch.isalnum() for ch in remainder):
        return None
    return remainder
