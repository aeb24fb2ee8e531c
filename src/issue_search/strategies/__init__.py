"""Search strategies, highest priority first: exact, semantic, browse."""

from issue_search.strategies.base import SearchStrategy, StrategyKind
from issue_search.strategies.browse import RepositoryBrowseStrategy
from issue_search.strategies.exact import ExactMatchStrategy
from issue_search.strategies.semantic import SemanticSearchStrategy

__all__ = [
    "SearchStrategy",
    "StrategyKind",
    "ExactMatchStrategy",
    "SemanticSearchStrategy",
    "RepositoryBrowseStrategy",
]
