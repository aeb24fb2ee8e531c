"""Strategy-based search over indexed GitHub issues.

A query is routed through an ordered chain of strategies and the results are
merged into one deduplicated page:

Architecture:
    - parsing: issue-reference extraction ("#42", "owner/repo#42")
    - strategies: exact match, semantic (with text fallback), repository browse
    - service: priority-ordered fold over the strategies
    - vector: similarity repositories for PostgreSQL (pgvector), SQL Server, memory
    - embedding: OpenAI, Ollama and Cohere query embedding providers
    - queries: SQL lookups used by the strategies
    - models: Pydantic schemas for criteria, results and pages

Usage:
    >>> from issue_search.config import load_config
    >>> from issue_search.factory import create_search_service
    >>> service = create_search_service(load_config("default"))
    >>> page = await service.search("org/repo#42 login crash", state="open")
"""

__version__ = "0.1.0"

from issue_search.models import ResultItem, SearchCriteria, SearchResultPage, StrategyResult
from issue_search.service import IssueSearchService

__all__ = [
    "IssueSearchService",
    "ResultItem",
    "SearchCriteria",
    "SearchResultPage",
    "StrategyResult",
]
