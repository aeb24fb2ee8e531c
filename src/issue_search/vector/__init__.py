"""Vector similarity repositories, one module per storage engine."""

from issue_search.vector.base import VectorSearchRepository
from issue_search.vector.memory import IndexedIssue, InMemoryVectorSearchRepository
from issue_search.vector.postgres import PostgresVectorSearchRepository
from issue_search.vector.sqlserver import SqlServerVectorSearchRepository

__all__ = [
    "VectorSearchRepository",
    "IndexedIssue",
    "InMemoryVectorSearchRepository",
    "PostgresVectorSearchRepository",
    "SqlServerVectorSearchRepository",
]
