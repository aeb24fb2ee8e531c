"""SQL Server / Azure SQL vector search using the native VECTOR type.

Ranking is done in raw parameterized SQL with
``VECTOR_DISTANCE('cosine', embedding, CAST(:query_vector AS VECTOR(n)))``,
which returns cosine distance (0-2), so similarity is ``1 - distance`` exactly
as in the pgvector backend.
"""

import json
from collections.abc import Collection, Sequence
from typing import Any

from loguru import logger
from sqlalchemy import TextClause, bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issue_search.models import IssueState, VectorSearchResult
from issue_search.vector.base import SqlVectorSearchRepository

_SEARCH_SQL = """
SELECT
    i.id AS id,
    i.number AS issue_number,
    i.title AS title,
    i.is_open AS is_open,
    i.url AS url,
    r.full_name AS repository_full_name,
    1 - VECTOR_DISTANCE('cosine', i.embedding, CAST(:query_vector AS VECTOR({dimensions}))) AS similarity
FROM issues i
INNER JOIN repositories r ON i.repository_id = r.id
WHERE i.embedding IS NOT NULL
{filters}
ORDER BY VECTOR_DISTANCE('cosine', i.embedding, CAST(:query_vector AS VECTOR({dimensions}))), i.id
OFFSET :skip ROWS FETCH NEXT :take ROWS ONLY
"""

_COUNT_SQL = """
SELECT COUNT(*)
FROM issues i
WHERE i.embedding IS NOT NULL
{filters}
"""


def vector_to_sql_literal(vector: Sequence[float]) -> str:
    """Format a vector as a SQL Server VECTOR literal, e.g. '[0.1, 0.2]'."""
    return json.dumps([float(v) for v in vector])


def _filter_clauses(state: IssueState, repository_ids: Collection[int] | None) -> str:
    clauses = []
    if state is IssueState.OPEN:
        clauses.append("AND i.is_open = 1")
    elif state is IssueState.CLOSED:
        clauses.append("AND i.is_open = 0")
    if repository_ids:
        clauses.append("AND i.repository_id IN :repository_ids")
    return "\n".join(clauses)


def _bind(sql: str, repository_ids: Collection[int] | None) -> TextClause:
    statement = text(sql)
    if repository_ids:
        statement = statement.bindparams(bindparam("repository_ids", expanding=True))
    return statement


class SqlServerVectorSearchRepository(SqlVectorSearchRepository):
    """Raw-SQL implementation of the vector similarity contract for SQL Server."""

    backend_name = "sqlserver"

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], dimensions: int):
        """Initialize repository.

        Args:
            session_maker: Async session factory bound to a SQL Server engine
            dimensions: Declared VECTOR(n) size of the embedding column
        """
        if not isinstance(dimensions, int) or dimensions <= 0:
            raise ValueError(f"dimensions must be a positive integer, got {dimensions!r}")
        super().__init__(session_maker, dimensions)

    def build_similarity_query(
        self,
        query_embedding: Sequence[float],
        state: IssueState | str,
        skip: int,
        take: int,
        repository_ids: Collection[int] | None = None,
    ) -> tuple[TextClause, dict[str, Any]]:
        """Build the ranked similarity statement and its bound parameters."""
        sql = _SEARCH_SQL.format(
            dimensions=self.dimensions,
            filters=_filter_clauses(IssueState.parse(state), repository_ids),
        )
        params: dict[str, Any] = {
            "query_vector": vector_to_sql_literal(query_embedding),
            "skip": skip,
            "take": take,
        }
        if repository_ids:
            params["repository_ids"] = sorted(repository_ids)
        return _bind(sql, repository_ids), params

    def build_count_query(
        self,
        state: IssueState | str,
        repository_ids: Collection[int] | None = None,
    ) -> tuple[TextClause, dict[str, Any]]:
        sql = _COUNT_SQL.format(filters=_filter_clauses(IssueState.parse(state), repository_ids))
        params: dict[str, Any] = {}
        if repository_ids:
            params["repository_ids"] = sorted(repository_ids)
        return _bind(sql, repository_ids), params

    async def search_by_similarity(
        self,
        query_embedding: Sequence[float],
        state: IssueState | str,
        skip: int,
        take: int,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> list[VectorSearchResult]:
        self._check_window(skip, take)
        vector = self._check_embedding(query_embedding)
        if take == 0:
            return []

        statement, params = self.build_similarity_query(vector, state, skip, take, repository_ids)
        rows = await self._fetch_rows(statement, params)
        logger.debug(f"SQL Server similarity search returned {len(rows)} rows (skip={skip})")
        return [
            VectorSearchResult(**{**row, "is_open": bool(row["is_open"])}) for row in rows
        ]

    async def get_total_count(
        self,
        state: IssueState | str,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> int:
        statement, params = self.build_count_query(state, repository_ids)
        return await self._fetch_scalar(statement, params)
