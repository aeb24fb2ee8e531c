"""PostgreSQL vector search using the pgvector extension.

The ranking is expressed in the query language itself: pgvector's
``cosine_distance`` comparator compiles to the ``<=>`` operator.
"""

from collections.abc import Collection, Sequence

from loguru import logger
from pgvector.sqlalchemy import Vector
from sqlalchemy import Select, bindparam, func, select

from issue_search.models import IssueState, VectorSearchResult
from issue_search.schema import issues, repositories
from issue_search.vector.base import SqlVectorSearchRepository


def _apply_filters(
    statement: Select,
    state: IssueState,
    repository_ids: Collection[int] | None,
) -> Select:
    statement = statement.where(issues.c.embedding.is_not(None))
    if state is IssueState.OPEN:
        statement = statement.where(issues.c.is_open)
    elif state is IssueState.CLOSED:
        statement = statement.where(~issues.c.is_open)
    if repository_ids:
        statement = statement.where(issues.c.repository_id.in_(sorted(repository_ids)))
    return statement


class PostgresVectorSearchRepository(SqlVectorSearchRepository):
    """pgvector implementation of the vector similarity contract."""

    backend_name = "postgresql"

    def build_similarity_query(
        self,
        query_embedding: Sequence[float],
        state: IssueState | str,
        skip: int,
        take: int,
        repository_ids: Collection[int] | None = None,
    ) -> Select:
        """Build the ranked similarity SELECT (exposed for inspection in tests)."""
        # Bound with the configured size, not the schema column size
        query_vector = bindparam(
            "query_vector", list(query_embedding), type_=Vector(self.dimensions)
        )
        distance = issues.c.embedding.cosine_distance(query_vector)
        statement = select(
            issues.c.id,
            issues.c.number.label("issue_number"),
            issues.c.title,
            issues.c.is_open,
            issues.c.url,
            repositories.c.full_name.label("repository_full_name"),
            (1 - distance).label("similarity"),
        ).select_from(issues.join(repositories, issues.c.repository_id == repositories.c.id))
        statement = _apply_filters(statement, IssueState.parse(state), repository_ids)
        return statement.order_by(distance, issues.c.id).offset(skip).limit(take)

    def build_count_query(
        self,
        state: IssueState | str,
        repository_ids: Collection[int] | None = None,
    ) -> Select:
        statement = select(func.count()).select_from(issues)
        return _apply_filters(statement, IssueState.parse(state), repository_ids)

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

        statement = self.build_similarity_query(vector, state, skip, take, repository_ids)
        rows = await self._fetch_rows(statement)
        logger.debug(f"pgvector similarity search returned {len(rows)} rows (skip={skip})")
        return [VectorSearchResult(**row) for row in rows]

    async def get_total_count(
        self,
        state: IssueState | str,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> int:
        return await self._fetch_scalar(self.build_count_query(state, repository_ids))
