"""Unit tests for the PostgreSQL and SQL Server vector repositories.

Statements are compiled against the real dialects; execution goes through a
recording session so no database is needed.
"""

import pytest
from sqlalchemy.dialects import mssql, postgresql
from sqlalchemy.exc import DataError, OperationalError, ProgrammingError, StatementError

from issue_search.exceptions import SimilaritySearchUnavailableError
from issue_search.vector.base import is_query_shape_error
from issue_search.vector.postgres import PostgresVectorSearchRepository
from issue_search.vector.sqlserver import (
    SqlServerVectorSearchRepository,
    vector_to_sql_literal,
)

QUERY = [0.1, 0.2, 0.3]


class RecordingResult:
    def __init__(self, rows):
        self.rows = rows

    def mappings(self):
        return self

    def all(self):
        return self.rows

    def scalar_one(self):
        return self.rows[0]


class RecordingSession:
    """Async session stand-in returning canned rows (or raising)."""

    def __init__(self, rows=(), error=None):
        self.rows = list(rows)
        self.error = error
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement, params=None):
        self.executed.append((statement, params))
        if self.error is not None:
            raise self.error
        return RecordingResult(self.rows)


def _session_maker(session):
    return lambda: session


def _row(id, similarity, is_open=1):
    return {
        "id": id,
        "issue_number": id + 100,
        "title": f"Issue {id}",
        "is_open": is_open,
        "url": f"https://github.com/octo/app/issues/{id + 100}",
        "repository_full_name": "octo/app",
        "similarity": similarity,
    }


class TestQueryShapeErrors:
    """Tests for is_query_shape_error."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (DataError("SELECT", {}, Exception("invalid vector")), True),
            (ProgrammingError("SELECT", {}, Exception("operator does not exist")), True),
            (StatementError("bad bind", "SELECT", {}, ValueError("x")), True),
            (OperationalError("SELECT", {}, Exception("connection refused")), False),
        ],
    )
    def test_classification(self, error, expected):
        assert is_query_shape_error(error) is expected


class TestPostgresVectorSearchRepository:
    """Tests for the pgvector backend."""

    def _compile(self, statement) -> str:
        return str(statement.compile(dialect=postgresql.dialect()))

    def test_similarity_query_uses_cosine_operator(self):
        repository = PostgresVectorSearchRepository(_session_maker(RecordingSession()), 3)

        sql = self._compile(repository.build_similarity_query(QUERY, "all", 20, 10))

        assert "<=>" in sql
        assert "- (issues.embedding <=> %(query_vector)s)" in sql
        assert "AS similarity" in sql
        assert "issues.embedding IS NOT NULL" in sql
        assert "ORDER BY issues.embedding <=>" in sql
        assert ", issues.id" in sql.split("ORDER BY", 1)[1]
        assert "LIMIT %(" in sql and "OFFSET %(" in sql
        assert "is_open" not in sql.split("WHERE", 1)[1]

    def test_filters(self):
        repository = PostgresVectorSearchRepository(_session_maker(RecordingSession()), 3)

        open_sql = self._compile(repository.build_similarity_query(QUERY, "open", 0, 10, {4, 2}))
        closed_sql = self._compile(repository.build_count_query("closed"))

        assert "WHERE issues.embedding IS NOT NULL AND issues.is_open" in open_sql
        assert "issues.repository_id IN" in open_sql
        assert "NOT issues.is_open" in closed_sql
        assert "count(*)" in closed_sql

    @pytest.mark.asyncio
    async def test_search_maps_rows(self):
        session = RecordingSession([_row(1, 0.9, True), _row(2, 0.4, False)])
        repository = PostgresVectorSearchRepository(_session_maker(session), 3)

        results = await repository.search_by_similarity(QUERY, "all", 0, 5)

        assert [(r.id, r.similarity) for r in results] == [(1, 0.9), (2, 0.4)]
        assert len(session.executed) == 1

    @pytest.mark.asyncio
    async def test_rejected_query_is_unavailable(self):
        cause = DataError("SELECT", {}, Exception("different vector dimensions 3 and 1024"))
        repository = PostgresVectorSearchRepository(
            _session_maker(RecordingSession(error=cause)), 3
        )

        with pytest.raises(SimilaritySearchUnavailableError) as exc_info:
            await repository.search_by_similarity(QUERY, "all", 0, 5)

        assert exc_info.value.backend == "postgresql"
        assert exc_info.value.__cause__ is cause
        assert "1024" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_errors_propagate(self):
        cause = OperationalError("SELECT", {}, Exception("connection refused"))
        repository = PostgresVectorSearchRepository(
            _session_maker(RecordingSession(error=cause)), 3
        )

        with pytest.raises(OperationalError):
            await repository.search_by_similarity(QUERY, "all", 0, 5)

    @pytest.mark.asyncio
    async def test_invalid_vector_never_reaches_database(self):
        session = RecordingSession()
        repository = PostgresVectorSearchRepository(_session_maker(session), 3)

        with pytest.raises(SimilaritySearchUnavailableError):
            await repository.search_by_similarity([0.1, 0.2], "all", 0, 5)
        with pytest.raises(SimilaritySearchUnavailableError):
            await repository.search_by_similarity([0.1, float("inf"), 0.3], "all", 0, 5)
        assert await repository.search_by_similarity(QUERY, "all", 0, 0) == []
        assert session.executed == []

    @pytest.mark.asyncio
    async def test_total_count(self):
        repository = PostgresVectorSearchRepository(_session_maker(RecordingSession([7])), 3)
        assert await repository.get_total_count("open") == 7


class TestSqlServerVectorSearchRepository:
    """Tests for the SQL Server backend."""

    def test_dimensions_required(self):
        with pytest.raises(ValueError):
            SqlServerVectorSearchRepository(_session_maker(RecordingSession()), 0)

    def test_vector_literal(self):
        assert vector_to_sql_literal([0.5, 1, -2.25]) == "[0.5, 1.0, -2.25]"

    def test_similarity_query(self):
        repository = SqlServerVectorSearchRepository(_session_maker(RecordingSession()), 3)

        statement, params = repository.build_similarity_query(QUERY, "all", 20, 10)
        sql = str(statement)

        assert (
            "1 - VECTOR_DISTANCE('cosine', i.embedding, CAST(:query_vector AS VECTOR(3)))" in sql
        )
        assert "ORDER BY VECTOR_DISTANCE" in sql
        assert ", i.id" in sql
        assert "OFFSET :skip ROWS FETCH NEXT :take ROWS ONLY" in sql
        assert "is_open" not in sql.split("WHERE", 1)[1]
        assert params == {"query_vector": "[0.1, 0.2, 0.3]", "skip": 20, "take": 10}

    def test_filters(self):
        repository = SqlServerVectorSearchRepository(_session_maker(RecordingSession()), 3)

        statement, params = repository.build_similarity_query(QUERY, "closed", 0, 10, {5, 3})
        compiled = str(statement.compile(dialect=mssql.dialect()))

        assert "AND i.is_open = 0" in str(statement)
        assert "AND i.repository_id IN" in compiled
        assert params["repository_ids"] == [3, 5]

        count, count_params = repository.build_count_query("open")
        assert "AND i.is_open = 1" in str(count)
        assert count_params == {}

    @pytest.mark.asyncio
    async def test_search_converts_bit_columns(self):
        session = RecordingSession([_row(1, 0.8, 1), _row(2, 0.3, 0)])
        repository = SqlServerVectorSearchRepository(_session_maker(session), 3)

        results = await repository.search_by_similarity(QUERY, "all", 0, 5)

        assert [r.is_open for r in results] == [True, False]
        _, params = session.executed[0]
        assert params["take"] == 5

    @pytest.mark.asyncio
    async def test_missing_vector_support_is_unavailable(self):
        cause = ProgrammingError("SELECT", {}, Exception("'VECTOR_DISTANCE' is not a recognized"))
        repository = SqlServerVectorSearchRepository(
            _session_maker(RecordingSession(error=cause)), 3
        )

        with pytest.raises(SimilaritySearchUnavailableError) as exc_info:
            await repository.search_by_similarity(QUERY, "open", 0, 5)

        assert exc_info.value.backend == "sqlserver"
