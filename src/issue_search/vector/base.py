"""Vector similarity repository contract.

Every backend returns issues ordered by ascending cosine distance to the query
vector (ties broken by ascending id), reports ``similarity = 1 - cosine_distance``,
and only considers issues that have an embedding. Backend-specific failures
surface as `SimilaritySearchUnavailableError`.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from typing import Any

from loguru import logger
from sqlalchemy.exc import DataError, DBAPIError, ProgrammingError, StatementError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issue_search.exceptions import SimilaritySearchUnavailableError
from issue_search.models import IssueState, VectorSearchResult


class VectorSearchRepository(ABC):
    """Abstract base class for vector similarity backends."""

    backend_name: str = "abstract"

    def __init__(self, dimensions: int | None = None):
        """Initialize repository.

        Args:
            dimensions: Expected query vector length (None skips the check)
        """
        self.dimensions = dimensions

    @abstractmethod
    async def search_by_similarity(
        self,
        query_embedding: Sequence[float],
        state: IssueState | str,
        skip: int,
        take: int,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> list[VectorSearchResult]:
        """Search issues by cosine similarity.

        Args:
            query_embedding: Query vector
            state: "open", "closed" or anything else for no filtering
            skip: Number of ranked rows to skip
            take: Maximum number of rows to return
            repository_ids: Optional repository restriction

        Returns:
            Rows ordered by ascending cosine distance

        Raises:
            SimilaritySearchUnavailableError: If the backend cannot run the query
        """
        ...

    @abstractmethod
    async def get_total_count(
        self,
        state: IssueState | str,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> int:
        """Count issues with an embedding under the same filters."""
        ...

    def _check_window(self, skip: int, take: int) -> None:
        if skip < 0:
            raise ValueError(f"skip must be non-negative, got {skip}")
        if take < 0:
            raise ValueError(f"take must be non-negative, got {take}")

    def _check_embedding(self, query_embedding: Sequence[float]) -> list[float]:
        """Validate the query vector before it reaches the backend."""
        vector = [float(v) for v in query_embedding]
        if not vector:
            logger.warning(f"{self.backend_name}: empty query vector")
            raise SimilaritySearchUnavailableError(self.backend_name)
        if self.dimensions is not None and len(vector) != self.dimensions:
            logger.warning(
                f"{self.backend_name}: query vector has {len(vector)} dimensions, "
                f"expected {self.dimensions}"
            )
            raise SimilaritySearchUnavailableError(self.backend_name)
        if not all(math.isfinite(v) for v in vector):
            logger.warning(f"{self.backend_name}: query vector contains non-finite values")
            raise SimilaritySearchUnavailableError(self.backend_name)
        return vector


def is_query_shape_error(exc: Exception) -> bool:
    """True for errors caused by the query itself rather than the database being down.

    Covers driver data/programming errors (malformed vector literal, dimension
    mismatch, missing vector support) and bind-parameter processing failures.
    Connection and operational errors are not included and propagate.
    """
    if isinstance(exc, (DataError, ProgrammingError)):
        return True
    return isinstance(exc, StatementError) and not isinstance(exc, DBAPIError)


class SqlVectorSearchRepository(VectorSearchRepository):
    """Shared plumbing for backends queried through an SQLAlchemy async session."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        dimensions: int | None = None,
    ):
        super().__init__(dimensions)
        self.session_maker = session_maker

    async def _fetch_rows(self, statement: Any, params: dict[str, Any] | None = None) -> list[dict]:
        async with self.session_maker() as session:
            try:
                result = await session.execute(statement, params or {})
            except StatementError as e:
                if is_query_shape_error(e):
                    logger.warning(f"{self.backend_name}: similarity query rejected by backend")
                    raise SimilaritySearchUnavailableError(self.backend_name) from e
                raise
            return [dict(row) for row in result.mappings().all()]

    async def _fetch_scalar(self, statement: Any, params: dict[str, Any] | None = None) -> int:
        async with self.session_maker() as session:
            result = await session.execute(statement, params or {})
            return int(result.scalar_one())
