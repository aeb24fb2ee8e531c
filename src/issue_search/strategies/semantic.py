"""Semantic search by query embedding, with a silent text-search fallback.

The fallback branch is taken when:
- the embedding provider returns None (or raises),
- the vector backend reports `SimilaritySearchUnavailableError`.

Cancellation is never treated as a failure and always propagates.
"""

from loguru import logger

from issue_search.collaborators import TextIssueSearch
from issue_search.embedding import EmbeddingInputKind, EmbeddingProvider
from issue_search.exceptions import SimilaritySearchUnavailableError
from issue_search.models import IssueRecord, SearchCriteria, StrategyResult
from issue_search.strategies.base import SearchStrategy, StrategyKind, to_result_item
from issue_search.vector.base import VectorSearchRepository


class SemanticSearchStrategy(SearchStrategy):
    """Vector similarity search over issue embeddings."""

    kind = StrategyKind.SEMANTIC
    priority = 80

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_repository: VectorSearchRepository,
        text_search: TextIssueSearch,
    ):
        self.embedding_provider = embedding_provider
        self.vector_repository = vector_repository
        self.text_search = text_search

    def can_handle(self, criteria: SearchCriteria) -> bool:
        return criteria.has_semantic_query

    async def execute(self, criteria: SearchCriteria, exclude_ids: frozenset[int]) -> StrategyResult:
        if not criteria.has_semantic_query:
            return StrategyResult()

        query = criteria.semantic_query.strip()
        embedding = await self._generate_query_embedding(query)

        if embedding is not None:
            try:
                return await self._vector_search(criteria, exclude_ids, embedding)
            except SimilaritySearchUnavailableError as e:
                logger.warning(
                    f"Similarity search unavailable on {e.backend}, "
                    f"falling back to text search for query: {query!r}"
                )
        else:
            logger.warning(f"Embedding unavailable, falling back to text search for query: {query!r}")

        return await self._text_search(criteria, exclude_ids, query)

    async def _generate_query_embedding(self, text: str) -> list[float] | None:
        try:
            return await self.embedding_provider.generate_embedding(text, EmbeddingInputKind.QUERY)
        except Exception as e:
            logger.warning(f"Embedding provider raised {type(e).__name__}: {e}")
            return None

    async def _vector_search(
        self,
        criteria: SearchCriteria,
        exclude_ids: frozenset[int],
        embedding: list[float],
    ) -> StrategyResult:
        # Ranked from the top through this page; the service cuts the page out
        # Over-fetch by the exclusion size so excluded hits cannot shrink it
        rows = await self.vector_repository.search_by_similarity(
            embedding,
            criteria.state,
            skip=0,
            take=criteria.window_end + len(exclude_ids),
            repository_ids=criteria.repository_ids,
        )
        items = (
            to_result_item(
                IssueRecord(
                    id=row.id,
                    issue_number=row.issue_number,
                    title=row.title,
                    is_open=row.is_open,
                    url=row.url,
                    repository_full_name=row.repository_full_name,
                ),
                is_exact_match=False,
                similarity=row.similarity,
            )
            for row in rows
        )
        kept = self.exclude(items, exclude_ids, limit=criteria.window_end)
        logger.debug(f"SemanticSearch found {len(kept)} results for query: {criteria.semantic_query!r}")
        return StrategyResult.from_items(kept)

    async def _text_search(
        self,
        criteria: SearchCriteria,
        exclude_ids: frozenset[int],
        query: str,
    ) -> StrategyResult:
        # Same window as the vector path: from the top through the end of this page
        page = await self.text_search.find_by_text(
            query,
            criteria.state,
            criteria.repository_ids,
            page=1,
            page_size=criteria.window_end + len(exclude_ids),
        )
        items = (to_result_item(r, is_exact_match=False) for r in page.items)
        kept = self.exclude(items, exclude_ids, limit=criteria.window_end)
        logger.info(f"TextSearchFallback returned {len(kept)} results for query: {query!r}")
        return StrategyResult.from_items(kept)
