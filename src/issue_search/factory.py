"""Wiring of configuration into a ready-to-use search service."""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from issue_search.config import DatabaseConfig, SearchConfig
from issue_search.embedding import EmbeddingProvider, create_embedding_provider
from issue_search.exceptions import ConfigurationError
from issue_search.queries import SqlIssueQueries
from issue_search.service import IssueSearchService
from issue_search.strategies import (
    ExactMatchStrategy,
    RepositoryBrowseStrategy,
    SemanticSearchStrategy,
)
from issue_search.vector import (
    InMemoryVectorSearchRepository,
    PostgresVectorSearchRepository,
    SqlServerVectorSearchRepository,
    VectorSearchRepository,
)


def create_session_maker(
    config: DatabaseConfig,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and session factory for the configured database."""
    if not config.url:
        raise ConfigurationError("database.url is required to query issues")
    engine = create_async_engine(config.url, echo=config.echo, pool_pre_ping=True)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def create_vector_repository(
    config: DatabaseConfig,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> VectorSearchRepository:
    """Factory function selecting the vector backend.

    Args:
        config: Database configuration
        session_maker: Session factory (required for SQL backends; the memory
            backend loads its issues through it when given)

    Returns:
        Vector similarity repository for the configured engine
    """
    if config.backend == "memory":
        loader = SqlIssueQueries(session_maker).load_indexed_issues if session_maker else None
        return InMemoryVectorSearchRepository(dimensions=config.vector_dimensions, loader=loader)
    if session_maker is None:
        raise ConfigurationError(f"backend {config.backend!r} needs a session maker")
    if config.backend == "postgresql":
        return PostgresVectorSearchRepository(session_maker, config.vector_dimensions)
    if config.backend == "sqlserver":
        return SqlServerVectorSearchRepository(session_maker, config.vector_dimensions)
    raise ConfigurationError(f"Unknown vector backend {config.backend!r}")


def create_search_service(
    config: SearchConfig,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    embedding_provider: EmbeddingProvider | None = None,
    vector_repository: VectorSearchRepository | None = None,
) -> IssueSearchService:
    """Build the search service with all three strategies.

    Any collaborator passed in explicitly replaces the configured one.
    """
    if session_maker is None:
        _, session_maker = create_session_maker(config.database)

    queries = SqlIssueQueries(session_maker)
    provider = embedding_provider or create_embedding_provider(config.embedding)
    repository = vector_repository or create_vector_repository(config.database, session_maker)

    strategies = [
        ExactMatchStrategy(queries),
        SemanticSearchStrategy(provider, repository, queries),
        RepositoryBrowseStrategy(queries),
    ]
    logger.info(
        f"Issue search ready: embeddings={config.embedding.model}, "
        f"vector backend={repository.backend_name}"
    )
    return IssueSearchService(
        strategies,
        max_page_size=config.search.max_page_size,
        default_page_size=config.search.default_page_size,
    )
