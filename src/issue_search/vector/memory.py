"""In-process reference implementation of the vector similarity contract.

Computes exactly what the database backends compute (cosine distance, ascending,
ties by id) in pure Python. Used for local development and as the oracle the
SQL backends are checked against.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict

from issue_search.exceptions import SimilaritySearchUnavailableError
from issue_search.models import IssueState, VectorSearchResult
from issue_search.vector.base import VectorSearchRepository


class IndexedIssue(BaseModel):
    """An issue row held by the in-memory repository."""

    model_config = ConfigDict(frozen=True)

    id: int
    repository_id: int
    issue_number: int
    title: str
    is_open: bool
    url: str
    repository_full_name: str
    embedding: tuple[float, ...] | None = None


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``1 - cosine_similarity(a, b)``; NaN if either vector has zero norm."""
    dot = math.fsum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return math.nan
    return 1.0 - dot / (norm_a * norm_b)


IssueLoader = Callable[[], Awaitable[Iterable[IndexedIssue]]]


class InMemoryVectorSearchRepository(VectorSearchRepository):
    """Vector similarity over a list of issues held in memory.

    With a ``loader`` the issues are read once, on first use, from wherever
    the loader gets them (typically the issue database). A repository holding
    no embedded issue at all cannot rank anything and reports
    `SimilaritySearchUnavailableError`, so callers fall back to text search.
    """

    backend_name = "memory"

    def __init__(
        self,
        issues: Sequence[IndexedIssue] = (),
        dimensions: int | None = None,
        loader: IssueLoader | None = None,
    ):
        super().__init__(dimensions)
        self._issues: dict[int, IndexedIssue] = {issue.id: issue for issue in issues}
        self._loader = loader
        self._loaded = loader is None
        self._load_lock = asyncio.Lock()

    def add(self, issue: IndexedIssue) -> None:
        """Insert or replace an issue."""
        self._issues[issue.id] = issue

    async def load(self) -> int:
        """(Re)read all issues from the loader; returns how many carry an embedding."""
        if self._loader is None:
            raise ValueError("repository has no loader")
        async with self._load_lock:
            return await self._read(self._loader)

    async def _ensure_loaded(self) -> None:
        if self._loaded or self._loader is None:
            return
        async with self._load_lock:
            if not self._loaded:
                await self._read(self._loader)

    async def _read(self, loader: IssueLoader) -> int:
        issues = list(await loader())
        self._issues = {issue.id: issue for issue in issues}
        self._loaded = True
        embedded = sum(1 for issue in issues if issue.embedding is not None)
        logger.info(f"Loaded {len(issues)} issues into memory ({embedded} with embeddings)")
        return embedded

    def _eligible(
        self, state: IssueState | str, repository_ids: Collection[int] | None
    ) -> list[tuple[IndexedIssue, tuple[float, ...]]]:
        state = IssueState.parse(state)
        eligible = []
        for issue in self._issues.values():
            embedding = issue.embedding
            if embedding is None:
                continue
            if state is IssueState.OPEN and not issue.is_open:
                continue
            if state is IssueState.CLOSED and issue.is_open:
                continue
            if repository_ids and issue.repository_id not in repository_ids:
                continue
            eligible.append((issue, embedding))
        return eligible

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
        await self._ensure_loaded()
        if not any(issue.embedding is not None for issue in self._issues.values()):
            raise SimilaritySearchUnavailableError(
                self.backend_name, "no embedded issues are loaded"
            )

        scored: list[tuple[float, IndexedIssue]] = []
        for issue, embedding in self._eligible(state, repository_ids):
            if len(embedding) != len(vector):
                raise SimilaritySearchUnavailableError(self.backend_name)
            scored.append((cosine_distance(embedding, vector), issue))

        # NaN distances (zero vectors) sort last, as in PostgreSQL
        scored.sort(
            key=lambda pair: (
                math.isnan(pair[0]),
                0.0 if math.isnan(pair[0]) else pair[0],
                pair[1].id,
            )
        )

        return [
            VectorSearchResult(
                id=issue.id,
                issue_number=issue.issue_number,
                title=issue.title,
                is_open=issue.is_open,
                url=issue.url,
                repository_full_name=issue.repository_full_name,
                similarity=1.0 - distance,
            )
            for distance, issue in scored[skip : skip + take]
        ]

    async def get_total_count(
        self,
        state: IssueState | str,
        *,
        repository_ids: Collection[int] | None = None,
    ) -> int:
        await self._ensure_loaded()
        return len(self._eligible(state, repository_ids))
