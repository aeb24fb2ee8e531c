"""SQL implementations of the issue lookup collaborators.

`SqlIssueQueries` serves exact number lookup, the title text search used as the
semantic fallback, and plain repository listing, all read-only over the tables
in `issue_search.schema`. `load_indexed_issues` feeds the in-memory vector
backend from the same tables.
"""

from collections.abc import Collection

from loguru import logger
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issue_search.models import IssuePage, IssueRecord, IssueState, LabelInfo
from issue_search.schema import issue_labels, issues, labels, repositories
from issue_search.vector.memory import IndexedIssue


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_page(page: int, page_size: int) -> None:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")


def _apply_filters(
    statement: Select,
    state: IssueState,
    repository_ids: Collection[int] | None,
) -> Select:
    state = IssueState.parse(state)
    if state is IssueState.OPEN:
        statement = statement.where(issues.c.is_open)
    elif state is IssueState.CLOSED:
        statement = statement.where(~issues.c.is_open)
    if repository_ids:
        statement = statement.where(issues.c.repository_id.in_(sorted(repository_ids)))
    return statement


def _issue_columns() -> Select:
    return select(
        issues.c.id,
        issues.c.number.label("issue_number"),
        issues.c.title,
        issues.c.is_open,
        issues.c.url,
        repositories.c.full_name.label("repository_full_name"),
    ).select_from(issues.join(repositories, issues.c.repository_id == repositories.c.id))


class SqlIssueQueries:
    """Read-only issue lookups over an SQLAlchemy async session factory."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def find_by_numbers(
        self,
        numbers: Collection[int],
        repository: str | None,
        state: IssueState,
        repository_ids: Collection[int] | None,
    ) -> list[IssueRecord]:
        """Find issues by number, optionally qualified by repository.

        A qualifier containing "/" must equal the full name; a bare name
        matches the repository part of any owner (case-insensitive).
        """
        if not numbers:
            return []

        statement = _issue_columns().where(issues.c.number.in_(sorted(set(numbers))))
        if repository:
            qualifier = repository.strip().lower()
            full_name = func.lower(repositories.c.full_name)
            if "/" in qualifier:
                statement = statement.where(full_name == qualifier)
            else:
                statement = statement.where(
                    or_(
                        full_name == qualifier,
                        full_name.like(f"%/{_escape_like(qualifier)}", escape="\\"),
                    )
                )
        statement = _apply_filters(statement, state, repository_ids)
        statement = statement.order_by(repositories.c.full_name, issues.c.number)

        async with self.session_maker() as session:
            records = await self._fetch_records(session, statement)

        logger.debug(f"find_by_numbers({sorted(set(numbers))}, {repository!r}) -> {len(records)}")
        return records

    async def find_by_text(
        self,
        text: str,
        state: IssueState,
        repository_ids: Collection[int] | None,
        page: int,
        page_size: int,
    ) -> IssuePage:
        """Case-insensitive substring search on issue titles, newest first."""
        _check_page(page, page_size)
        if not text or not text.strip():
            return IssuePage()

        pattern = f"%{_escape_like(text.strip())}%"
        condition = issues.c.title.ilike(pattern, escape="\\")
        return await self._paged(condition, state, repository_ids, page, page_size)

    async def list_by_repositories(
        self,
        repository_ids: Collection[int],
        state: IssueState,
        page: int,
        page_size: int,
    ) -> IssuePage:
        """List issues of the given repositories, newest first."""
        _check_page(page, page_size)
        if not repository_ids:
            return IssuePage()
        return await self._paged(None, state, repository_ids, page, page_size)

    async def load_indexed_issues(self) -> list[IndexedIssue]:
        """Read every issue with its embedding, for the in-memory vector backend."""
        statement = select(
            issues.c.id,
            issues.c.repository_id,
            issues.c.number.label("issue_number"),
            issues.c.title,
            issues.c.is_open,
            issues.c.url,
            repositories.c.full_name.label("repository_full_name"),
            issues.c.embedding,
        ).select_from(issues.join(repositories, issues.c.repository_id == repositories.c.id))

        async with self.session_maker() as session:
            rows = (await session.execute(statement.order_by(issues.c.id))).mappings().all()

        return [
            IndexedIssue(
                **{key: value for key, value in row.items() if key != "embedding"},
                embedding=(
                    tuple(float(x) for x in row["embedding"])
                    if row["embedding"] is not None
                    else None
                ),
            )
            for row in rows
        ]

    async def _paged(
        self,
        condition,
        state: IssueState,
        repository_ids: Collection[int] | None,
        page: int,
        page_size: int,
    ) -> IssuePage:
        rows_statement = _issue_columns()
        count_statement = select(func.count()).select_from(issues)
        if condition is not None:
            rows_statement = rows_statement.where(condition)
            count_statement = count_statement.where(condition)
        rows_statement = _apply_filters(rows_statement, state, repository_ids)
        count_statement = _apply_filters(count_statement, state, repository_ids)

        rows_statement = (
            rows_statement.order_by(issues.c.number.desc(), issues.c.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        async with self.session_maker() as session:
            total_count = (await session.execute(count_statement)).scalar_one()
            records = await self._fetch_records(session, rows_statement)

        return IssuePage(items=tuple(records), total_count=total_count)

    async def _fetch_records(self, session: AsyncSession, statement: Select) -> list[IssueRecord]:
        rows = (await session.execute(statement)).mappings().all()
        label_map = await self._load_labels(session, [row["id"] for row in rows])
        return [
            IssueRecord(**dict(row), labels=label_map.get(row["id"], ())) for row in rows
        ]

    async def _load_labels(
        self, session: AsyncSession, issue_ids: list[int]
    ) -> dict[int, tuple[LabelInfo, ...]]:
        if not issue_ids:
            return {}

        statement = (
            select(issue_labels.c.issue_id, labels.c.name, labels.c.color)
            .select_from(issue_labels.join(labels, issue_labels.c.label_id == labels.c.id))
            .where(issue_labels.c.issue_id.in_(issue_ids))
            .order_by(issue_labels.c.issue_id, labels.c.name)
        )
        label_map: dict[int, list[LabelInfo]] = {}
        for row in (await session.execute(statement)).mappings():
            label_map.setdefault(row["issue_id"], []).append(
                LabelInfo(name=row["name"], color=row["color"])
            )
        return {issue_id: tuple(items) for issue_id, items in label_map.items()}
