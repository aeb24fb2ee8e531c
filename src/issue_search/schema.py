"""SQLAlchemy table definitions read by the search queries.

Only the columns search touches are declared. Schema creation and
migrations belong to the sync service; `metadata.create_all` is used by
tests and local development only.
"""

from pgvector.sqlalchemy import Vector
from sqlalchemy import Boolean, Column, ForeignKey, Integer, MetaData, String, Table

DEFAULT_VECTOR_DIMENSIONS = 1024

metadata = MetaData()

repositories = Table(
    "repositories",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("full_name", String(400), nullable=False, unique=True),
)

issues = Table(
    "issues",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("repository_id", Integer, ForeignKey("repositories.id"), nullable=False, index=True),
    Column("number", Integer, nullable=False),
    Column("title", String(1024), nullable=False),
    Column("is_open", Boolean, nullable=False),
    Column("url", String(1024), nullable=False),
    Column("embedding", Vector(DEFAULT_VECTOR_DIMENSIONS), nullable=True),
)

labels = Table(
    "labels",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("repository_id", Integer, ForeignKey("repositories.id"), nullable=False),
    Column("name", String(256), nullable=False),
    Column("color", String(16), nullable=False, default="ededed"),
)

issue_labels = Table(
    "issue_labels",
    metadata,
    Column("issue_id", Integer, ForeignKey("issues.id"), primary_key=True),
    Column("label_id", Integer, ForeignKey("labels.id"), primary_key=True),
)
