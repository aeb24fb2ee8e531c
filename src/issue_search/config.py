"""Configuration management for issue search using Hydra.

All configuration is loaded from YAML files in conf/search/.
This module provides typed config objects and validation.
"""

from pathlib import Path

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field, model_validator

from issue_search.embedding import EmbeddingConfig


class DatabaseConfig(BaseModel):
    """Storage configuration.

    Attributes:
        backend: Vector backend ("postgresql", "sqlserver" or "memory")
        url: SQLAlchemy async URL used by the lookup queries and SQL backends
        vector_dimensions: Declared size of the embedding column
        echo: Log SQL statements
    """

    backend: str = Field(pattern="^(postgresql|sqlserver|memory)$")
    url: str | None = None
    vector_dimensions: int = Field(default=1024, ge=1, le=16000)
    echo: bool = False

    @model_validator(mode="after")
    def check_url(self) -> "DatabaseConfig":
        """SQL backends need a connection URL."""
        if self.backend != "memory" and not self.url:
            raise ValueError(f"database.url is required for backend {self.backend!r}")
        return self


class SearchSettings(BaseModel):
    """Paging defaults for the search service.

    Attributes:
        default_page_size: Page size used when the caller gives none
        max_page_size: Upper bound applied to requested page sizes
    """

    default_page_size: int = Field(default=10, ge=1, le=100)
    max_page_size: int = Field(default=50, ge=1, le=500)


class SearchConfig(BaseModel):
    """Top-level configuration for the issue search system.

    Attributes:
        embedding: Embedding provider configuration
        database: Storage configuration
        search: Paging settings
    """

    embedding: EmbeddingConfig
    database: DatabaseConfig
    search: SearchSettings = Field(default_factory=SearchSettings)

    @model_validator(mode="after")
    def check_dimensions(self) -> "SearchConfig":
        """Query vectors must fit the stored embedding column."""
        if self.embedding.dimensions != self.database.vector_dimensions:
            raise ValueError(
                f"embedding.dimensions ({self.embedding.dimensions}) must match "
                f"database.vector_dimensions ({self.database.vector_dimensions})"
            )
        return self


def load_config(
    config_name: str = "default",
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> SearchConfig:
    """Load search configuration from Hydra YAML files.

    Args:
        config_name: Name of config file (without .yaml extension)
        config_path: Path to config directory (defaults to conf/search/)
        overrides: List of config overrides (e.g., ["database.backend=sqlserver"])

    Returns:
        Validated configuration object

    Example:
        >>> config = load_config("default")
        >>> config.embedding.model
        'cohere/embed-multilingual-v3.0'

        >>> config = load_config("default", overrides=["search.max_page_size=20"])
        >>> config.search.max_page_size
        20
    """
    if config_path is None:
        # Default to conf/search/ relative to repo root
        repo_root = Path(__file__).parent.parent.parent
        config_path = repo_root / "conf" / "search"

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config directory not found: {config_path}\n" f"Create it with: mkdir -p {config_path}"
        )

    with initialize_config_dir(
        config_dir=str(config_path), version_base=None, job_name="issue_search"
    ):
        cfg: DictConfig = compose(config_name=config_name, overrides=overrides or [])

    config_dict = OmegaConf.to_container(cfg, resolve=True)
    return SearchConfig(**config_dict)  # type: ignore


def create_default_config() -> dict[str, dict[str, object]]:
    """Create a default configuration dictionary for bootstrapping.

    Returns:
        Dictionary suitable for writing to YAML

    Example:
        >>> import yaml
        >>> config = create_default_config()
        >>> with open("conf/search/default.yaml", "w") as f:
        ...     yaml.dump(config, f)
    """
    return {
        "embedding": {
            "model": "cohere/embed-multilingual-v3.0",
            "dimensions": 1024,
            "batch_size": 96,
            "max_retries": 3,
            "timeout_seconds": 30.0,
            "api_key": "${oc.env:COHERE_API_KEY,null}",
            "api_keys": [],
            "base_url": None,
        },
        "database": {
            "backend": "postgresql",
            "url": "${oc.env:ISSUE_SEARCH_DATABASE_URL,postgresql+asyncpg://localhost/github_issues}",
            "vector_dimensions": 1024,
            "echo": False,
        },
        "search": {
            "default_page_size": 10,
            "max_page_size": 50,
        },
    }
