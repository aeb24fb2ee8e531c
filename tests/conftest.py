"""Pytest configuration for test discovery, env, and fixtures.

This file ensures that:
- `src/` and the shared test doubles in `tests/` are importable
- Integration tests can read database URLs from `conf/secrets.yml`
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
tests_path = repo_root / "tests"
for path in (src_path, tests_path):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


def _load_secrets_into_env() -> None:
    """Load secrets from conf/secrets.yml into environment if not set.

    Only sets variables that are currently unset to avoid overriding user-provided
    environment. This supports running integration tests locally without manual
    export of connection strings.
    """
    secrets_path = repo_root / "conf" / "secrets.yml"
    if not secrets_path.exists():
        return

    import yaml  # type: ignore[import-untyped]

    data = yaml.safe_load(secrets_path.read_text()) or {}

    key_map = {
        "ISSUE_SEARCH_POSTGRES_URL": "ISSUE_SEARCH_POSTGRES_URL",
        "ISSUE_SEARCH_SQLSERVER_URL": "ISSUE_SEARCH_SQLSERVER_URL",
        "COHERE_API_KEY": "COHERE_API_KEY",
    }

    for yaml_key, env_key in key_map.items():
        if os.environ.get(env_key):
            continue
        value = data.get(yaml_key)
        if value:
            os.environ[env_key] = str(value)


def pytest_sessionstart(session: object) -> None:
    _load_secrets_into_env()
