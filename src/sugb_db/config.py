"""Database configuration — reads connection parameters from environment.

Supports two modes:
1. A single ``DATABASE_URL`` env var (takes precedence).  Hosting
   providers often hand out ``postgres://`` URLs; these are normalised.
2. Individual ``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD``,
   ``PG_DATABASE`` env vars (convenient for docker-compose).

``get_sync_url`` feeds Alembic; ``get_async_url`` feeds the asyncpg engine
used at runtime by the API and the report worker.
"""

import os

_ASYNC_PREFIX = "postgresql+asyncpg://"
_SYNC_PREFIX = "postgresql://"


def _build_url_from_parts() -> str:
    """Construct a PostgreSQL connection string from individual env vars."""
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "sugb")
    password = os.getenv("PG_PASSWORD", "sugb")
    database = os.getenv("PG_DATABASE", "sugb")
    return f"{_SYNC_PREFIX}{user}:{password}@{host}:{port}/{database}"


def _normalise(url: str) -> str:
    """Strip driver suffixes and legacy schemes down to ``postgresql://``."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", _SYNC_PREFIX, 1)
    for driver in ("+asyncpg", "+psycopg2", "+psycopg"):
        if url.startswith(f"postgresql{driver}://"):
            return url.replace(f"postgresql{driver}://", _SYNC_PREFIX, 1)
    return url


def get_sync_url() -> str:
    """Return a plain ``postgresql://`` URL for Alembic migrations."""
    url = os.getenv("DATABASE_URL")
    return _normalise(url) if url else _build_url_from_parts()


def get_async_url() -> str:
    """Return an asyncpg connection URL for the async SQLAlchemy engine."""
    url = get_sync_url()
    if url.startswith(_SYNC_PREFIX):
        return url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
    # Non-Postgres URLs (e.g. sqlite+aiosqlite for local experiments) pass through
    return url
