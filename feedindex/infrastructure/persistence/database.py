"""Database engine creation and table reflection."""

import os
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import InvalidRequestError, NoSuchTableError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from feedindex.config import DatabaseConfig
from feedindex.domain.shared.error import ConfigurationError


def _expand_sqlite_path(url: str) -> str:
    """Expand ~ in SQLite URLs and ensure parent directory exists."""
    if not url.startswith("sqlite") or ":memory:" in url or url.endswith("://"):
        return url

    prefix_end = url.index("///") + 3
    prefix = url[:prefix_end]
    path = url[prefix_end:]

    abs_path = os.path.abspath(os.path.expanduser(path))
    Path(abs_path).parent.mkdir(parents=True, exist_ok=True)

    return f"{prefix}{abs_path}"


def create_db_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create async database engine.

    Handles SQLite and server databases with appropriate settings.
    """
    url = _expand_sqlite_path(config.url)

    if url.startswith("sqlite"):
        engine_kwargs: dict[str, Any] = {
            "echo": config.echo,
            # Single shared connection so in-memory databases survive across calls
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        engine_kwargs = {
            "echo": config.echo,
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        }

    return create_async_engine(url, **engine_kwargs)


async def reflect_tables(engine: AsyncEngine, *names: str) -> dict[str, sa.Table]:
    """Reflect the named tables from the live database.

    Raises:
        ConfigurationError: If any table does not exist.
    """
    metadata = sa.MetaData()
    try:
        async with engine.connect() as conn:
            await conn.run_sync(metadata.reflect, only=list(dict.fromkeys(names)))
    except (InvalidRequestError, NoSuchTableError) as e:
        raise ConfigurationError(f"Cannot reflect tables {list(names)}: {e}") from e
    return {name: metadata.tables[name] for name in names}
