from __future__ import annotations

import logging
from typing import Any, Protocol

import asyncpg
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from query_insight.core.exceptions import QueryExecutionError

log = logging.getLogger("query_source")


class QuerySource(Protocol):
    async def execute(self, query: str) -> list[dict[str, Any]]: ...


def to_async_url(connection_url: str) -> str:
    """Map plain postgres URLs onto the asyncpg driver; other SQLAlchemy URLs pass through."""
    for prefix in ("postgresql://", "postgres://"):
        if connection_url.startswith(prefix):
            return "postgresql+asyncpg://" + connection_url[len(prefix):]
    return connection_url


class SqlQuerySource:
    """Run one read query per call. The engine lives for the call only; nothing is pooled across calls."""

    def __init__(self, connection_url: str, echo: bool = False):
        if not connection_url:
            raise ValueError("connection_url is required")
        self.connection_url = to_async_url(connection_url)
        self.echo = echo

    async def execute(self, query: str) -> list[dict[str, Any]]:
        engine = None
        try:
            engine = create_async_engine(self.connection_url, echo=self.echo)
            async with engine.connect() as conn:
                result = await conn.exec_driver_sql(query)
                if not result.returns_rows:
                    return []
                rows = [dict(r._mapping) for r in result]
        except (SQLAlchemyError, asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise QueryExecutionError(f"Query failed: {e}", query=query) from e
        finally:
            if engine is not None:
                await engine.dispose()
        log.info("Query returned %s rows", len(rows))
        return rows
