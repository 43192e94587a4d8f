"""Async database engine, session factory, and the keyed record store.

Provides a single engine per process with lazy initialization. The pipeline
never touches sessions directly: it goes through RecordStore, which exposes
only fetch-by-id, insert and update-by-id and turns every database failure,
including an unreachable server, into PersistenceError.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import inspect, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from citypages.config import settings
from citypages.core.errors import PersistenceError
from citypages.storage.models import TABLES, Base

logger = logging.getLogger(__name__)

_engine = None
_session_factory = None


def _get_engine():
    global _engine
    if _engine is None:
        connect_args: dict = {"timeout": 10}  # asyncpg connect timeout
        if settings.database_require_ssl:
            import ssl

            connect_args["ssl"] = ssl.create_default_context()
        _engine = create_async_engine(
            settings.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args=connect_args,
        )
    return _engine


async def init_db() -> None:
    """Create all tables if they don't exist."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def get_session() -> AsyncSession:
    """Get an async database session."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(_get_engine(), expire_on_commit=False)
    return _session_factory()


def _row_to_dict(row) -> dict:
    out = {}
    for attr in inspect(row).mapper.column_attrs:
        value = getattr(row, attr.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        out[attr.key] = value
    return out


def _model_for(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


# asyncpg raises plain OSError / TimeoutError when the server is unreachable;
# SQLAlchemy only wraps errors from an established connection.
DB_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class RecordStore:
    """Keyed persistence for city and job records."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str):
        """Session for one operation. Closing it rolls back anything uncommitted."""
        session = None
        try:
            session = await self._session_factory()
            yield session
        except DB_ERRORS as e:
            raise PersistenceError(f"Failed to {action}: {e!r}") from e
        finally:
            if session is not None:
                try:
                    await session.close()
                except DB_ERRORS as e:
                    logger.warning("Closing session after %s failed: %s", action, e)

    async def fetch_by_id(self, table: str, record_id: str) -> dict | None:
        model = _model_for(table)
        async with self._session(f"fetch {table}/{record_id}") as session:
            row = await session.get(model, record_id)
            return _row_to_dict(row) if row is not None else None

    async def insert(self, table: str, record: dict) -> dict:
        """Insert a record and return it as stored, including its generated id."""
        model = _model_for(table)
        async with self._session(f"insert into {table}") as session:
            row = model(**record)
            session.add(row)
            await session.commit()
            return _row_to_dict(row)

    async def update_by_id(self, table: str, record_id: str, values: dict) -> bool:
        """Apply a partial update. Returns False when no row has that id."""
        model = _model_for(table)
        async with self._session(f"update {table}/{record_id}") as session:
            result = await session.execute(
                update(model).where(model.id == record_id).values(**values)
            )
            await session.commit()
        if result.rowcount == 0:
            logger.warning("Update matched no rows in %s for id %s", table, record_id)
            return False
        return True
