# santabot/database/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from santabot.errors import QueryFailed, StorageUnavailable

if TYPE_CHECKING:
    from santabot.database.session import Database


@asynccontextmanager
async def transactional(session: AsyncSession):
    """
    Safe transactional context for SQLAlchemy 2.x autobegin.

    - If a transaction is already active, use SAVEPOINT (begin_nested)
    - Otherwise, start a new transaction
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield
    else:
        async with session.begin():
            yield


@asynccontextmanager
async def unit_of_work(db: "Database") -> AsyncIterator[AsyncSession]:
    """
    One short-lived session + one transaction per logical operation.

    Commits when the block exits cleanly and rolls back otherwise.
    Driver/pool errors leave as StorageUnavailable or QueryFailed;
    domain errors raised inside the block pass through untouched.
    """
    try:
        async with db.session() as session:
            async with transactional(session):
                yield session
    except (PoolTimeoutError, DisconnectionError, InterfaceError, OperationalError) as e:
        raise StorageUnavailable(f"Database unavailable: {e}") from e
    except SQLAlchemyError as e:
        raise QueryFailed(f"Failed to run query: {e}") from e
