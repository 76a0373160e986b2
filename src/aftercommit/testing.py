"""
Helpers for wrapping tests in a transaction that is rolled back afterwards.

The surrounding transaction is opened and rolled back without raising
lifecycle events, so transactions opened by the code under test are seen as
outermost ones and release their events when they commit.
"""

from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Tuple

from aftercommit.connection.memory import Connection
from aftercommit.connection.sqlite import SQLiteConnection


@contextmanager
def database_transactions(
    *connections: Connection,
) -> Iterator[Tuple[Connection, ...]]:
    for connection in connections:
        with connection.without_events():
            connection.begin()
    try:
        yield connections
    finally:
        for connection in reversed(connections):
            with connection.without_events():
                connection.rollback()


@asynccontextmanager
async def async_database_transactions(
    *connections: SQLiteConnection,
) -> AsyncIterator[Tuple[SQLiteConnection, ...]]:
    for connection in connections:
        with connection.without_events():
            await connection.begin()
    try:
        yield connections
    finally:
        for connection in reversed(connections):
            with connection.without_events():
                await connection.rollback()
