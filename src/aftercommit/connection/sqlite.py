from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence

from aftercommit.base.dispatcher import Dispatcher
from aftercommit.exception import AfterCommitError
from aftercommit.transaction.events import (
    TransactionBeginning,
    TransactionCommitted,
    TransactionRolledBack,
)
from aftercommit.transaction.interfaces import TransactionError

from .base import BaseConnection

try:
    import aiosqlite

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False

logger = logging.getLogger(__name__)


class SQLiteConnection(BaseConnection):
    """
    A SQLite connection whose transactions raise lifecycle events.

    Nested transactions are implemented with savepoints named after their
    level. Events are raised only once the statement succeeded, so a failed
    `COMMIT` never releases buffered events.

    Example:

    ```python
    async with SQLiteConnection("app.db", dispatcher=dispatcher) as conn:
        async with conn.transaction():
            await conn.execute("INSERT INTO users (name) VALUES (?)", ["Ada"])
            dispatcher.dispatch(UserCreated("Ada"), connection=conn)
    ```
    """

    def __init__(
        self,
        db_path: str = ":memory:",
        *,
        name: str = "sqlite",
        dispatcher: Optional[Dispatcher] = None,
    ):
        if not AIOSQLITE_ENABLED:
            raise AfterCommitError(
                "SQLite driver not found. Try reinstalling aftercommit: "
                "pip install aftercommit[sqlite]"
            )
        super().__init__(name, dispatcher)
        self._db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        """Open the connection. Transactions are controlled explicitly."""
        self._db = await aiosqlite.connect(self._db_path, isolation_level=None)
        self._db.row_factory = aiosqlite.Row
        logger.debug("Opened %s on %s", self.name, self._db_path)

    async def close(self) -> None:
        """Close the connection. SQLite discards any open transaction, so a
        rollback is raised for every level still open."""
        if self._db is None:
            return
        await self._db.close()
        self._db = None
        if self._level:
            logger.info(
                "Closed %s with %d open transaction levels",
                self.name,
                self._level,
            )
        while self._level > 0:
            self._level -= 1
            self._fire(TransactionRolledBack)

    async def __aenter__(self) -> SQLiteConnection:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise TransactionError(f"Connection {self.name} is not open")
        return self._db

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of affected rows"""
        cursor = await self.db.execute(sql, params)
        rowcount = cursor.rowcount
        await cursor.close()
        return rowcount

    async def fetchall(
        self, sql: str, params: Sequence[Any] = ()
    ) -> List[aiosqlite.Row]:
        async with self.db.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    async def begin(self) -> None:
        if self._level == 0:
            await self.execute("BEGIN")
        else:
            await self.execute(f"SAVEPOINT {self._savepoint(self._level + 1)}")
        self._level += 1
        logger.debug("Began level %d on %s", self._level, self.name)
        self._fire(TransactionBeginning)

    async def commit(self) -> None:
        self._ensure_active("commit")
        if self._level == 1:
            await self.execute("COMMIT")
        else:
            await self.execute(
                f"RELEASE SAVEPOINT {self._savepoint(self._level)}"
            )
        self._level -= 1
        logger.debug("Committed level %d on %s", self._level + 1, self.name)
        self._fire(TransactionCommitted)

    async def rollback(self) -> None:
        self._ensure_active("rollback")
        if self._level == 1:
            await self.execute("ROLLBACK")
        else:
            savepoint = self._savepoint(self._level)
            await self.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
            await self.execute(f"RELEASE SAVEPOINT {savepoint}")
        self._level -= 1
        logger.debug("Rolled back level %d on %s", self._level + 1, self.name)
        self._fire(TransactionRolledBack)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteConnection]:
        await self.begin()
        try:
            yield self
        except Exception:
            await self.rollback()
            raise
        await self.commit()

    @staticmethod
    def _savepoint(level: int) -> str:
        return f"trans{level}"
