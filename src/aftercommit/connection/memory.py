from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from aftercommit.transaction.events import (
    TransactionBeginning,
    TransactionCommitted,
    TransactionRolledBack,
)

from .base import BaseConnection


class Connection(BaseConnection):
    """A connection that only keeps track of its transaction level.

    Useful for units of work that are not backed by a database, and for
    tests.

    Example:

    ```python
    connection = Connection("default", dispatcher)

    with connection.transaction():
        dispatcher.dispatch(OrderPlaced(order_id))
    ```
    """

    def begin(self) -> None:
        self._level += 1
        self._fire(TransactionBeginning)

    def commit(self) -> None:
        self._ensure_active("commit")
        self._level -= 1
        self._fire(TransactionCommitted)

    def rollback(self) -> None:
        self._ensure_active("rollback")
        self._level -= 1
        self._fire(TransactionRolledBack)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Commit when the block exits normally, rollback on an error. The
        original error is always re-raised."""
        self.begin()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()
