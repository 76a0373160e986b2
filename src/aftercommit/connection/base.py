from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Type

from aftercommit.base.dispatcher import Dispatcher
from aftercommit.transaction.events import TransactionEvent
from aftercommit.transaction.interfaces import TransactionError

logger = logging.getLogger(__name__)


class BaseConnection:
    """
    A transactional resource that raises lifecycle events on a dispatcher
    every time one of its transactions begins, commits or rolls back.
    """

    def __init__(
        self, name: str = "default", dispatcher: Optional[Dispatcher] = None
    ):
        self.name = name
        self.dispatcher = dispatcher
        self._level = 0
        self._silenced = False

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.name} level={self._level}>"

    @property
    def level(self) -> int:
        """Current transaction nesting level, `0` outside transactions"""
        return self._level

    @property
    def in_transaction(self) -> bool:
        return self._level > 0

    @contextmanager
    def without_events(self) -> Iterator[BaseConnection]:
        """Suppress lifecycle events within the block"""
        previous = self._silenced
        self._silenced = True
        try:
            yield self
        finally:
            self._silenced = previous

    def _fire(self, event_class: Type[TransactionEvent]) -> None:
        if self._silenced or self.dispatcher is None:
            logger.debug(
                "Not raising %s on %s", event_class.__name__, self.name
            )
            return
        self.dispatcher.dispatch(event_class(self.name))

    def _ensure_active(self, action: str) -> None:
        if self._level < 1:
            raise TransactionError(
                f"Cannot {action} on {self.name}, no transaction has begun"
            )
