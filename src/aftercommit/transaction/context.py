from __future__ import annotations

import logging
from collections.abc import MutableMapping, MutableSequence, MutableSet
from copy import copy
from dataclasses import dataclass
from itertools import count
from threading import RLock
from typing import Any, Callable, List, Tuple

from .interfaces import TransactionError, TransactionState

logger = logging.getLogger(__name__)


@dataclass
class TransactionNode:
    """One nesting level. Counts the buffered events it is accountable for."""

    contributed: int = 0


@dataclass(frozen=True)
class PendingEvent:
    event: Any
    payload: Any
    sequence: int


def snapshot_payload(payload: Any) -> Any:
    """Shallow copy mutable containers so that later in-place changes by the
    caller do not leak into a buffered event"""
    if isinstance(payload, (MutableMapping, MutableSequence, MutableSet)):
        return copy(payload)
    return payload


class TransactionContext:
    """
    Buffered events of a single connection.

    Nesting is tracked with a stack of nodes over one flat log. The first
    `cursor` entries of the log are live; rolling back a level truncates the
    log by the number of entries that level is accountable for.
    """

    def __init__(self, connection: str):
        self.connection = connection
        self.lock = RLock()
        self._stack: List[TransactionNode] = []
        self._log: List[PendingEvent] = []
        self._cursor = 0
        self._sequence = count()
        self._flushing = False

    def __repr__(self) -> str:
        return (
            f"<TransactionContext {self.connection} "
            f"depth={self.depth} pending={self._cursor}>"
        )

    @property
    def state(self) -> TransactionState:
        """State of this context object.

        `FLUSHING` is only reported by a context that is held directly while
        it delivers a batch. `TransactionalDispatcher` detaches a context
        before flushing it, so the connection is already idle from the
        dispatcher's point of view during delivery.
        """
        if self._flushing:
            return TransactionState.FLUSHING
        if self._stack:
            return TransactionState.ACTIVE
        return TransactionState.IDLE

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def pending(self) -> Tuple[PendingEvent, ...]:
        return tuple(self._log[: self._cursor])

    def begin(self) -> None:
        self._stack.append(TransactionNode())
        logger.debug(
            "Transaction level %d started on %s", self.depth, self.connection
        )

    def append(self, event: Any, payload: Any = None) -> PendingEvent:
        if not self._stack:
            raise TransactionError(
                f"Cannot buffer an event on {self.connection} "
                "without an active transaction"
            )

        pending = PendingEvent(
            event, snapshot_payload(payload), next(self._sequence)
        )
        self._log.append(pending)
        self._cursor += 1
        self._stack[-1].contributed += 1
        return pending

    def commit(self) -> List[PendingEvent]:
        """Close the innermost level.

        Returns the events released for delivery, which is only ever
        non-empty when the outermost level commits. The context is already
        empty by the time the caller receives them.
        """
        if not self._stack:
            logger.debug(
                "Ignoring commit on %s without an active transaction",
                self.connection,
            )
            return []

        node = self._stack.pop()
        if self._stack:
            # A rollback of the parent must also discard what the committed
            # child buffered.
            self._stack[-1].contributed += node.contributed
            logger.debug(
                "Transaction level %d committed on %s, deferring %d events",
                self.depth + 1,
                self.connection,
                node.contributed,
            )
            return []

        batch = self._log[: self._cursor]
        self._reset()
        return batch

    def rollback(self) -> None:
        if not self._stack:
            logger.debug(
                "Ignoring rollback on %s without an active transaction",
                self.connection,
            )
            return

        node = self._stack.pop()
        if not self._stack:
            if self._cursor:
                logger.info(
                    "Discarded %d transactional events on %s",
                    self._cursor,
                    self.connection,
                )
            self._reset()
            return

        del self._log[self._cursor - node.contributed :]
        self._cursor -= node.contributed
        logger.debug(
            "Transaction level %d rolled back on %s, discarded %d events",
            self.depth + 1,
            self.connection,
            node.contributed,
        )

    def flush(
        self,
        batch: List[PendingEvent],
        deliver: Callable[[PendingEvent], Any],
    ) -> None:
        """Deliver a batch returned by `commit` in its original order.

        An error raised by `deliver` propagates and the rest of the batch is
        dropped.
        """
        self._flushing = True
        try:
            for pending in batch:
                deliver(pending)
        finally:
            self._flushing = False

    def _reset(self) -> None:
        self._log = []
        self._cursor = 0
