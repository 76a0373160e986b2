from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, List, Optional, Sequence

from aftercommit.events import TransactionalEvent
from aftercommit.exception import ConfigurationError
from aftercommit.matcher import PatternMatcher, event_name
from aftercommit.transaction.context import TransactionContext
from aftercommit.transaction.events import LIFECYCLE_NAMESPACE

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTIONAL = ("app.events",)


class Delivery(Enum):
    IMMEDIATE = auto()
    DEFERRED = auto()


def validate_patterns(patterns: Any, kind: str) -> List[str]:
    if isinstance(patterns, str) or not isinstance(patterns, (list, tuple)):
        raise ConfigurationError(
            f"{kind} events must be a list of patterns, "
            f"got {type(patterns).__name__}"
        )
    for pattern in patterns:
        if not isinstance(pattern, str) or not pattern:
            raise ConfigurationError(
                f"{kind} events must be non-empty strings, got {pattern!r}"
            )
    return list(patterns)


class EventRouter:
    """Decide whether an event is delivered now or after the commit of the
    transaction it was dispatched in"""

    def __init__(
        self,
        transactional: Sequence[str] = DEFAULT_TRANSACTIONAL,
        excluded: Sequence[str] = (),
    ):
        self.set_transactional(transactional)
        self.set_excluded(excluded)

    @property
    def transactional(self) -> List[str]:
        return list(self._transactional.patterns)

    @property
    def excluded(self) -> List[str]:
        return list(self._excluded.patterns)

    def set_transactional(self, patterns: Sequence[str]) -> None:
        self._transactional = PatternMatcher(
            validate_patterns(patterns, "Transactional")
        )

    def set_excluded(self, patterns: Sequence[str]) -> None:
        patterns = validate_patterns(patterns, "Excluded")
        self._excluded = PatternMatcher(
            [LIFECYCLE_NAMESPACE]
            + [pattern for pattern in patterns if pattern != LIFECYCLE_NAMESPACE]
        )

    def classify(
        self,
        context: Optional[TransactionContext],
        event: Any,
        halt: bool = False,
    ) -> Delivery:
        """Classify an event dispatched on a connection

        Args:
            context (TransactionContext, optional): State of the connection,
                `None` when it has never begun a transaction
            event (Any): Event name or event object
            halt (bool, optional): Whether the caller waits for a response.
                Defaults to `False`.

        Returns:
            Delivery: When the event must be delivered
        """
        if halt:
            return Delivery.IMMEDIATE

        active = context is not None and context.depth > 0

        if isinstance(event, TransactionalEvent):
            return Delivery.DEFERRED if active else Delivery.IMMEDIATE

        if not active:
            return Delivery.IMMEDIATE

        name = event_name(event)
        if self._excluded(name):
            logger.debug("Event %s is excluded from transactions", name)
            return Delivery.IMMEDIATE
        if self._transactional(name):
            return Delivery.DEFERRED
        return Delivery.IMMEDIATE
