"""
Per-connection transaction tracking for buffered events.
"""

from .context import PendingEvent, TransactionContext, TransactionNode
from .events import (
    LIFECYCLE_NAMESPACE,
    TransactionBeginning,
    TransactionCommitted,
    TransactionEvent,
    TransactionRolledBack,
)
from .interfaces import TransactionError, TransactionState

__all__ = [
    "LIFECYCLE_NAMESPACE",
    "PendingEvent",
    "TransactionBeginning",
    "TransactionCommitted",
    "TransactionContext",
    "TransactionError",
    "TransactionEvent",
    "TransactionNode",
    "TransactionRolledBack",
    "TransactionState",
]
