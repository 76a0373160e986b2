"""
Lifecycle notifications raised by connections.

Every event in this module is excluded from transactional buffering. They
are the control signals that drive the buffer itself.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TransactionEvent:
    connection: str


@dataclass(frozen=True)
class TransactionBeginning(TransactionEvent):
    ...


@dataclass(frozen=True)
class TransactionCommitted(TransactionEvent):
    ...


@dataclass(frozen=True)
class TransactionRolledBack(TransactionEvent):
    ...


LIFECYCLE_NAMESPACE = __name__
