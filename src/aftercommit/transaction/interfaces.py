from enum import Enum

from aftercommit.exception import AfterCommitError


class TransactionState(Enum):
    """States of a per-connection transaction context"""

    IDLE = "idle"
    ACTIVE = "active"
    FLUSHING = "flushing"


class TransactionError(AfterCommitError):
    """Raised when a connection's transaction lifecycle is misused"""

    pass
