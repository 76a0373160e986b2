from importlib.metadata import version

from .app import AfterCommit
from .base.dispatcher import Dispatcher
from .buffer import TransactionalDispatcher
from .config import TransactionalEventsConfig
from .connection import BaseConnection, Connection, SQLiteConnection
from .dispatcher import EventDispatcher
from .events import TransactionalClosureEvent, TransactionalEvent
from .helpers import transactional
from .router import Delivery, EventRouter

__version__ = version("aftercommit")

__all__ = (
    "transactional",
    "AfterCommit",
    "BaseConnection",
    "Connection",
    "Delivery",
    "Dispatcher",
    "EventDispatcher",
    "EventRouter",
    "SQLiteConnection",
    "TransactionalClosureEvent",
    "TransactionalDispatcher",
    "TransactionalEvent",
    "TransactionalEventsConfig",
)
