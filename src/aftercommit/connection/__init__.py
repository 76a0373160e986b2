from .base import BaseConnection
from .memory import Connection
from .sqlite import SQLiteConnection

__all__ = ("BaseConnection", "Connection", "SQLiteConnection")
