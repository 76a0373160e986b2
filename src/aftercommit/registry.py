from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from aftercommit.base.dispatcher import Dispatcher
    from aftercommit.connection.base import BaseConnection


class DispatcherRegistry:
    """
    Holds the dispatcher installed by `AfterCommit` so that helpers can be
    used anywhere in an application without passing it around.
    """

    _singleton = None
    _dispatcher: Optional[Dispatcher]

    def __new__(cls, *args, **kwargs):
        if cls._singleton is None:
            cls.reset()
        return cls._singleton

    @classmethod
    def set(cls, dispatcher: Dispatcher) -> None:
        cls()._dispatcher = dispatcher

    @classmethod
    def get(cls) -> Optional[Dispatcher]:
        return cls()._dispatcher

    @classmethod
    def reset(cls):
        cls._singleton = super().__new__(cls)
        cls._singleton._dispatcher = None


class ConnectionRegistry(dict):
    _singleton = None

    def __new__(cls, *args, **kwargs):
        if cls._singleton is None:
            cls.reset()
        return cls._singleton

    def register(self, connection: BaseConnection) -> None:
        self[connection.name] = connection

    @classmethod
    def reset(cls):
        cls._singleton = super().__new__(cls)  # type: ignore
