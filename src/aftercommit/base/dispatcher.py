from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Optional, Union

Listener = Callable[..., Any]
EventKey = Union[str, type]


class Dispatcher(ABC):
    """
    Contract of an event dispatcher. The transactional layer decorates any
    implementation of it and forwards everything but the decision of when an
    event is delivered.
    """

    @abstractmethod
    def listen(
        self, events: Union[EventKey, Iterable[EventKey]], listener: Listener
    ) -> None:
        ...

    @abstractmethod
    def dispatch(
        self, event: Any, payload: Any = None, halt: bool = False
    ) -> Any:
        ...

    def until(self, event: Any, payload: Any = None) -> Any:
        """Dispatch an event until the first non-`None` response"""
        return self.dispatch(event, payload, halt=True)

    @abstractmethod
    def has_listeners(self, event: EventKey) -> bool:
        ...

    @abstractmethod
    def subscribe(self, subscriber: Any) -> None:
        ...

    @abstractmethod
    def forget(self, event: EventKey) -> None:
        ...

    @abstractmethod
    def push(self, event: str, payload: Optional[Any] = None) -> None:
        ...

    @abstractmethod
    def flush(self, event: str) -> None:
        ...

    @abstractmethod
    def forget_pushed(self) -> None:
        ...
