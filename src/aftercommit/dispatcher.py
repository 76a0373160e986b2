from __future__ import annotations

from collections import defaultdict
from inspect import isclass
from typing import (
    Any,
    DefaultDict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)

from aftercommit.base.dispatcher import Dispatcher, EventKey, Listener
from aftercommit.matcher import WILDCARD, event_name, wildcard_match

PUSHED_SUFFIX = "_pushed"


class EventDispatcher(Dispatcher):
    """Synchronous, in-process dispatcher.

    Listeners on a plain name (or class) receive the event object for object
    events, or the payload spread as positional arguments for string events.
    Listeners registered on a wildcard pattern, eg: `app.events.*`, receive
    the event name and the list of arguments instead.

    Example:

    ```python
    dispatcher = EventDispatcher()
    dispatcher.listen("user.created", lambda user_id: print(user_id))
    dispatcher.dispatch("user.created", [1])
    ```
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)
        self._wildcards: DefaultDict[str, List[Listener]] = defaultdict(list)

    def listen(
        self, events: Union[EventKey, Iterable[EventKey]], listener: Listener
    ) -> None:
        if isinstance(events, str) or isclass(events):
            events = [events]  # type: ignore
        for event in events:  # type: ignore
            name = event_name(event)
            if WILDCARD in name:
                self._wildcards[name].append(listener)
            else:
                self._listeners[name].append(listener)

    def dispatch(
        self, event: Any, payload: Any = None, halt: bool = False
    ) -> Any:
        """Call the listeners of an event

        Args:
            event (Any): Event name or event object
            payload (Any, optional): Arguments for listeners of a string
                event. Ignored for event objects. Defaults to `None`.
            halt (bool, optional): Stop at, and return, the first response
                that is not `None`. Defaults to `False`.

        Returns:
            Any: The list of responses, or a single response when halting
        """
        name = event_name(event)
        arguments = self._arguments(event, payload)
        responses = []

        for listener, args in self._prepare(name, arguments):
            response = listener(*args)
            if halt and response is not None:
                return response
            if response is False:
                break
            responses.append(response)

        return None if halt else responses

    def has_listeners(self, event: EventKey) -> bool:
        name = event_name(event)
        if self._listeners.get(name):
            return True
        return any(
            wildcard_match(pattern, name) and listeners
            for pattern, listeners in self._wildcards.items()
        )

    def subscribe(self, subscriber: Any) -> None:
        if isclass(subscriber):
            subscriber = subscriber()
        subscriber.subscribe(self)

    def forget(self, event: EventKey) -> None:
        name = event_name(event)
        if WILDCARD in name:
            self._wildcards.pop(name, None)
        else:
            self._listeners.pop(name, None)

    def push(self, event: str, payload: Optional[Any] = None) -> None:
        def pushed(*_):
            self.dispatch(event, payload)

        self.listen(f"{event}{PUSHED_SUFFIX}", pushed)

    def flush(self, event: str) -> None:
        self.dispatch(f"{event}{PUSHED_SUFFIX}")

    def forget_pushed(self) -> None:
        for name in list(self._listeners):
            if name.endswith(PUSHED_SUFFIX):
                del self._listeners[name]

    def _prepare(
        self, name: str, arguments: Tuple[Any, ...]
    ) -> List[Tuple[Listener, Tuple[Any, ...]]]:
        prepared = [
            (listener, arguments) for listener in self._listeners.get(name, ())
        ]
        for pattern, listeners in list(self._wildcards.items()):
            if wildcard_match(pattern, name):
                prepared.extend(
                    (listener, (name, list(arguments)))
                    for listener in listeners
                )
        return prepared

    @staticmethod
    def _arguments(event: Any, payload: Any) -> Tuple[Any, ...]:
        if not isinstance(event, str):
            return (event,)
        if payload is None:
            return ()
        if isinstance(payload, (list, tuple)):
            return tuple(payload)
        return (payload,)
