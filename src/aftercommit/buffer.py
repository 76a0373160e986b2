from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from threading import RLock
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from aftercommit.base.dispatcher import Dispatcher, EventKey, Listener
from aftercommit.router import DEFAULT_TRANSACTIONAL, Delivery, EventRouter
from aftercommit.transaction.context import PendingEvent, TransactionContext
from aftercommit.transaction.events import (
    TransactionBeginning,
    TransactionCommitted,
    TransactionRolledBack,
)
from aftercommit.transaction.interfaces import TransactionState

logger = logging.getLogger(__name__)

ConnectionRef = Union[str, Any]


class TransactionalDispatcher(Dispatcher):
    """
    Decorates a dispatcher so that events dispatched inside a transaction
    are held back until the outermost transaction of their connection
    commits, and dropped if it rolls back.

    Example:

    ```python
    dispatcher = TransactionalDispatcher(EventDispatcher())
    connection = Connection("default", dispatcher)

    with connection.transaction():
        dispatcher.dispatch("app.events.order_placed", [order_id])
    # listeners of app.events.order_placed are called here
    ```
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        transactional: Sequence[str] = DEFAULT_TRANSACTIONAL,
        excluded: Sequence[str] = (),
        default_connection: str = "default",
    ):
        """Initializer for the transactional layer

        Args:
            dispatcher (Dispatcher): The dispatcher that calls listeners
            transactional (Sequence[str], optional): Patterns of events that
                are buffered inside transactions.
                Defaults to `("app.events",)`.
            excluded (Sequence[str], optional): Patterns of events that are
                never buffered. The transaction lifecycle events are always
                excluded. Defaults to `()`.
            default_connection (str, optional): Connection that events are
                dispatched on when none is given. Defaults to `"default"`.
        """
        self._dispatcher = dispatcher
        self._router = EventRouter(transactional, excluded)
        self.default_connection = default_connection
        self._contexts: Dict[str, TransactionContext] = {}
        self._lock = RLock()
        self._connection: ContextVar[Optional[str]] = ContextVar(
            "connection", default=None
        )
        self._set_up_listeners()

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def router(self) -> EventRouter:
        return self._router

    def dispatch(
        self,
        event: Any,
        payload: Any = None,
        halt: bool = False,
        *,
        connection: Optional[ConnectionRef] = None,
    ) -> Any:
        """Deliver an event now, or buffer it until its connection commits

        Args:
            event (Any): Event name or event object
            payload (Any, optional): Payload for listeners of a string event.
                Mutable containers are copied when the event is buffered.
                Defaults to `None`.
            halt (bool, optional): Return the first response that is not
                `None`. Such events are always delivered immediately.
                Defaults to `False`.
            connection (Union[str, Any], optional): Connection name, or an
                object with a `name`. Defaults to the connection set by
                `using`, then to `default_connection`.

        Returns:
            Any: The response of the dispatcher, `None` when buffered
        """
        name = self._resolve(connection)
        context = self._context(name)

        if context is not None:
            with context.lock:
                delivery = self._router.classify(context, event, halt)
                if delivery is Delivery.DEFERRED:
                    pending = context.append(event, payload)
                    logger.debug(
                        "Buffered event #%d on %s until commit",
                        pending.sequence,
                        name,
                    )
                    return None

        return self._dispatcher.dispatch(event, payload, halt)

    def until(
        self,
        event: Any,
        payload: Any = None,
        *,
        connection: Optional[ConnectionRef] = None,
    ) -> Any:
        return self.dispatch(event, payload, halt=True, connection=connection)

    def on_begin(self, connection: Optional[ConnectionRef] = None) -> None:
        name = self._resolve(connection)
        context = self._context(name, create=True)
        with context.lock:
            context.begin()

    def on_commit(self, connection: Optional[ConnectionRef] = None) -> None:
        name = self._resolve(connection)
        context = self._context(name)
        if context is None:
            logger.debug(
                "Ignoring commit on %s without an active transaction", name
            )
            return

        with context.lock:
            batch = context.commit()
        self._evict(context)

        if batch:
            logger.info(
                "Dispatching %d transactional events on %s", len(batch), name
            )
            context.flush(batch, self._deliver)

    def on_rollback(self, connection: Optional[ConnectionRef] = None) -> None:
        name = self._resolve(connection)
        context = self._context(name)
        if context is None:
            logger.debug(
                "Ignoring rollback on %s without an active transaction", name
            )
            return

        with context.lock:
            context.rollback()
        self._evict(context)

    def set_transactional_events(self, patterns: Sequence[str]) -> None:
        self._router.set_transactional(patterns)

    def set_excluded_events(self, patterns: Sequence[str]) -> None:
        self._router.set_excluded(patterns)

    @contextmanager
    def using(self, connection: ConnectionRef) -> Iterator[None]:
        """Dispatch events on the given connection within the block"""
        token = self._connection.set(self._resolve(connection))
        try:
            yield
        finally:
            self._connection.reset(token)

    def pending(
        self, connection: Optional[ConnectionRef] = None
    ) -> Tuple[PendingEvent, ...]:
        context = self._context(self._resolve(connection))
        if context is None:
            return ()
        with context.lock:
            return context.pending

    def depth(self, connection: Optional[ConnectionRef] = None) -> int:
        context = self._context(self._resolve(connection))
        return 0 if context is None else context.depth

    @property
    def connections(self) -> List[str]:
        """Names of the connections with an open transaction"""
        with self._lock:
            return list(self._contexts)

    def listen(
        self, events: Union[EventKey, Iterable[EventKey]], listener: Listener
    ) -> None:
        self._dispatcher.listen(events, listener)

    def has_listeners(self, event: EventKey) -> bool:
        return self._dispatcher.has_listeners(event)

    def subscribe(self, subscriber: Any) -> None:
        self._dispatcher.subscribe(subscriber)

    def forget(self, event: EventKey) -> None:
        self._dispatcher.forget(event)

    def push(self, event: str, payload: Optional[Any] = None) -> None:
        self._dispatcher.push(event, payload)

    def flush(self, event: str) -> None:
        self._dispatcher.flush(event)

    def forget_pushed(self) -> None:
        self._dispatcher.forget_pushed()

    def _deliver(self, pending: PendingEvent) -> None:
        self._dispatcher.dispatch(pending.event, pending.payload)

    def _resolve(self, connection: Optional[ConnectionRef]) -> str:
        if connection is None:
            connection = self._connection.get() or self.default_connection
        return connection if isinstance(connection, str) else connection.name

    def _context(
        self, name: str, create: bool = False
    ) -> Optional[TransactionContext]:
        with self._lock:
            context = self._contexts.get(name)
            if context is None and create:
                context = self._contexts[name] = TransactionContext(name)
            return context

    def _evict(self, context: TransactionContext) -> None:
        with self._lock, context.lock:
            if (
                context.state is TransactionState.IDLE
                and self._contexts.get(context.connection) is context
            ):
                del self._contexts[context.connection]

    def _set_up_listeners(self) -> None:
        self._dispatcher.listen(
            TransactionBeginning, lambda event: self.on_begin(event.connection)
        )
        self._dispatcher.listen(
            TransactionCommitted,
            lambda event: self.on_commit(event.connection),
        )
        self._dispatcher.listen(
            TransactionRolledBack,
            lambda event: self.on_rollback(event.connection),
        )
