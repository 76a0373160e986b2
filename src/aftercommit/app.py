import logging
from dataclasses import replace
from typing import Optional, Sequence

from aftercommit.base.dispatcher import Dispatcher
from aftercommit.buffer import TransactionalDispatcher
from aftercommit.config import TransactionalEventsConfig
from aftercommit.connection.memory import Connection
from aftercommit.dispatcher import EventDispatcher
from aftercommit.events import TransactionalClosureEvent, run_closure
from aftercommit.exception import AfterCommitError
from aftercommit.registry import ConnectionRegistry, DispatcherRegistry

logger = logging.getLogger(__name__)


class AfterCommit:
    """Main entryway for installing transactional events in an application.

    It should be instantiated once, when the application starts. The
    resulting dispatcher is registered globally and can be fetched with
    `AfterCommit.get()`.

    Example:

    ```python
    app = AfterCommit(transactional=["app.events", "billing.*"])
    connection = app.connection()

    with connection.transaction():
        app.dispatcher.dispatch(InvoicePaid(invoice_id))
    ```
    """

    def __init__(
        self,
        *,
        dispatcher: Optional[Dispatcher] = None,
        config: Optional[TransactionalEventsConfig] = None,
        enabled: Optional[bool] = None,
        transactional: Optional[Sequence[str]] = None,
        excluded: Optional[Sequence[str]] = None,
        default_connection: str = "default",
    ):
        """Initializer for AfterCommit instance

        Keyword settings take precedence over the values of `config`.

        Args:
            dispatcher (Dispatcher, optional): Dispatcher that calls the
                listeners. Defaults to a new `EventDispatcher`.
            config (TransactionalEventsConfig, optional): Settings.
                Defaults to `None`.
            enabled (bool, optional): Whether to buffer events inside
                transactions. Defaults to `None`.
            transactional (Sequence[str], optional): Patterns of buffered
                events. Defaults to `None`.
            excluded (Sequence[str], optional): Patterns of events that are
                never buffered. Defaults to `None`.
            default_connection (str, optional): Connection name used when an
                event is dispatched without one. Defaults to `"default"`.

        Raises:
            ConfigurationError: If the settings are malformed
        """
        config = config or TransactionalEventsConfig()
        overrides = {
            key: value
            for key, value in (
                ("enabled", enabled),
                ("transactional", transactional),
                ("excluded", excluded),
            )
            if value is not None
        }
        if overrides:
            config = replace(config, **overrides)

        self.config = config
        self.default_connection = default_connection
        inner = dispatcher or EventDispatcher()

        if config.enabled:
            self.dispatcher: Dispatcher = TransactionalDispatcher(
                inner,
                transactional=config.transactional,
                excluded=config.excluded,
                default_connection=default_connection,
            )
        else:
            logger.info("Transactional events are disabled")
            self.dispatcher = inner

        self.dispatcher.listen(TransactionalClosureEvent, run_closure)
        DispatcherRegistry.set(self.dispatcher)
        # Registered connections raise events on the previous dispatcher
        ConnectionRegistry.reset()

    @staticmethod
    def get() -> Dispatcher:
        """Fetch the installed dispatcher

        Raises:
            AfterCommitError: If no `AfterCommit` instance has been created

        Returns:
            Dispatcher: The dispatcher
        """
        dispatcher = DispatcherRegistry.get()
        if dispatcher is None:
            raise AfterCommitError("AfterCommit has not been initialized")
        return dispatcher

    def connection(self, name: Optional[str] = None) -> Connection:
        """Fetch, or create, an in-memory connection bound to the installed
        dispatcher

        Args:
            name (str, optional): Name of the connection. Defaults to the
                default connection.

        Returns:
            Connection: The connection
        """
        name = name or self.default_connection
        registry = ConnectionRegistry()
        if name not in registry:
            registry.register(Connection(name, self.dispatcher))
        return registry[name]

    def reset_registry(self):
        """Forget the installed dispatcher and connections"""
        DispatcherRegistry.reset()
        ConnectionRegistry.reset()
