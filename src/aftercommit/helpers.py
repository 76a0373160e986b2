from typing import Any, Callable, Optional

from aftercommit.base.dispatcher import Dispatcher
from aftercommit.buffer import ConnectionRef, TransactionalDispatcher
from aftercommit.events import TransactionalClosureEvent
from aftercommit.exception import AfterCommitError
from aftercommit.registry import DispatcherRegistry


def transactional(
    callback: Callable[[], Any],
    dispatcher: Optional[Dispatcher] = None,
    *,
    connection: Optional[ConnectionRef] = None,
) -> None:
    """Run a callback once the current transaction commits, or right away
    when there is no transaction.

    Example:

    ```python
    from aftercommit import transactional

    with connection.transaction():
        user = create_user()
        transactional(lambda: send_welcome_email(user))
    ```

    Args:
        callback (Callable[[], Any]): The callback to run
        dispatcher (Dispatcher, optional): Dispatcher to use. Defaults to
            the one installed by `AfterCommit`.
        connection (Union[str, Any], optional): Connection whose transaction
            the callback waits for. Defaults to `None`.

    Raises:
        AfterCommitError: If there is no dispatcher to use
    """
    dispatcher = dispatcher or DispatcherRegistry.get()
    if dispatcher is None:
        raise AfterCommitError(
            "No dispatcher installed. Create an AfterCommit instance first"
        )

    event = TransactionalClosureEvent(callback)
    if isinstance(dispatcher, TransactionalDispatcher):
        dispatcher.dispatch(event, connection=connection)
    else:
        dispatcher.dispatch(event)
