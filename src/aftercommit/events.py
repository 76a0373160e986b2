from typing import Any, Callable


class TransactionalEvent:
    """Marker for events that must always wait for the enclosing
    transaction to commit, regardless of the configured patterns.

    Example:

    ```python
    from aftercommit.events import TransactionalEvent

    class SendWelcomeEmail(TransactionalEvent):
        def __init__(self, user_id: int):
            self.user_id = user_id
    ```
    """


class TransactionalClosureEvent(TransactionalEvent):
    """Wraps an arbitrary callback to be run once the transaction commits"""

    def __init__(self, callback: Callable[[], Any]):
        self.callback = callback

    def __call__(self) -> Any:
        return self.callback()


def run_closure(event: TransactionalClosureEvent) -> None:
    event()
