from typing import Any, List, Tuple

import pytest

from aftercommit import Connection, EventDispatcher, TransactionalDispatcher
from aftercommit.registry import ConnectionRegistry, DispatcherRegistry


class Recorder:
    """Listener that remembers every call it receives"""

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []

    def __call__(self, *args):
        self.calls.append(args)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture(autouse=True)
def reset_registry():
    DispatcherRegistry.reset()
    ConnectionRegistry.reset()


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def dispatcher(events):
    return TransactionalDispatcher(events, transactional=["*"])


@pytest.fixture
def connection(dispatcher):
    return Connection("default", dispatcher)


@pytest.fixture
def other_connection(dispatcher):
    return Connection("other", dispatcher)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def listen(dispatcher):
    def _listen(event):
        listener = Recorder()
        dispatcher.listen(event, listener)
        return listener

    return _listen
