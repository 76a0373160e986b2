from unittest.mock import Mock

import pytest

from aftercommit import (
    AfterCommit,
    EventDispatcher,
    TransactionalDispatcher,
    TransactionalEvent,
    TransactionalEventsConfig,
    transactional,
)
from aftercommit.exception import AfterCommitError, ConfigurationError
from aftercommit.registry import ConnectionRegistry
from aftercommit.testing import database_transactions


class Audit(TransactionalEvent):
    ...


def test_installs_transactional_dispatcher():
    app = AfterCommit()

    assert isinstance(app.dispatcher, TransactionalDispatcher)
    assert AfterCommit.get() is app.dispatcher
    assert app.dispatcher.router.transactional == ["app.events"]


def test_get_before_install():
    with pytest.raises(AfterCommitError):
        AfterCommit.get()


def test_keyword_settings_override_config():
    config = TransactionalEventsConfig(transactional=["billing"])

    app = AfterCommit(config=config, excluded=["billing.audit"])

    assert app.config.transactional == ["billing"]
    assert app.config.excluded == ["billing.audit"]
    assert "billing.audit" in app.dispatcher.router.excluded


def test_disabled_uses_plain_dispatcher():
    events = EventDispatcher()
    app = AfterCommit(dispatcher=events, enabled=False)
    connection = app.connection()
    fired = []
    events.listen("app.events.foo", lambda: fired.append("foo"))

    with connection.transaction():
        app.dispatcher.dispatch("app.events.foo")
        assert fired == ["foo"]

    assert app.dispatcher is events


def test_connections_are_registered_once():
    app = AfterCommit(default_connection="primary")

    connection = app.connection()

    assert connection.name == "primary"
    assert app.connection("primary") is connection
    assert app.connection("replica") is not connection
    assert set(ConnectionRegistry()) == {"primary", "replica"}


def test_transactional_helper_waits_for_commit():
    app = AfterCommit()
    connection = app.connection()
    callback = Mock()

    with connection.transaction():
        transactional(callback)
        callback.assert_not_called()

    callback.assert_called_once_with()


def test_transactional_helper_runs_right_away_without_transaction():
    AfterCommit()
    callback = Mock()

    transactional(callback)

    callback.assert_called_once_with()


def test_transactional_helper_is_dropped_on_rollback():
    app = AfterCommit()
    connection = app.connection()
    callback = Mock()

    with pytest.raises(RuntimeError):
        with connection.transaction():
            transactional(callback)
            raise RuntimeError("abort")

    callback.assert_not_called()


def test_transactional_helper_on_named_connection():
    app = AfterCommit()
    reporting = app.connection("reporting")
    callback = Mock()

    reporting.begin()
    transactional(callback, connection="reporting")
    transactional(callback)
    assert callback.call_count == 1

    reporting.commit()
    assert callback.call_count == 2


def test_transactional_helper_with_plain_dispatcher():
    app = AfterCommit(enabled=False)
    callback = Mock()

    transactional(callback, app.dispatcher)

    callback.assert_called_once_with()


def test_transactional_helper_requires_dispatcher():
    with pytest.raises(AfterCommitError):
        transactional(Mock())


def test_marker_events_ignore_patterns():
    app = AfterCommit(transactional=[])
    connection = app.connection()
    received = []
    app.dispatcher.listen(Audit, received.append)

    with connection.transaction():
        app.dispatcher.dispatch(Audit())
        assert received == []

    assert len(received) == 1


def test_database_transactions_harness():
    app = AfterCommit()
    connection = app.connection()
    fired = []
    app.dispatcher.listen("app.events.foo", lambda: fired.append("foo"))

    with database_transactions(connection):
        assert connection.level == 1
        assert app.dispatcher.depth(connection) == 0

        with connection.transaction():
            app.dispatcher.dispatch("app.events.foo")
        assert fired == ["foo"]

    assert connection.level == 0
    assert app.dispatcher.connections == []


def test_config_from_mapping():
    config = TransactionalEventsConfig.from_mapping(
        {"enabled": False, "excluded": ["app.events.audit"]}
    )

    assert config.enabled is False
    assert config.transactional == ["app.events"]
    assert config.excluded == ["app.events.audit"]


@pytest.mark.parametrize(
    "mapping",
    [
        {"enable": True},
        {"enabled": "yes"},
        {"transactional": "app.events"},
        {"excluded": [None]},
    ],
)
def test_malformed_config_fails_fast(mapping):
    with pytest.raises(ConfigurationError):
        TransactionalEventsConfig.from_mapping(mapping)


def test_malformed_keyword_settings_fail_fast():
    with pytest.raises(ConfigurationError):
        AfterCommit(transactional="app.events")


def test_new_install_binds_fresh_connections():
    first = AfterCommit()
    stale = first.connection()
    second = AfterCommit()
    fired = []
    second.dispatcher.listen("app.events.foo", lambda: fired.append("foo"))

    connection = second.connection()
    with connection.transaction():
        second.dispatcher.dispatch("app.events.foo")
        assert fired == []

    assert connection is not stale
    assert connection.dispatcher is second.dispatcher
    assert fired == ["foo"]
