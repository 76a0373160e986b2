import pytest

from aftercommit import Delivery, EventRouter, TransactionalEvent
from aftercommit.exception import ConfigurationError
from aftercommit.transaction import (
    LIFECYCLE_NAMESPACE,
    TransactionCommitted,
    TransactionContext,
)


class ShipmentSent(TransactionalEvent):
    ...


@pytest.fixture
def active():
    context = TransactionContext("default")
    context.begin()
    return context


def test_idle_connection_delivers_immediately():
    router = EventRouter(["*"])

    assert router.classify(None, "foo") is Delivery.IMMEDIATE
    assert (
        router.classify(TransactionContext("default"), "foo")
        is Delivery.IMMEDIATE
    )


def test_transactional_patterns_defer(active):
    router = EventRouter(["app.events", "foo/*"])

    assert router.classify(active, "app.events.Foo") is Delivery.DEFERRED
    assert router.classify(active, "foo/bar") is Delivery.DEFERRED
    assert router.classify(active, "foo") is Delivery.IMMEDIATE
    assert router.classify(active, "billing.Paid") is Delivery.IMMEDIATE


def test_excluded_wins_over_transactional(active):
    router = EventRouter(["*"], ["sys.*", "foo/bar"])

    assert router.classify(active, "sys.internal") is Delivery.IMMEDIATE
    assert router.classify(active, "foo/bar") is Delivery.IMMEDIATE
    assert router.classify(active, "foo/zen") is Delivery.DEFERRED


def test_halt_is_always_immediate(active):
    router = EventRouter(["*"])

    assert router.classify(active, "foo", halt=True) is Delivery.IMMEDIATE
    assert (
        router.classify(active, ShipmentSent(), halt=True)
        is Delivery.IMMEDIATE
    )


def test_marker_events_ignore_patterns(active):
    router = EventRouter([], ["*"])

    assert router.classify(active, ShipmentSent()) is Delivery.DEFERRED
    assert router.classify(None, ShipmentSent()) is Delivery.IMMEDIATE


def test_lifecycle_events_are_always_excluded(active):
    router = EventRouter(["*"])
    router.set_excluded([])

    assert LIFECYCLE_NAMESPACE in router.excluded
    assert (
        router.classify(active, TransactionCommitted("default"))
        is Delivery.IMMEDIATE
    )


def test_lifecycle_namespace_is_not_duplicated():
    router = EventRouter(excluded=[LIFECYCLE_NAMESPACE, "sys."])

    assert router.excluded == [LIFECYCLE_NAMESPACE, "sys."]


def test_default_transactional_namespace():
    assert EventRouter().transactional == ["app.events"]


@pytest.mark.parametrize(
    "patterns", ["app.events", None, {"app.events": True}, ["ok", 3], [""]]
)
def test_malformed_patterns_fail_fast(patterns):
    router = EventRouter()

    with pytest.raises(ConfigurationError):
        router.set_transactional(patterns)
    with pytest.raises(ConfigurationError):
        router.set_excluded(patterns)
    with pytest.raises(ConfigurationError):
        EventRouter(patterns)

    assert router.transactional == ["app.events"]
