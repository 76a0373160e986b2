from aftercommit.matcher import (
    PatternMatcher,
    event_name,
    matches,
    wildcard_match,
)


class OrderPlaced:
    ...


def test_prefix_matching():
    assert matches("app.events", "app.events.OrderPlaced")
    assert matches("app.events", "app.events")
    assert not matches("app.events", "billing.events.InvoicePaid")


def test_wildcard_matching_uses_full_identifier():
    assert matches("foo/*", "foo/bar")
    assert not matches("foo/*", "foo")
    assert matches("*", "anything.at.all")
    assert matches("*.created", "user.created")
    assert not matches("*.created", "user.created.twice")


def test_wildcard_does_not_fall_back_to_prefix():
    assert not matches("user.*.done", "user.x.done.later")


def test_event_name():
    assert event_name("user.created") == "user.created"
    assert event_name(OrderPlaced) == f"{__name__}.OrderPlaced"
    assert event_name(OrderPlaced()) == f"{__name__}.OrderPlaced"


def test_pattern_matcher_any():
    matcher = PatternMatcher(["sys.", "app.*"])

    assert matcher("sys.internal")
    assert matcher("app.events.foo")
    assert not matcher("billing")
    assert not PatternMatcher()("sys.internal")


def test_only_the_star_is_a_wildcard():
    assert matches("app.[internal].*", "app.[internal].created")
    assert not matches("app.[internal].*", "app.i.created")
    assert matches("user.?.*", "user.?.created")
    assert not matches("user.?.*", "user.x.created")
    assert not matches("app.*", "appxevents")
    assert wildcard_match("a*b", "a\nb")
