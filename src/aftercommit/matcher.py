import re
from functools import lru_cache
from inspect import isclass
from typing import Any, Iterable, Pattern

WILDCARD = "*"


def event_name(event: Any) -> str:
    """Resolve an event to the identifier used for routing and listening.

    Strings are used as is. Classes and event objects resolve to the dotted
    path of the class, eg: `app.events.OrderShipped`.
    """
    if isinstance(event, str):
        return event
    cls = event if isclass(event) else event.__class__
    return f"{cls.__module__}.{cls.__qualname__}"


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern[str]:
    # Only `*` is special, every other character matches itself
    return re.compile(
        ".*".join(re.escape(part) for part in pattern.split(WILDCARD)),
        re.DOTALL,
    )


def wildcard_match(pattern: str, identifier: str) -> bool:
    return _compile(pattern).fullmatch(identifier) is not None


def matches(pattern: str, identifier: str) -> bool:
    if WILDCARD in pattern:
        return wildcard_match(pattern, identifier)
    return identifier.startswith(pattern)


class PatternMatcher:
    """Match event identifiers against a list of glob or prefix patterns"""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns = tuple(patterns)

    def __call__(self, identifier: str) -> bool:
        return any(matches(pattern, identifier) for pattern in self.patterns)

    def __repr__(self) -> str:
        return f"<PatternMatcher {list(self.patterns)}>"
