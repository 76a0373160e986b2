from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, List, Mapping

from aftercommit.exception import ConfigurationError
from aftercommit.router import DEFAULT_TRANSACTIONAL, validate_patterns


@dataclass
class TransactionalEventsConfig:
    """Settings of the transactional layer

    Args:
        enabled (bool, optional): Whether events are buffered inside
            transactions at all. Defaults to `True`.
        transactional (List[str], optional): Patterns of events that wait
            for the commit. Defaults to `["app.events"]`.
        excluded (List[str], optional): Patterns of events that are always
            dispatched immediately, on top of the transaction lifecycle
            events. Defaults to `[]`.

    Raises:
        ConfigurationError: If any of the settings is malformed
    """

    enabled: bool = True
    transactional: List[str] = field(
        default_factory=lambda: list(DEFAULT_TRANSACTIONAL)
    )
    excluded: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.enabled, bool):
            raise ConfigurationError(
                f"enabled must be a boolean, got {self.enabled!r}"
            )
        self.transactional = validate_patterns(
            self.transactional, "Transactional"
        )
        self.excluded = validate_patterns(self.excluded, "Excluded")

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any]
    ) -> TransactionalEventsConfig:
        """Build the settings from a plain mapping, eg: a section of an
        application settings file"""
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ConfigurationError(
                "Unknown transactional events settings: "
                f"{', '.join(sorted(unknown))}"
            )
        return cls(**mapping)
