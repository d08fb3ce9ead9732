"""Result types produced by a clone invocation.

[PublishOutcome][excalibur.models.clone.PublishOutcome] records how one
cloned event fared against the relay set;
[CloneResult][excalibur.models.clone.CloneResult] is the immutable summary
returned by [ClonePipeline.run()][excalibur.services.clone.ClonePipeline.run].
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ._validation import validate_instance
from .constants import CloneState
from .event import Event


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Result of a first-success-wins publish of one event.

    Attributes:
        event: The event that was published.
        relay: URL of the first relay that accepted the event, or ``None``
            when every relay failed.
        errors: Relay URL to error message for each relay that failed
            before the outcome resolved. Read-only.
    """

    event: Event
    relay: str | None = None
    errors: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_instance(self.event, Event, "event")
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    @property
    def success(self) -> bool:
        """Whether at least one relay accepted the event."""
        return self.relay is not None


@dataclass(frozen=True, slots=True)
class CloneResult:
    """Summary of one clone invocation.

    ``cloned_events`` holds every re-signed event regardless of whether a
    relay accepted it; ``outcomes`` carries the per-event publish result in
    the same order. Both are empty for failed invocations and for the
    query-only run where no destination key was supplied.
    """

    state: CloneState
    status: str
    error_message: str | None = None
    source_events: tuple[Event, ...] = ()
    cloned_events: tuple[Event, ...] = ()
    outcomes: tuple[PublishOutcome, ...] = ()

    @property
    def ok(self) -> bool:
        """Whether the invocation finished without a fatal error."""
        return self.state == CloneState.DONE

    @property
    def published(self) -> int:
        """Number of cloned events accepted by at least one relay."""
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        """Number of cloned events that every relay rejected."""
        return sum(1 for outcome in self.outcomes if not outcome.success)
