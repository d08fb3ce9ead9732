"""Frozen dataclasses for relays, events, and clone results.

The models layer is the foundation of the package. It performs no I/O and
only depends on ``nostr_sdk`` types (for the wrapped event) and ``rfc3986``
(for relay URL validation). Every model uses
``@dataclass(frozen=True, slots=True)`` and validates in ``__post_init__`` so
invalid instances never escape the constructor.

Attributes:
    Relay: Validated relay URL with network type detection.
    Event: Verified, immutable wrapper around ``nostr_sdk.Event``.
    PublishOutcome: First-success publish result for one event.
    CloneResult: Summary of one clone invocation.
    CloneState: States of the clone pipeline.
    EventKind: Event kinds handled by the cloner.
    NetworkType: Relay network classification.
"""

from .clone import CloneResult, PublishOutcome
from .constants import (
    DEFAULT_RELAY_URL,
    DEFAULT_TIMEOUT,
    EVENT_KIND_MAX,
    CloneState,
    EventKind,
    NetworkType,
)
from .event import Event
from .relay import Relay


__all__ = [
    "DEFAULT_RELAY_URL",
    "DEFAULT_TIMEOUT",
    "EVENT_KIND_MAX",
    "CloneResult",
    "CloneState",
    "Event",
    "EventKind",
    "NetworkType",
    "PublishOutcome",
    "Relay",
]
