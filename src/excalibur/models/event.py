"""
Immutable, verified Nostr event.

Wraps ``nostr_sdk.Event`` in a frozen dataclass that exposes the NIP-01
fields as plain Python values. The wrapped SDK object is kept for relay
I/O via [nostr_event][excalibur.models.event.Event.nostr_event].

Construction verifies the id/signature pair, so an
[Event][excalibur.models.event.Event] instance is always safe to publish.

See Also:
    [excalibur.nips.nip01][]: Builds and signs new events.
    [excalibur.services.common.relay_pool][]: Fetches and publishes events.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from nostr_sdk import Event as NostrEvent

from ._validation import validate_instance


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable Nostr event with verified id and signature.

    Args:
        _nostr_event: The underlying ``nostr_sdk.Event`` instance.

    Attributes:
        id: Event id as 64-char hex (SHA-256 of the canonical serialization).
        pubkey: Author public key as 64-char hex.
        created_at: Unix timestamp in seconds.
        kind: Integer event kind.
        tags: Tags as a tuple of string tuples, in original order.
        content: Raw content string.
        sig: Schnorr signature as 128-char hex.

    Raises:
        TypeError: If ``_nostr_event`` is not a ``nostr_sdk.Event``.
        ValueError: If the id or signature does not verify.

    Examples:
        ```python
        event = Event.from_json(raw_json)
        event.kind      # 1
        event.to_dict() # NIP-01 JSON object
        ```
    """

    _nostr_event: NostrEvent = field(repr=False, compare=False)

    id: str = field(init=False)
    pubkey: str = field(init=False, repr=False)
    created_at: int = field(init=False)
    kind: int = field(init=False)
    tags: tuple[tuple[str, ...], ...] = field(init=False, repr=False)
    content: str = field(init=False, repr=False)
    sig: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Verify the wrapped event and populate the plain fields."""
        validate_instance(self._nostr_event, NostrEvent, "_nostr_event")
        inner = self._nostr_event
        event_id = inner.id().to_hex()

        if not inner.verify():
            raise ValueError(f"Event {event_id[:16]}... failed id/signature verification")

        object.__setattr__(self, "id", event_id)
        object.__setattr__(self, "pubkey", inner.author().to_hex())
        object.__setattr__(self, "created_at", inner.created_at().as_secs())
        object.__setattr__(self, "kind", inner.kind().as_u16())
        object.__setattr__(
            self, "tags", tuple(tuple(tag.as_vec()) for tag in inner.tags().to_vec())
        )
        object.__setattr__(self, "content", inner.content())
        object.__setattr__(self, "sig", inner.signature())

    @property
    def nostr_event(self) -> NostrEvent:
        """The wrapped ``nostr_sdk.Event`` for relay I/O."""
        return self._nostr_event

    def to_dict(self) -> dict[str, Any]:
        """Return the event as a NIP-01 JSON object."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    @classmethod
    def from_json(cls, raw: str) -> Event:
        """Parse and verify a NIP-01 JSON event.

        Raises:
            nostr_sdk.NostrSdkError: If the JSON is not a well-formed event.
            ValueError: If the id or signature does not verify.
        """
        return cls(NostrEvent.from_json(raw))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an [Event][excalibur.models.event.Event] from a NIP-01 JSON object."""
        return cls.from_json(json.dumps(data, ensure_ascii=False))
