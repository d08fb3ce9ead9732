"""NIP-01 event construction, signing and id computation.

An [EventTemplate][excalibur.nips.nip01.EventTemplate] carries the five
fields that define an event before signing. Signing is delegated to
``nostr_sdk`` (Schnorr over the SHA-256 of the canonical serialization);
this module only decides *what* gets signed. Time is always supplied by
the caller, never read here.

The canonical serialization is also exposed so signed events can be checked
independently of the SDK:

```text
[0, <pubkey hex>, <created_at>, <kind>, <tags>, <content>]
```

serialized as compact UTF-8 JSON (no whitespace between tokens).

See Also:
    [Event][excalibur.models.event.Event]: The verified result of
        [sign_as_new_event][excalibur.nips.nip01.sign_as_new_event].
    [ClonePipeline][excalibur.services.clone.ClonePipeline]: Signs one
        template per source event in its ``TRANSFORMING`` step.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from nostr_sdk import (
    EventBuilder,
    Keys,
    Kind,
    NostrSdkError,
    PublicKey,
    SecretKey,
    Tag,
    Timestamp,
)

from excalibur.core.exceptions import SigningError
from excalibur.models._validation import (
    validate_instance,
    validate_str,
    validate_timestamp,
)
from excalibur.models.constants import EVENT_KIND_MAX
from excalibur.models.event import Event


logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class EventTemplate:
    """Unsigned event: everything except ``id`` and ``sig``.

    Attributes:
        pubkey: Author public key the signed event must carry.
        created_at: Unix timestamp in seconds.
        kind: Event kind (0-65535).
        tags: Tags as a tuple of string tuples; order is preserved.
        content: Raw content string.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``kind`` or ``created_at`` is out of range.
    """

    pubkey: PublicKey
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str

    def __post_init__(self) -> None:
        validate_instance(self.pubkey, PublicKey, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        if isinstance(self.kind, bool) or not isinstance(self.kind, int):
            raise TypeError(f"kind must be an int, got {type(self.kind).__name__}")
        if not 0 <= self.kind <= EVENT_KIND_MAX:
            raise ValueError(f"kind must be between 0 and {EVENT_KIND_MAX}, got {self.kind}")
        object.__setattr__(self, "tags", tuple(tuple(tag) for tag in self.tags))
        validate_str(self.content, "content")


# =============================================================================
# Signing
# =============================================================================


def derive_public_key(secret_key: SecretKey) -> PublicKey:
    """Return the public key belonging to *secret_key*. Pure and deterministic."""
    return Keys(secret_key).public_key()


def sign_as_new_event(template: EventTemplate, secret_key: SecretKey) -> Event:
    """Sign *template* with *secret_key* and return the verified event.

    Args:
        template: Fields of the event to sign. Its ``created_at`` is used
            verbatim.
        secret_key: Key of the author named in ``template.pubkey``.

    Returns:
        A verified [Event][excalibur.models.event.Event] whose id is the
        SHA-256 of its canonical serialization.

    Raises:
        SigningError: If the SDK rejects the key or tags, or if
            *secret_key* does not belong to ``template.pubkey``.
    """
    keys = Keys(secret_key)
    expected_author = template.pubkey.to_hex()
    if keys.public_key().to_hex() != expected_author:
        raise SigningError("Secret key does not match the template author")

    try:
        signed = (
            EventBuilder(Kind(template.kind), template.content)
            .tags([Tag.parse(list(tag)) for tag in template.tags])
            .custom_created_at(Timestamp.from_secs(template.created_at))
            .sign_with_keys(keys)
        )
        event = Event(signed)
    except (NostrSdkError, ValueError) as e:
        raise SigningError(f"Failed to sign event: {e}") from e

    if event.pubkey != expected_author:
        raise SigningError("Signed event author does not match the template author")

    logger.debug("event_signed id=%s kind=%s", event.id, event.kind)
    return event


def clone_template(event: Event, author: PublicKey, created_at: int) -> EventTemplate:
    """Build a template that re-publishes *event* under *author*.

    ``kind``, ``tags`` and ``content`` are copied unchanged; the author and
    timestamp are replaced. The original id and signature are discarded.
    """
    return EventTemplate(
        pubkey=author,
        created_at=created_at,
        kind=event.kind,
        tags=event.tags,
        content=event.content,
    )


# =============================================================================
# Canonical serialization
# =============================================================================


def serialize_event(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
) -> str:
    """Return the NIP-01 canonical serialization used to derive event ids."""
    return json.dumps(
        [0, pubkey, created_at, kind, [list(tag) for tag in tags], content],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_event_id(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
) -> str:
    """Return the event id: lowercase hex SHA-256 of the canonical serialization."""
    serialized = serialize_event(pubkey, created_at, kind, tags, content)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def verify_event_id(event: Event) -> bool:
    """Whether ``event.id`` matches a recomputation from its fields."""
    return event.id == compute_event_id(
        event.pubkey, event.created_at, event.kind, event.tags, event.content
    )


__all__ = [
    "EventTemplate",
    "clone_template",
    "compute_event_id",
    "derive_public_key",
    "serialize_event",
    "sign_as_new_event",
    "verify_event_id",
]
