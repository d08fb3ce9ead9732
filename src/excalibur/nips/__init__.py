"""NIP implementations used by the cloner.

Attributes:
    nip01: Event templates, signing under a new author, and the canonical
        serialization that defines event ids.

See Also:
    [excalibur.models.event.Event][excalibur.models.event.Event]: Verified
        event type produced by signing.
"""

from .nip01 import (
    EventTemplate,
    clone_template,
    compute_event_id,
    derive_public_key,
    serialize_event,
    sign_as_new_event,
    verify_event_id,
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
