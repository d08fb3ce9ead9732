"""Shared constants for the models layer.

Enumerations used by more than one layer live here so that ``utils``,
``core`` and ``services`` can import them without pulling in each other.

See Also:
    [excalibur.models.relay][]: Uses [NetworkType][excalibur.models.constants.NetworkType]
        to classify relay URLs during construction.
    [excalibur.services.clone][]: Drives [CloneState][excalibur.models.constants.CloneState]
        transitions.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type during
    [Relay][excalibur.models.relay.Relay] construction. Clearnet relays are
    forced to ``wss://``; overlay networks use ``ws://`` because the overlay
    provides the encryption.

    Attributes:
        CLEARNET: Public internet relay using ``wss://``.
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Private or reserved IP address (rejected during validation).
        UNKNOWN: Hostname that could not be classified (rejected during validation).
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


OVERLAY_NETWORKS: frozenset[NetworkType] = frozenset(
    {NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI}
)


class EventKind(IntEnum):
    """Nostr event kinds handled by the cloner.

    Attributes:
        TEXT_NOTE: Kind 1 -- short text note (NIP-01). The only kind that is
            fetched and re-published.
    """

    TEXT_NOTE = 1


EVENT_KIND_MAX = 65_535


class CloneState(StrEnum):
    """States of a single clone invocation.

    ``FAILED`` is terminal and reachable from every other state; ``DONE`` is
    the terminal success state.
    """

    IDLE = "idle"
    VALIDATING_INPUT = "validating_input"
    QUERYING = "querying"
    TRANSFORMING = "transforming"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


DEFAULT_TIMEOUT = 10.0
DEFAULT_RELAY_URL = "wss://relay.damus.io"
