"""Key decoding, relay I/O and tolerant parsing helpers.

Depends only on [excalibur.models][] and
[excalibur.core.exceptions][excalibur.core.exceptions].

Attributes:
    keys: Bech32 ``npub``/``nsec`` decoding and env-based secret loading.
    protocol: Single-relay client, fetch and publish operations.
    parsing: Relay list parsing that skips invalid entries.
"""
