"""Excalibur exception hierarchy.

Typed exceptions let the pipeline tell fatal input/state errors apart from
per-relay failures that are logged and tolerated.

Exception hierarchy:

```text
ExcaliburError (base -- never raised directly)
├── ConfigurationError       -- config validation, bad YAML, empty relay list
├── KeyDecodeError           -- bech32 key material rejected
│   ├── InvalidFormatError   -- wrong prefix or payload fails to decode
│   └── WrongKeyTypeError    -- decodes, but to another NIP-19 entity
├── NoEventsFoundError       -- the source query returned nothing
├── SigningError             -- event could not be signed with the key
├── ConnectivityError        -- relay unreachable, network failures
│   └── RelayTimeoutError    -- connection or response timed out
└── PublishingError          -- relay(s) rejected an event
```

See Also:
    [ClonePipeline][excalibur.services.clone.ClonePipeline]: Turns
        ``KeyDecodeError``, ``NoEventsFoundError`` and ``SigningError`` into
        a ``FAILED`` result with a single error message.
    [RelayPool][excalibur.services.common.relay_pool.RelayPool]: Records
        ``ConnectivityError`` and ``PublishingError`` per relay without
        raising them.
"""

from __future__ import annotations

from collections.abc import Mapping


class ExcaliburError(Exception):
    """Base exception for all Excalibur errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(ExcaliburError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class KeyDecodeError(ExcaliburError):
    """Base for bech32 key material that could not be decoded.

    Messages are safe to show to the user: they never echo the input.
    """


class InvalidFormatError(KeyDecodeError):
    """Key text has the wrong prefix or its bech32 payload does not decode."""


class WrongKeyTypeError(KeyDecodeError):
    """Key text decodes, but to a different key category than expected."""


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class NoEventsFoundError(ExcaliburError):
    """The source identity has no events on any reachable relay."""


class SigningError(ExcaliburError):
    """An event template could not be signed with the given secret key."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(ExcaliburError):
    """Base for relay/network connectivity errors."""


class RelayTimeoutError(ConnectivityError):
    """Connection or response timed out."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishingError(ExcaliburError):
    """One or more relays rejected an event.

    Attributes:
        errors: Relay URL to error message for each failed relay.
    """

    def __init__(self, message: str, errors: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, str] = dict(errors or {})
