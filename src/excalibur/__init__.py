r"""Excalibur -- clone a Nostr identity's notes onto another key.

Fetches the short text notes (kind 1) of a source public key from a set of
relays, re-signs each one under a destination secret key, and publishes the
copies back to the same relays.

Imports flow strictly downward:

```text
              services         ClonePipeline, RelayPool
               /    \
            nips    utils      NIP-01 signing | keys, relay I/O, parsing
               \    /
               core            errors, logging, YAML
                 |
              models           Pure frozen dataclasses
```

Attributes:
    models: Frozen dataclasses (Event, Relay, results). No network I/O.
    core: Exception hierarchy, structured logging, YAML loading.
    nips: NIP-01 event templates, signing and id computation.
    utils: Bech32 key decoding, single-relay client operations.
    services: The clone pipeline and the relay pool it drives.

Note:
    For lightweight usage, import directly from subpackages::

        from excalibur.models import Relay
        from excalibur.services.clone import ClonePipeline

    Top-level imports (``from excalibur import ClonePipeline``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("excalibur")

__all__ = [
    "CloneConfig",
    "ClonePipeline",
    "CloneResult",
    "CloneState",
    "Event",
    "EventTemplate",
    "ExcaliburError",
    "Logger",
    "NetworkType",
    "PublishOutcome",
    "Relay",
    "RelayPool",
    "RelayPoolConfig",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ExcaliburError": ("excalibur.core", "ExcaliburError"),
    "Logger": ("excalibur.core", "Logger"),
    "CloneResult": ("excalibur.models", "CloneResult"),
    "CloneState": ("excalibur.models", "CloneState"),
    "Event": ("excalibur.models", "Event"),
    "NetworkType": ("excalibur.models", "NetworkType"),
    "PublishOutcome": ("excalibur.models", "PublishOutcome"),
    "Relay": ("excalibur.models", "Relay"),
    "EventTemplate": ("excalibur.nips", "EventTemplate"),
    "CloneConfig": ("excalibur.services", "CloneConfig"),
    "ClonePipeline": ("excalibur.services", "ClonePipeline"),
    "RelayPool": ("excalibur.services", "RelayPool"),
    "RelayPoolConfig": ("excalibur.services", "RelayPoolConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'excalibur' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
