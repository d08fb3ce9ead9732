"""Shared infrastructure for services.

Attributes:
    RelayPool: Fan-out query and first-success publish across a relay set.
    RelayPoolConfig: Relay timeouts and overlay proxy settings.
"""

from .relay_pool import RelayPool, RelayPoolConfig, RelayPoolTimeoutsConfig


__all__ = [
    "RelayPool",
    "RelayPoolConfig",
    "RelayPoolTimeoutsConfig",
]
