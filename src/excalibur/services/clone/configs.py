"""Clone service configuration models.

See Also:
    [ClonePipeline][excalibur.services.clone.ClonePipeline]: The service
        class that consumes these configurations.
    [RelayPoolConfig][excalibur.services.common.relay_pool.RelayPoolConfig]:
        Embedded relay timeout and proxy settings.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

from excalibur.models.constants import DEFAULT_RELAY_URL
from excalibur.models.relay import Relay
from excalibur.services.common.relay_pool import RelayPoolConfig
from excalibur.utils.keys import KeysConfig
from excalibur.utils.parsing import parse_relays


def _relay_list(value: Any) -> Any:
    """Accept a single URL or a list of URLs; drop invalid and duplicate entries."""
    if isinstance(value, (str, Relay)):
        value = [value]
    if isinstance(value, (list, tuple)):
        return parse_relays(value)
    return value


class QueryConfig(BaseModel):
    """How many source events one run fetches.

    The limit applies per relay and to the merged result.
    """

    limit: int = Field(default=50, ge=1, le=5000, description="Maximum events to clone")


class PublishingConfig(BaseModel):
    """Pacing between consecutive publishes."""

    delay: float = Field(
        default=0.05,
        ge=0.0,
        le=60.0,
        description="Seconds to wait between publishing consecutive events",
    )


class CloneConfig(BaseModel):
    """Clone service configuration.

    Attributes:
        relays: Ordered relay set used for both query and publish. Invalid
            URLs are logged and skipped; duplicates keep their first
            position. At least one valid relay is required.
        query: Source event query settings.
        publishing: Publish pacing.
        pool: Relay timeouts and overlay proxy.
        keys: Where the destination secret key is read from.
    """

    relays: Annotated[list[Relay], BeforeValidator(_relay_list)] = Field(
        default_factory=lambda: [Relay(DEFAULT_RELAY_URL)],
        min_length=1,
        description="Relays to query and publish to",
    )
    query: QueryConfig = Field(default_factory=QueryConfig)
    publishing: PublishingConfig = Field(default_factory=PublishingConfig)
    pool: RelayPoolConfig = Field(default_factory=RelayPoolConfig)
    keys: KeysConfig = Field(default_factory=KeysConfig)
