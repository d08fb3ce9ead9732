"""
Fan-out query and first-success publish across a relay set.

[RelayPool][excalibur.services.common.relay_pool.RelayPool] runs one task
per relay for every operation and tolerates per-relay failures: a relay
that times out, refuses the connection or rejects an event is logged and
recorded, never raised.

Publishing resolves as soon as one relay accepts the event. The remaining
publish tasks keep running in the background for redundancy; the pool
waits for them (bounded by the drain timeout) and shuts down every client
in [close()][excalibur.services.common.relay_pool.RelayPool.close].

See Also:
    [excalibur.utils.protocol][excalibur.utils.protocol]: Single-relay
        connect, fetch and publish primitives used here.
    [ClonePipeline][excalibur.services.clone.ClonePipeline]: The consumer
        of both fan-out operations.

Examples:
    ```python
    async with RelayPool() as pool:
        events = await pool.query_authored_events(relays, author, limit=50)
        outcome = await pool.publish_to_any(relays, events[0])
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
from functools import partial
from typing import TYPE_CHECKING, Any

from nostr_sdk import Filter, Kind, NostrSdkError
from pydantic import BaseModel, Field

from excalibur.core.exceptions import ExcaliburError, PublishingError
from excalibur.core.logger import Logger
from excalibur.core.yaml import load_yaml
from excalibur.models.clone import PublishOutcome
from excalibur.models.constants import DEFAULT_TIMEOUT, EventKind
from excalibur.utils.protocol import connect_relay, fetch_relay_events, send_event_to_relay


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nostr_sdk import Client, PublicKey

    from excalibur.models.event import Event
    from excalibur.models.relay import Relay


# Failures that belong to a single relay. ValueError covers overlay relays
# configured without a proxy.
_RELAY_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    OSError,
    ValueError,
    NostrSdkError,
    ExcaliburError,
)


# =============================================================================
# Configuration
# =============================================================================


class RelayPoolTimeoutsConfig(BaseModel):
    """Per-relay timeouts for pool operations (in seconds).

    See Also:
        [RelayPoolConfig][excalibur.services.common.relay_pool.RelayPoolConfig]:
            Parent configuration that embeds this model.
    """

    connect: float = Field(
        default=DEFAULT_TIMEOUT, ge=0.1, le=120.0, description="WebSocket connection timeout"
    )
    query: float = Field(
        default=DEFAULT_TIMEOUT, ge=0.1, le=300.0, description="Stored-events fetch timeout"
    )
    publish: float = Field(
        default=DEFAULT_TIMEOUT, ge=0.1, le=120.0, description="Wait for a relay OK message"
    )
    drain: float = Field(
        default=5.0,
        ge=0.0,
        le=120.0,
        description="Wait for redundant in-flight publishes on close",
    )


class RelayPoolConfig(BaseModel):
    """Configuration for [RelayPool][excalibur.services.common.relay_pool.RelayPool].

    Attributes:
        timeouts: Per-relay timeouts.
        proxy_url: SOCKS5 proxy for overlay relays (Tor, I2P, Lokinet).
            Overlay relays fail individually when it is unset.
    """

    timeouts: RelayPoolTimeoutsConfig = Field(default_factory=RelayPoolTimeoutsConfig)
    proxy_url: str | None = Field(
        default=None,
        description="SOCKS5 proxy URL for overlay relays (e.g. socks5://127.0.0.1:9050)",
    )


# =============================================================================
# Pool
# =============================================================================


class RelayPool:
    """Concurrent relay operations with per-relay failure isolation.

    Query clients are short-lived (one per relay per query). Publish clients
    are opened lazily, one per relay URL, and reused across events until
    [close()][excalibur.services.common.relay_pool.RelayPool.close].

    See Also:
        [RelayPoolConfig][excalibur.services.common.relay_pool.RelayPoolConfig]:
            Configuration model for this class.
    """

    def __init__(self, config: RelayPoolConfig | None = None) -> None:
        self._config = config or RelayPoolConfig()
        self._clients: dict[str, Client] = {}
        self._client_locks: dict[str, asyncio.Lock] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._logger = Logger("relay_pool")

    @classmethod
    def from_yaml(cls, config_path: str) -> RelayPool:
        """Create a RelayPool from a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> RelayPool:
        """Create a RelayPool from a dictionary matching ``RelayPoolConfig``."""
        return cls(config=RelayPoolConfig(**config_dict))

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    async def query_authored_events(
        self,
        relays: Sequence[Relay],
        author: PublicKey,
        kinds: Iterable[int] = (EventKind.TEXT_NOTE,),
        limit: int = 50,
    ) -> list[Event]:
        """Fetch events by *author* from every relay concurrently.

        Args:
            relays: Relays to query. Must not be empty.
            author: Public key whose events are requested.
            kinds: Event kinds to request.
            limit: Maximum number of events requested per relay and returned
                overall.

        Returns:
            Events merged across relays, deduplicated by id, newest first
            (ties broken by id) and truncated to *limit*. Events a relay
            returns outside the filter (another author or kind) are dropped.
            Empty when every relay failed or had nothing.

        Raises:
            ValueError: If *relays* is empty or *limit* is not positive.
        """
        if not relays:
            raise ValueError("relays must not be empty")
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        wanted_kinds = frozenset(int(k) for k in kinds)
        event_filter = (
            Filter().authors([author]).kinds([Kind(k) for k in sorted(wanted_kinds)]).limit(limit)
        )
        author_hex = author.to_hex()

        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._query_relay(relay, event_filter, author_hex, wanted_kinds))
                for relay in relays
            ]

        by_id: dict[str, Event] = {}
        for task in tasks:
            for event in task.result():
                by_id.setdefault(event.id, event)

        merged = sorted(by_id.values(), key=lambda e: (-e.created_at, e.id))[:limit]
        self._logger.info(
            "query_completed",
            author=author_hex,
            relays=len(relays),
            events=len(merged),
        )
        return merged

    async def _query_relay(
        self,
        relay: Relay,
        event_filter: Filter,
        author_hex: str,
        kinds: frozenset[int],
    ) -> list[Event]:
        """Fetch from one relay; failures are logged and yield nothing.

        Relays do not always honor the filter, so every event is checked
        against the requested author and kinds before it is kept.
        """
        timeouts = self._config.timeouts
        events: list[Event] = []
        try:
            async with asyncio.timeout(timeouts.connect + timeouts.query):
                async for event in fetch_relay_events(
                    relay,
                    event_filter,
                    timeout=timeouts.query,
                    connect_timeout=timeouts.connect,
                    proxy_url=self._config.proxy_url,
                ):
                    if event.pubkey != author_hex or event.kind not in kinds:
                        self._logger.warning(
                            "event_outside_filter",
                            relay=relay.url,
                            id=event.id,
                            kind=event.kind,
                            pubkey=event.pubkey,
                        )
                        continue
                    events.append(event)
        except _RELAY_ERRORS as e:
            self._logger.warning("query_relay_failed", relay=relay.url, error=str(e))
            return []

        self._logger.debug("query_relay_completed", relay=relay.url, events=len(events))
        return events

    # -------------------------------------------------------------------------
    # Publish
    # -------------------------------------------------------------------------

    async def publish_to_any(self, relays: Sequence[Relay], event: Event) -> PublishOutcome:
        """Publish *event* to every relay and resolve on the first acceptance.

        All publish tasks start concurrently. When one relay accepts, the
        call returns and the others continue in the background until
        [close()][excalibur.services.common.relay_pool.RelayPool.close].

        Args:
            relays: Target relays. Must not be empty.
            event: Signed event to publish.

        Returns:
            A successful outcome naming the first accepting relay, or an
            unsuccessful one whose ``errors`` holds every relay's failure.

        Raises:
            ValueError: If *relays* is empty.
        """
        if not relays:
            raise ValueError("relays must not be empty")

        order = {relay.url: index for index, relay in enumerate(relays)}
        tasks: dict[asyncio.Task[None], Relay] = {
            asyncio.create_task(self._publish_relay(relay, event)): relay for relay in relays
        }
        pending: set[asyncio.Task[None]] = set(tasks)
        errors: dict[str, str] = {}
        winner: str | None = None

        try:
            while pending and winner is None:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=lambda t: order[tasks[t].url]):
                    relay = tasks[task]
                    error = task.exception()
                    if error is None:
                        winner = winner or relay.url
                    elif isinstance(error, _RELAY_ERRORS):
                        errors[relay.url] = str(error) or type(error).__name__
                    else:
                        raise error
        finally:
            for task in pending:
                self._track(task, tasks[task])

        if winner is None:
            self._logger.warning("publish_failed", id=event.id, relays=len(relays))
        else:
            self._logger.debug("event_published", id=event.id, relay=winner)
        return PublishOutcome(event=event, relay=winner, errors=errors)

    async def publish_to_any_or_raise(
        self, relays: Sequence[Relay], event: Event
    ) -> PublishOutcome:
        """Like [publish_to_any()][excalibur.services.common.relay_pool.RelayPool.publish_to_any], but raise on total failure.

        Raises:
            PublishingError: If every relay failed. ``errors`` carries the
                per-relay messages.
        """
        outcome = await self.publish_to_any(relays, event)
        if not outcome.success:
            raise PublishingError(
                f"Event {event.id[:16]}... rejected by all {len(relays)} relays",
                outcome.errors,
            )
        return outcome

    async def _publish_relay(self, relay: Relay, event: Event) -> None:
        client = await self._get_client(relay)
        await send_event_to_relay(client, relay, event, timeout=self._config.timeouts.publish)

    async def _get_client(self, relay: Relay) -> Client:
        """Return the cached publish client for *relay*, connecting on first use."""
        lock = self._client_locks.setdefault(relay.url, asyncio.Lock())
        async with lock:
            client = self._clients.get(relay.url)
            if client is None:
                client = await connect_relay(
                    relay,
                    proxy_url=self._config.proxy_url,
                    timeout=self._config.timeouts.connect,
                )
                self._clients[relay.url] = client
            return client

    def _track(self, task: asyncio.Task[None], relay: Relay) -> None:
        self._background.add(task)
        task.add_done_callback(partial(self._on_background_done, relay))

    def _on_background_done(self, relay: Relay, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            self._logger.debug("redundant_publish_accepted", relay=relay.url)
        else:
            self._logger.debug("redundant_publish_failed", relay=relay.url, error=str(error))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Drain background publishes and shut down every client.

        Background tasks still running after the drain timeout are
        cancelled. Idempotent.
        """
        if self._background:
            done, pending = await asyncio.wait(
                set(self._background), timeout=self._config.timeouts.drain
            )
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            self._logger.debug("background_drained", completed=len(done), cancelled=len(pending))

        clients = list(self._clients.values())
        self._clients.clear()
        self._client_locks.clear()
        for client in clients:
            # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
            with contextlib.suppress(Exception):
                await client.shutdown()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RelayPoolConfig:
        """The pool configuration (read-only)."""
        return self._config

    @property
    def pending_publishes(self) -> int:
        """Number of redundant publish tasks still running."""
        return len(self._background)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> RelayPool:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        """Drain and close on context exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"RelayPool(clients={len(self._clients)}, pending={len(self._background)})"
