"""Nostr relay client operations for Excalibur.

Provides the client factory, relay connection, event fetching and
single-relay event publishing. Every function works against exactly one
relay; the fan-out across a relay set lives in
[RelayPool][excalibur.services.common.relay_pool.RelayPool].

Attributes:
    create_client: Client factory with optional signer and SOCKS5 proxy.
    connect_relay: Connect a client to one relay within a timeout.
    fetch_relay_events: Async generator yielding verified events from a relay.
    send_event_to_relay: Publish one signed event through a connected client.

Note:
    Overlay networks (Tor, I2P, Lokinet) always use
    ``nostr_sdk.ConnectionMode.PROXY`` with a SOCKS5 proxy. Clearnet relays
    use the SDK's default verified TLS transport.

See Also:
    [excalibur.models.relay.Relay][excalibur.models.relay.Relay]: The relay
        model consumed by all connection functions.

Examples:
    ```python
    from excalibur.utils.protocol import connect_relay, send_event_to_relay

    client = await connect_relay(relay, timeout=10.0)
    await send_event_to_relay(client, relay, event, timeout=10.0)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from datetime import timedelta
from ipaddress import AddressValueError, IPv4Address, IPv6Address
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from nostr_sdk import (
    Client,
    ClientBuilder,
    ClientOptions,
    Connection,
    ConnectionMode,
    ConnectionTarget,
    Filter,
    NostrSigner,
    RelayUrl,
)

from excalibur.core.exceptions import PublishingError, RelayTimeoutError
from excalibur.models.constants import DEFAULT_TIMEOUT
from excalibur.models.event import Event
from excalibur.models.relay import Relay  # noqa: TC001


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from nostr_sdk import Keys


logger = logging.getLogger(__name__)


async def _resolve_proxy_host(host: str) -> str:
    """Return *host* as a numeric IP, resolving it off the event loop if needed."""
    bare_host = host.strip("[]")
    try:
        IPv4Address(bare_host)
        return bare_host
    except (AddressValueError, ValueError):
        pass
    try:
        IPv6Address(bare_host)
        return bare_host
    except (AddressValueError, ValueError):
        return await asyncio.to_thread(socket.gethostbyname, bare_host)


async def create_client(keys: Keys | None = None, proxy_url: str | None = None) -> Client:
    """Create a Nostr client with an optional signer and SOCKS5 proxy.

    Args:
        keys: Optional signing keys (``None`` = read-only client). Publishing
            pre-signed events does not need them.
        proxy_url: SOCKS5 proxy URL for overlay networks
            (e.g. ``socks5://127.0.0.1:9050``).

    Returns:
        Configured ``Client`` instance (call ``add_relay()`` before use).

    Note:
        nostr-sdk requires a numeric IP for the proxy, so a hostname in
        ``proxy_url`` is resolved via ``asyncio.to_thread(socket.gethostbyname)``.
    """
    builder = ClientBuilder()

    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))

    if proxy_url is not None:
        parsed = urlparse(proxy_url)
        proxy_host = await _resolve_proxy_host(parsed.hostname or "127.0.0.1")
        proxy_port = parsed.port or 9050

        proxy_mode = ConnectionMode.PROXY(proxy_host, proxy_port)
        conn = Connection().mode(proxy_mode).target(ConnectionTarget.ONION)
        builder = builder.opts(ClientOptions().connection(conn))

    return builder.build()


async def connect_relay(
    relay: Relay,
    keys: Keys | None = None,
    proxy_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
) -> Client:
    """Connect a new client to a single relay.

    Args:
        relay: [Relay][excalibur.models.relay.Relay] to connect to.
        keys: Optional signing keys.
        proxy_url: SOCKS5 proxy URL (required for overlay networks, ignored
            for clearnet).
        timeout: Connection timeout in seconds.

    Returns:
        Connected ``Client`` ready for use. The caller owns it and must
        ``shutdown()`` it.

    Raises:
        ValueError: If an overlay relay is requested without ``proxy_url``.
        RelayTimeoutError: If the handshake does not finish within *timeout*.
        OSError: If the relay refuses the connection.
    """
    if relay.is_overlay and proxy_url is None:
        raise ValueError(f"proxy_url required for {relay.network} relay: {relay.url}")

    relay_url = RelayUrl.parse(relay.url)
    client = await create_client(keys, proxy_url if relay.is_overlay else None)
    await client.add_relay(relay_url)

    logger.debug("relay_connecting relay=%s timeout_s=%s", relay.url, timeout)
    output = await client.try_connect(timedelta(seconds=timeout))

    if relay_url in output.success:
        logger.debug("relay_connected relay=%s", relay.url)
        return client

    with contextlib.suppress(Exception):
        await client.shutdown()

    error_message = output.failed.get(relay_url)
    if error_message is None:
        raise RelayTimeoutError(f"Connection timeout: {relay.url}")
    raise OSError(f"Connection failed: {relay.url} ({error_message})")


async def fetch_relay_events(
    relay: Relay,
    event_filter: Filter,
    *,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    connect_timeout: float = DEFAULT_TIMEOUT,
    proxy_url: str | None = None,
) -> AsyncIterator[Event]:
    """Connect to a relay and yield signature-verified Event objects.

    The connection is opened on iteration start and shut down when the
    generator exits (including on break/exception). Events that fail
    verification are logged and skipped.

    Args:
        relay: Relay to query.
        event_filter: nostr-sdk Filter specifying which events to fetch.
        timeout: Time to wait for the relay's stored events, in seconds.
        connect_timeout: Connection timeout in seconds.
        proxy_url: SOCKS5 proxy URL for overlay networks.

    Yields:
        Verified [Event][excalibur.models.event.Event] objects.

    Examples:
        ```python
        f = Filter().authors([author]).kinds([Kind(1)]).limit(50)

        async for event in fetch_relay_events(relay, f, timeout=10):
            print(event.id[:8], event.content)
        ```
    """
    client = await connect_relay(relay, proxy_url=proxy_url, timeout=connect_timeout)
    try:
        events = await client.fetch_events(event_filter, timedelta(seconds=timeout))
        for evt in events.to_vec():
            try:
                event = Event(evt)
            except (ValueError, TypeError, OverflowError):
                logger.warning("event_invalid relay=%s id=%s", relay.url, evt.id().to_hex())
                continue
            yield event
    finally:
        with contextlib.suppress(Exception):
            await client.shutdown()


async def send_event_to_relay(
    client: Client,
    relay: Relay,
    event: Event,
    *,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
) -> None:
    """Publish a signed event through a client connected to *relay*.

    Returns only when the relay acknowledges the event with an accepting
    ``OK`` message.

    Raises:
        PublishingError: If the relay rejects the event or does not answer.
        TimeoutError: If no acknowledgement arrives within *timeout*.
        nostr_sdk.NostrSdkError: If the SDK fails to send.
    """
    relay_url = RelayUrl.parse(relay.url)
    output = await asyncio.wait_for(client.send_event(event.nostr_event), timeout=timeout)

    if relay_url in output.success:
        logger.debug("event_accepted relay=%s id=%s", relay.url, event.id)
        return

    reason = output.failed.get(relay_url) or "no response from relay"
    logger.debug("event_rejected relay=%s id=%s reason=%s", relay.url, event.id, reason)
    raise PublishingError(f"{relay.url} rejected event: {reason}", {relay.url: str(reason)})


__all__ = [
    "connect_relay",
    "create_client",
    "fetch_relay_events",
    "send_event_to_relay",
]
