"""
Relay endpoints the cloner is allowed to talk to.

A [Relay][excalibur.models.relay.Relay] is built from user or config input
and normalized once, so that the same endpoint written two ways compares
equal. Clearnet relays always use ``wss``; Tor, I2P and Lokinet relays use
``ws`` and are reached through the SOCKS5 proxy configured on the pool.
Loopback, private and otherwise non-routable addresses are refused.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import NamedTuple

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import OVERLAY_NETWORKS, NetworkType


_DEFAULT_PORTS = {"ws": 80, "wss": 443}
_OVERLAY_SUFFIXES = {
    "onion": NetworkType.TOR,
    "i2p": NetworkType.I2P,
    "loki": NetworkType.LOKI,
}
_LOCAL_NAMES = frozenset({"localhost", "localhost.localdomain"})

_VALIDATOR = (
    Validator()
    .require_presence_of("scheme", "host")
    .allow_schemes("ws", "wss")
    .check_validity_of("scheme", "host", "port", "path")
)


class _Endpoint(NamedTuple):
    host: str
    port: int | None
    path: str | None
    network: NetworkType


def _is_routable(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return ip.is_global and not (ip.is_multicast or ip.is_reserved or ip.is_unspecified)


def classify_host(host: str) -> NetworkType:
    """Return the network a bare host (no brackets, any case) belongs to."""
    name = host.lower()
    if not name:
        return NetworkType.UNKNOWN

    suffix = name.rsplit(".", 1)[-1]
    if suffix in _OVERLAY_SUFFIXES and "." in name:
        return _OVERLAY_SUFFIXES[suffix]
    if name in _LOCAL_NAMES:
        return NetworkType.LOCAL

    try:
        ip = ipaddress.ip_address(name)
    except ValueError:
        labels = name.split(".")
        if len(labels) < 2 or any(not lb or lb[0] == "-" or lb[-1] == "-" for lb in labels):
            return NetworkType.UNKNOWN
        return NetworkType.CLEARNET

    return NetworkType.CLEARNET if _is_routable(ip) else NetworkType.LOCAL


def _split_url(raw: str) -> _Endpoint:
    uri = uri_reference(raw.strip()).normalize()
    try:
        _VALIDATOR.validate(uri)
    except UnpermittedComponentError:
        raise ValueError("Invalid scheme: must be ws or wss") from None
    except ValidationError as e:
        raise ValueError(f"Invalid URL: {e}") from None

    if uri.query:
        raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
    if uri.fragment:
        raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

    host = uri.host.strip("[]")
    segments = [s for s in (uri.path or "").split("/") if s]
    path = "/" + "/".join(segments) if segments else None
    return _Endpoint(host, int(uri.port) if uri.port else None, path, classify_host(host))


@dataclass(frozen=True, slots=True)
class Relay:
    """A normalized relay URL.

    Equality and hashing use ``url`` only, which is what relay-list
    deduplication relies on.

    Attributes:
        url: Normalized URL, e.g. ``wss://relay.damus.io/nostr``.
        network: Network the host belongs to.
        scheme: ``wss`` on clearnet, ``ws`` on overlay networks.
        host: Lowercased host, IPv6 without brackets.
        port: Port when it differs from the scheme default, else ``None``.
        path: Path without trailing or repeated slashes, else ``None``.

    Raises:
        TypeError: If *raw_url* is not a string.
        ValueError: If the URL is malformed, not ``ws``/``wss``, carries a
            query or fragment, or points at a local address.

    Examples:
        ```python
        Relay("ws://Relay.Damus.io/").url    # 'wss://relay.damus.io'
        Relay("wss://abc.onion").scheme      # 'ws'
        ```
    """

    raw_url: str = field(repr=False, compare=False)

    url: str = field(init=False)
    network: NetworkType = field(init=False, compare=False)
    scheme: str = field(init=False, repr=False, compare=False)
    host: str = field(init=False, repr=False, compare=False)
    port: int | None = field(init=False, repr=False, compare=False)
    path: str | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise TypeError(f"raw_url must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        endpoint = _split_url(self.raw_url)
        if endpoint.network == NetworkType.LOCAL:
            raise ValueError("Local addresses not allowed")
        if endpoint.network == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: '{endpoint.host}'")

        scheme = "ws" if endpoint.network in OVERLAY_NETWORKS else "wss"
        port = endpoint.port if endpoint.port != _DEFAULT_PORTS[scheme] else None
        authority = f"[{endpoint.host}]" if ":" in endpoint.host else endpoint.host
        if port is not None:
            authority = f"{authority}:{port}"

        object.__setattr__(self, "url", f"{scheme}://{authority}{endpoint.path or ''}")
        object.__setattr__(self, "network", endpoint.network)
        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "host", endpoint.host)
        object.__setattr__(self, "port", port)
        object.__setattr__(self, "path", endpoint.path)

    @property
    def is_overlay(self) -> bool:
        """Whether the relay needs the SOCKS5 proxy."""
        return self.network in OVERLAY_NETWORKS

    def __str__(self) -> str:
        return self.url
