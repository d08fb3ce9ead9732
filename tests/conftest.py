"""
Pytest configuration and shared fixtures for Excalibur tests.

Provides:
- Fresh key pairs for source and destination identities
- A factory for real, signed ``Event`` instances
- A mocked ``RelayPool`` that records queries and publishes
"""

import logging
from collections.abc import Callable, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest
from nostr_sdk import EventBuilder, Keys, Kind, Tag, Timestamp

from excalibur.models import Event, PublishOutcome, Relay
from excalibur.services.common.relay_pool import RelayPool


# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)

FIXED_NOW = 1_700_000_000


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture
def source_keys() -> Keys:
    """Key pair of the identity being cloned."""
    return Keys.generate()


@pytest.fixture
def destination_keys() -> Keys:
    """Key pair of the identity receiving the clones."""
    return Keys.generate()


@pytest.fixture
def clear_nsec_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure no destination key leaks in from the developer's shell."""
    monkeypatch.delenv("EXCALIBUR_NSEC", raising=False)


# ============================================================================
# Event Fixtures
# ============================================================================


def sign_event(
    keys: Keys,
    content: str = "gm nostr",
    *,
    created_at: int = FIXED_NOW,
    kind: int = 1,
    tags: Sequence[Sequence[str]] = (),
) -> Event:
    """Build, sign and wrap an event directly with nostr-sdk."""
    signed = (
        EventBuilder(Kind(kind), content)
        .tags([Tag.parse(list(tag)) for tag in tags])
        .custom_created_at(Timestamp.from_secs(created_at))
        .sign_with_keys(keys)
    )
    return Event(signed)


@pytest.fixture
def make_event(source_keys: Keys) -> Callable[..., Event]:
    """Factory for signed events, authored by ``source_keys`` unless ``keys`` is given."""

    def _make(content: str = "gm nostr", *, keys: Keys | None = None, **kwargs: object) -> Event:
        return sign_event(keys or source_keys, content, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def source_events(make_event: Callable[..., Event]) -> list[Event]:
    """Three text notes, newest first."""
    return [
        make_event("third", created_at=FIXED_NOW - 10, tags=[["t", "nostr"]]),
        make_event("second", created_at=FIXED_NOW - 20),
        make_event("first", created_at=FIXED_NOW - 30, tags=[["p", "a" * 64]]),
    ]


# ============================================================================
# Relay Fixtures
# ============================================================================


@pytest.fixture
def relays() -> list[Relay]:
    """Two clearnet relays."""
    return [Relay("wss://relay.one.example"), Relay("wss://relay.two.example")]


@pytest.fixture
def mock_relay_pool(source_events: list[Event]) -> MagicMock:
    """RelayPool mock: returns ``source_events`` and accepts every publish on the first relay."""
    pool = MagicMock(spec=RelayPool)
    pool.query_authored_events = AsyncMock(return_value=source_events)

    async def _publish(relays: Sequence[Relay], event: Event) -> PublishOutcome:
        return PublishOutcome(event=event, relay=relays[0].url)

    pool.publish_to_any = AsyncMock(side_effect=_publish)
    pool.close = AsyncMock()
    return pool
