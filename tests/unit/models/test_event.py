"""Tests for models.event module."""

import json
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from nostr_sdk import Keys, NostrSdkError

from excalibur.models import Event


class TestConstruction:
    """Event construction and verification."""

    def test_fields_from_signed_event(self, make_event: Callable[..., Event], source_keys: Keys):
        event = make_event("hello", created_at=1_700_000_123, tags=[["t", "nostr"]])

        assert len(event.id) == 64
        assert event.pubkey == source_keys.public_key().to_hex()
        assert event.created_at == 1_700_000_123
        assert event.kind == 1
        assert event.tags == (("t", "nostr"),)
        assert event.content == "hello"
        assert len(event.sig) == 128

    def test_rejects_non_sdk_event(self):
        with pytest.raises(TypeError, match="_nostr_event"):
            Event(MagicMock())

    def test_rejects_tampered_content(self, make_event: Callable[..., Event]):
        data = make_event("original").to_dict()
        data["content"] = "tampered"
        with pytest.raises((ValueError, NostrSdkError)):
            Event.from_dict(data)

    def test_nostr_event_exposed(self, make_event: Callable[..., Event]):
        event = make_event()
        assert event.nostr_event.id().to_hex() == event.id


class TestSerialization:
    """to_dict() / from_dict() / from_json()."""

    def test_to_dict_shape(self, make_event: Callable[..., Event]):
        data = make_event("hi", tags=[["p", "a" * 64]]).to_dict()
        assert set(data) == {"id", "pubkey", "created_at", "kind", "tags", "content", "sig"}
        assert data["tags"] == [["p", "a" * 64]]

    def test_from_json_preserves_identity(self, make_event: Callable[..., Event]):
        event = make_event("json me")
        restored = Event.from_json(json.dumps(event.to_dict()))
        assert restored == event

    def test_unicode_content(self, make_event: Callable[..., Event]):
        event = make_event('quotes " and emoji \U0001f5e1️\nnewline')
        assert Event.from_dict(event.to_dict()).content == event.content


class TestEquality:
    """Equality and immutability."""

    def test_equal_by_fields(self, make_event: Callable[..., Event]):
        event = make_event()
        assert event == Event(event.nostr_event)
        assert hash(event) == hash(Event(event.nostr_event))

    def test_frozen(self, make_event: Callable[..., Event]):
        event = make_event()
        with pytest.raises(AttributeError):
            event.content = "changed"  # type: ignore[misc]
