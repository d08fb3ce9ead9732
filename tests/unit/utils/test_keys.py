"""
Unit tests for utils.keys module.

Tests:
- decode_public_key() / decode_secret_key() - prefix, bech32 and entity checks
- load_secret_key_from_env() - environment variable loading
- KeysConfig - Pydantic model naming the env var
"""

from unittest.mock import MagicMock, patch

import pytest
from nostr_sdk import Keys, PublicKey, SecretKey

from excalibur.core.exceptions import InvalidFormatError, KeyDecodeError, WrongKeyTypeError
from excalibur.utils.keys import (
    ENV_SECRET_KEY,
    KeysConfig,
    decode_public_key,
    decode_secret_key,
    load_secret_key_from_env,
)


# =============================================================================
# Test Constants
# =============================================================================

# Valid secp256k1 test keys (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)


# =============================================================================
# decode_public_key() Tests
# =============================================================================


class TestDecodePublicKey:
    """decode_public_key() behavior."""

    def test_round_trip(self):
        npub = Keys.generate().public_key().to_bech32()
        assert decode_public_key(npub).to_bech32() == npub

    def test_returns_sdk_public_key(self):
        keys = Keys.generate()
        decoded = decode_public_key(keys.public_key().to_bech32())
        assert isinstance(decoded, PublicKey)
        assert decoded.to_hex() == keys.public_key().to_hex()

    def test_strips_whitespace(self):
        npub = Keys.generate().public_key().to_bech32()
        assert decode_public_key(f"  {npub}\n").to_bech32() == npub

    @pytest.mark.parametrize(
        "text",
        ["", "npub", "nsec1abc", "NPUB1abc", "abc", VALID_HEX_KEY, "note1xyz"],
    )
    def test_wrong_prefix(self, text: str):
        with pytest.raises(InvalidFormatError, match="Must start with npub1"):
            decode_public_key(text)

    def test_nsec_given_as_npub(self):
        with pytest.raises(InvalidFormatError, match="Must start with npub1"):
            decode_public_key(VALID_NSEC_KEY)

    def test_bad_checksum(self):
        npub = Keys.generate().public_key().to_bech32()
        corrupted = npub[:-1] + ("q" if npub[-1] != "q" else "p")
        with pytest.raises(InvalidFormatError, match="^Invalid npub$"):
            decode_public_key(corrupted)

    def test_garbage_payload(self):
        with pytest.raises(InvalidFormatError, match="^Invalid npub$"):
            decode_public_key("npub1invalid")

    def test_wrong_entity(self):
        npub = Keys.generate().public_key().to_bech32()
        nip19 = MagicMock()
        nip19.from_bech32.return_value.as_enum.return_value = MagicMock()
        with (
            patch("excalibur.utils.keys.Nip19", nip19),
            pytest.raises(WrongKeyTypeError, match="Invalid npub"),
        ):
            decode_public_key(npub)


# =============================================================================
# decode_secret_key() Tests
# =============================================================================


class TestDecodeSecretKey:
    """decode_secret_key() behavior."""

    def test_known_key(self):
        assert decode_secret_key(VALID_NSEC_KEY).to_hex() == VALID_HEX_KEY

    def test_returns_sdk_secret_key(self):
        keys = Keys.generate()
        decoded = decode_secret_key(keys.secret_key().to_bech32())
        assert isinstance(decoded, SecretKey)
        assert decoded.to_hex() == keys.secret_key().to_hex()

    def test_round_trip(self):
        nsec = Keys.generate().secret_key().to_bech32()
        assert decode_secret_key(nsec).to_bech32() == nsec

    def test_hex_rejected(self):
        with pytest.raises(InvalidFormatError, match="Must start with nsec1"):
            decode_secret_key(VALID_HEX_KEY)

    def test_npub_given_as_nsec(self):
        npub = Keys.generate().public_key().to_bech32()
        with pytest.raises(InvalidFormatError, match="Must start with nsec1"):
            decode_secret_key(npub)

    def test_garbage_payload(self):
        with pytest.raises(InvalidFormatError, match="^Invalid nsec$"):
            decode_secret_key("nsec1invalid")

    def test_error_does_not_echo_input(self):
        corrupted = VALID_NSEC_KEY[:-1] + "q"
        with pytest.raises(KeyDecodeError) as exc_info:
            decode_secret_key(corrupted)
        assert corrupted not in str(exc_info.value)

    def test_wrong_entity(self):
        nip19 = MagicMock()
        nip19.from_bech32.return_value.as_enum.return_value = MagicMock()
        with (
            patch("excalibur.utils.keys.Nip19", nip19),
            pytest.raises(WrongKeyTypeError, match="Invalid nsec"),
        ):
            decode_secret_key(VALID_NSEC_KEY)


# =============================================================================
# load_secret_key_from_env() Tests
# =============================================================================


class TestLoadSecretKeyFromEnv:
    """Environment variable loading."""

    def test_default_env_name(self):
        assert ENV_SECRET_KEY == "EXCALIBUR_NSEC"  # pragma: allowlist secret

    def test_loads_nsec(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EXCALIBUR_NSEC", VALID_NSEC_KEY)
        key = load_secret_key_from_env()
        assert key is not None
        assert key.to_hex() == VALID_HEX_KEY

    def test_custom_env_name(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MY_NSEC", VALID_NSEC_KEY)
        key = load_secret_key_from_env("MY_NSEC")
        assert key is not None

    def test_unset_is_none(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("EXCALIBUR_NSEC", raising=False)
        assert load_secret_key_from_env() is None

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_is_none(self, monkeypatch: pytest.MonkeyPatch, value: str):
        monkeypatch.setenv("EXCALIBUR_NSEC", value)
        assert load_secret_key_from_env() is None

    def test_invalid_raises(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EXCALIBUR_NSEC", VALID_HEX_KEY)
        with pytest.raises(InvalidFormatError):
            load_secret_key_from_env()


# =============================================================================
# KeysConfig Tests
# =============================================================================


class TestKeysConfig:
    """KeysConfig Pydantic model."""

    def test_default(self):
        assert KeysConfig().secret_key_env == "EXCALIBUR_NSEC"

    def test_empty_env_name_rejected(self):
        with pytest.raises(ValueError):
            KeysConfig(secret_key_env="")

    def test_load_secret_key(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CLONE_TARGET", VALID_NSEC_KEY)
        key = KeysConfig(secret_key_env="CLONE_TARGET").load_secret_key()
        assert key is not None
        assert key.to_hex() == VALID_HEX_KEY

    def test_load_secret_key_unset(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("CLONE_TARGET", raising=False)
        assert KeysConfig(secret_key_env="CLONE_TARGET").load_secret_key() is None
