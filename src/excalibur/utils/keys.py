"""Bech32 key decoding and destination key loading.

Decodes the two key materials a clone run needs: the source identity's
``npub1...`` public key and the destination identity's ``nsec1...`` secret
key. Bech32 and NIP-19 handling come from ``nostr_sdk``.

Warning:
    Secret keys must **never** be stored in configuration files, passed on
    the command line, or logged. The destination key is read from an
    environment variable and lives only for the duration of one clone run.
    Error messages raised here never echo the rejected input.

See Also:
    [ClonePipeline][excalibur.services.clone.ClonePipeline]: Decodes both
        keys in its ``VALIDATING_INPUT`` step.

Examples:
    ```python
    import os

    source = decode_public_key("npub1...")
    os.environ["EXCALIBUR_NSEC"] = "nsec1..."  # pragma: allowlist secret
    secret = load_secret_key_from_env()
    ```
"""

from __future__ import annotations

import os

from nostr_sdk import Nip19, Nip19Enum, NostrSdkError, PublicKey, SecretKey
from pydantic import BaseModel, Field

from excalibur.core.exceptions import InvalidFormatError, WrongKeyTypeError


ENV_SECRET_KEY = "EXCALIBUR_NSEC"  # pragma: allowlist secret  # Default env var name

NPUB_PREFIX = "npub1"
NSEC_PREFIX = "nsec1"


def _decode_nip19(text: str, prefix: str, label: str) -> Nip19Enum:
    """Check the prefix and bech32-decode *text* into a NIP-19 entity."""
    if not text.startswith(prefix):
        raise InvalidFormatError(f"Invalid {label} format. Must start with {prefix}")
    try:
        return Nip19.from_bech32(text).as_enum()
    except NostrSdkError:
        raise InvalidFormatError(f"Invalid {label}") from None


def decode_public_key(text: str) -> PublicKey:
    """Decode an ``npub1...`` string into a public key.

    Args:
        text: Bech32 public key. Surrounding whitespace is ignored.

    Returns:
        The decoded ``nostr_sdk.PublicKey``.

    Raises:
        InvalidFormatError: If the prefix is not ``npub1`` or the bech32
            payload does not decode.
        WrongKeyTypeError: If the payload decodes to another NIP-19 entity.
    """
    text = text.strip()
    entity = _decode_nip19(text, NPUB_PREFIX, "npub")
    if not isinstance(entity, Nip19Enum.PUBKEY):
        raise WrongKeyTypeError("Invalid npub")
    return PublicKey.parse(text)


def decode_secret_key(text: str) -> SecretKey:
    """Decode an ``nsec1...`` string into a secret key.

    Same contract as [decode_public_key][excalibur.utils.keys.decode_public_key]
    with the ``nsec1`` prefix.

    Raises:
        InvalidFormatError: If the prefix is not ``nsec1`` or the bech32
            payload does not decode.
        WrongKeyTypeError: If the payload decodes to another NIP-19 entity.
    """
    text = text.strip()
    entity = _decode_nip19(text, NSEC_PREFIX, "nsec")
    if not isinstance(entity, Nip19Enum.SECRET):
        raise WrongKeyTypeError("Invalid nsec")
    return SecretKey.parse(text)


def load_secret_key_from_env(env_var: str = ENV_SECRET_KEY) -> SecretKey | None:
    """Load the destination secret key from an environment variable.

    Args:
        env_var: Name of the environment variable holding an ``nsec1...`` key.

    Returns:
        The decoded key, or ``None`` when the variable is unset or empty
        (no destination: the run only queries).

    Raises:
        InvalidFormatError: If the value is not a decodable ``nsec1`` key.
        WrongKeyTypeError: If the value decodes to another NIP-19 entity.
    """
    value = os.getenv(env_var)
    if not value or not value.strip():
        return None
    return decode_secret_key(value)


class KeysConfig(BaseModel):
    """Where the destination secret key comes from.

    Only the environment variable *name* is configured; the key itself is
    never part of the config.

    Attributes:
        secret_key_env: Environment variable holding the destination ``nsec1`` key.
    """

    secret_key_env: str = Field(
        default=ENV_SECRET_KEY,
        min_length=1,
        description="Environment variable name for the destination secret key",
    )

    def load_secret_key(self) -> SecretKey | None:
        """Decode the destination key from ``secret_key_env``, if set."""
        return load_secret_key_from_env(self.secret_key_env)


__all__ = [
    "ENV_SECRET_KEY",
    "KeysConfig",
    "decode_public_key",
    "decode_secret_key",
    "load_secret_key_from_env",
]
