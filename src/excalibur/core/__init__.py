"""Core layer: errors, structured logging and configuration loading.

Depends only on the standard library and PyYAML; every other layer may
import it.

Attributes:
    ExcaliburError: Root of the exception hierarchy. See
        [excalibur.core.exceptions][excalibur.core.exceptions].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][excalibur.core.logger.Logger].
    YAML: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][excalibur.core.yaml.load_yaml].
"""

from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    ExcaliburError,
    InvalidFormatError,
    KeyDecodeError,
    NoEventsFoundError,
    PublishingError,
    RelayTimeoutError,
    SigningError,
    WrongKeyTypeError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .yaml import load_yaml


__all__ = [
    "ConfigurationError",
    "ConnectivityError",
    "ExcaliburError",
    "InvalidFormatError",
    "KeyDecodeError",
    "Logger",
    "NoEventsFoundError",
    "PublishingError",
    "RelayTimeoutError",
    "SigningError",
    "StructuredFormatter",
    "WrongKeyTypeError",
    "format_kv_pairs",
    "load_yaml",
]
