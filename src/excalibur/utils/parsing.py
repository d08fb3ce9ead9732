"""Tolerant parsing of raw relay lists into validated models.

Invalid entries are logged at WARNING level and skipped, so a single typo in
a long relay list never aborts a clone run.

The module depends only on :mod:`excalibur.models` and the standard library,
keeping it safe to import from any layer above ``models``.

Examples:
    ```python
    from excalibur.utils.parsing import parse_relays

    relays = parse_relays(["wss://relay.damus.io/", "wss://relay.damus.io", "nope"])
    # [Relay(url='wss://relay.damus.io', network=<NetworkType.CLEARNET: 'clearnet'>)]
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from excalibur.models.relay import Relay


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

_R = TypeVar("_R")
_M = TypeVar("_M")


def models_from_raw(raw_items: Iterable[_R], factory: Callable[[_R], _M]) -> list[_M]:
    """Parse raw values into model instances, skipping invalid entries.

    Calls ``factory(item)`` for each element.  Items that raise
    ``ValueError`` or ``TypeError`` are logged and discarded.
    """
    results: list[_M] = []
    for item in raw_items:
        try:
            results.append(factory(item))
        except (ValueError, TypeError) as e:
            logger.warning("parse_failed value=%s error=%s", item, e)
    return results


def parse_relays(raw_urls: Iterable[str | Relay]) -> list[Relay]:
    """Build an ordered, duplicate-free relay list.

    Already-built [Relay][excalibur.models.relay.Relay] instances pass
    through. Duplicates after normalization are dropped keeping the first
    occurrence.
    """
    relays = models_from_raw(raw_urls, lambda r: r if isinstance(r, Relay) else Relay(r))
    unique = list(dict.fromkeys(relays))
    if len(unique) < len(relays):
        logger.debug("relays_deduplicated before=%d after=%d", len(relays), len(unique))
    return unique


__all__ = [
    "models_from_raw",
    "parse_relays",
]
