"""Clone service for Excalibur.

Re-publishes the short text notes of one Nostr identity under another.
A single [run()][excalibur.services.clone.ClonePipeline.run] walks the
states of [CloneState][excalibur.models.constants.CloneState]:

1. ``VALIDATING_INPUT``: decode the source ``npub`` and, if supplied, the
   destination ``nsec``.
2. ``QUERYING``: fetch the source's kind-1 events from every relay
   concurrently via
   [RelayPool.query_authored_events()][excalibur.services.common.relay_pool.RelayPool.query_authored_events].
   Without a destination key the run stops here.
3. ``TRANSFORMING``: re-sign each event under the destination key with a
   fresh ``created_at`` from the injected clock.
4. ``PUBLISHING``: publish each cloned event, first relay to accept wins,
   pausing ``publishing.delay`` seconds between events.
5. ``DONE``.

Any key, signing or empty-query error moves the run to ``FAILED`` with one
human-readable message; nothing is published after a failure. Per-relay
and per-event publish failures are logged and the run continues.

Note:
    The destination secret key only lives for the duration of ``run()``.
    It is never logged and never stored on the pipeline.

See Also:
    [CloneConfig][excalibur.services.clone.CloneConfig]: Relay list,
        query limit, pacing and pool timeouts.
    [sign_as_new_event][excalibur.nips.nip01.sign_as_new_event]: Signs each
        cloned event.

Examples:
    ```python
    from excalibur.services.clone import ClonePipeline

    pipeline = ClonePipeline.from_yaml("config/clone.yaml", on_status=print)
    result = await pipeline.run("npub1...", os.environ.get("EXCALIBUR_NSEC"))
    for event in result.cloned_events:
        print(event.id, event.content)
    ```
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, ClassVar

from nostr_sdk import SecretKey

from excalibur.core.exceptions import (
    ConfigurationError,
    ExcaliburError,
    KeyDecodeError,
    NoEventsFoundError,
    SigningError,
)
from excalibur.core.logger import Logger
from excalibur.core.yaml import load_yaml
from excalibur.models.clone import CloneResult, PublishOutcome
from excalibur.models.constants import CloneState, EventKind
from excalibur.nips.nip01 import clone_template, derive_public_key, sign_as_new_event
from excalibur.services.common.relay_pool import RelayPool
from excalibur.utils.keys import decode_public_key, decode_secret_key
from excalibur.utils.parsing import parse_relays

from .configs import CloneConfig


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from nostr_sdk import PublicKey

    from excalibur.models.event import Event
    from excalibur.models.relay import Relay


def _unix_now() -> int:
    return int(time.time())


class ClonePipeline:
    """One-shot pipeline that clones an identity's notes onto another key.

    A pipeline can be reused for several sequential runs; every run starts
    from ``IDLE`` and only the last run's state, status, error and cloned
    events are kept.

    Args:
        config: Service configuration. Defaults to ``CloneConfig()``.
        relay_pool: Pool used for query and publish. When omitted, each run
            builds its own from ``config.pool`` and closes it before
            returning. An injected pool is left open for the caller.
        clock: Returns the current unix time in seconds; sampled once per
            cloned event.
        sleep: Coroutine used for the pacing delay between publishes.
        on_status: Called with every new status message.

    See Also:
        [CloneResult][excalibur.models.clone.CloneResult]: Value returned
            by every run.
    """

    SERVICE_NAME: ClassVar[str] = "clone"
    CONFIG_CLASS: ClassVar[type[CloneConfig]] = CloneConfig

    def __init__(
        self,
        config: CloneConfig | None = None,
        *,
        relay_pool: RelayPool | None = None,
        clock: Callable[[], int] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config if config is not None else self.CONFIG_CLASS()
        self._relay_pool = relay_pool
        self._clock = clock or _unix_now
        self._sleep = sleep or asyncio.sleep
        self._on_status = on_status
        self._logger = Logger(self.SERVICE_NAME)

        self._state = CloneState.IDLE
        self._status = ""
        self._error_message: str | None = None
        self._cloned_events: tuple[Event, ...] = ()

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> ClonePipeline:
        """Create a pipeline from a YAML configuration file.

        Args:
            config_path: Path to the YAML configuration file.
            **kwargs: Forwarded to the constructor (``relay_pool``, ``clock``,
                ``sleep``, ``on_status``).

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file is not valid YAML.
            pydantic.ValidationError: If the values do not validate.
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> ClonePipeline:
        """Create a pipeline from a configuration dictionary."""
        return cls(config=cls.CONFIG_CLASS.model_validate(data), **kwargs)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> CloneConfig:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def state(self) -> CloneState:
        return self._state

    @property
    def status(self) -> str:
        """Latest progress message."""
        return self._status

    @property
    def error_message(self) -> str | None:
        """Message of the fatal error that ended the last run, if any."""
        return self._error_message

    @property
    def cloned_events(self) -> tuple[Event, ...]:
        """Events re-signed by the last completed run."""
        return self._cloned_events

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(
        self,
        source: str,
        destination_secret: str | SecretKey | None = None,
        relays: Sequence[str | Relay] | None = None,
    ) -> CloneResult:
        """Clone every text note of *source* onto *destination_secret*.

        Args:
            source: Source identity as ``npub1...``.
            destination_secret: Destination identity as ``nsec1...`` text or
                an already decoded ``SecretKey``. ``None`` or blank runs the
                query only and clones nothing.
            relays: Relays to query and publish to for this run only. Invalid
                entries are dropped. Defaults to ``config.relays``.

        Returns:
            The run's [CloneResult][excalibur.models.clone.CloneResult].
            Expected failures (bad keys, no events, signing errors) are
            reported through ``state``/``error_message`` rather than raised.
        """
        self._state = CloneState.IDLE
        self._status = ""
        self._error_message = None
        self._cloned_events = ()

        self._transition(CloneState.VALIDATING_INPUT, "Validating keys...")
        try:
            source_key = decode_public_key(source)
            secret_key = self._decode_destination(destination_secret)
        except KeyDecodeError as e:
            return self._fail(e)

        run_relays = self._config.relays if relays is None else parse_relays(relays)
        if not run_relays:
            return self._fail(ConfigurationError("No valid relays to clone with"))

        self._logger.info(
            "clone_started",
            source=source_key.to_hex(),
            relays=len(run_relays),
            clone=secret_key is not None,
        )

        if self._relay_pool is not None:
            return await self._run(self._relay_pool, run_relays, source_key, secret_key)

        async with RelayPool(self._config.pool) as pool:
            return await self._run(pool, run_relays, source_key, secret_key)

    @staticmethod
    def _decode_destination(value: str | SecretKey | None) -> SecretKey | None:
        if isinstance(value, SecretKey):
            return value
        if value is None or not value.strip():
            return None
        return decode_secret_key(value)

    async def _run(
        self,
        pool: RelayPool,
        relays: Sequence[Relay],
        source_key: PublicKey,
        secret_key: SecretKey | None,
    ) -> CloneResult:
        self._transition(CloneState.QUERYING, "Fetching events...")
        source_events = await pool.query_authored_events(
            relays,
            source_key,
            kinds=(EventKind.TEXT_NOTE,),
            limit=self._config.query.limit,
        )
        if not source_events:
            return self._fail(NoEventsFoundError("No events found for this pubkey"))

        total = len(source_events)
        self._set_status(f"Found {total} events to clone...")

        if secret_key is None:
            self._state = CloneState.DONE
            self._set_status(f"Found {total} events; no destination key supplied, nothing cloned")
            self._logger.info("clone_skipped", reason="no_destination_key", events=total)
            return self._result(source_events)

        self._transition(CloneState.TRANSFORMING, "Cloning events...")
        try:
            cloned = self._clone_events(source_events, secret_key)
        except SigningError as e:
            return self._fail(e, source_events)
        self._cloned_events = tuple(cloned)

        self._transition(CloneState.PUBLISHING, "Publishing events...")
        outcomes = await self._publish_events(pool, relays, cloned)

        self._state = CloneState.DONE
        self._set_status("Complete!")
        result = self._result(source_events, outcomes)
        self._logger.info(
            "clone_completed",
            events=total,
            published=result.published,
            failed=result.failed,
        )
        return result

    def _clone_events(self, source_events: Sequence[Event], secret_key: SecretKey) -> list[Event]:
        """Re-sign every source event, in order, under *secret_key*."""
        author = derive_public_key(secret_key)
        total = len(source_events)
        cloned: list[Event] = []
        for index, event in enumerate(source_events, start=1):
            self._set_status(f"Cloning event {index}/{total}...")
            try:
                template = clone_template(event, author, self._clock())
            except (TypeError, ValueError) as e:
                raise SigningError(f"Cannot clone event {event.id[:16]}...: {e}") from e
            cloned.append(sign_as_new_event(template, secret_key))
        return cloned

    async def _publish_events(
        self, pool: RelayPool, relays: Sequence[Relay], cloned: Sequence[Event]
    ) -> list[PublishOutcome]:
        """Publish events one at a time; a failed event never stops the loop."""
        delay = self._config.publishing.delay
        total = len(cloned)
        outcomes: list[PublishOutcome] = []
        for index, event in enumerate(cloned, start=1):
            self._set_status(f"Publishing event {index}/{total}...")
            outcome = await pool.publish_to_any(relays, event)
            if not outcome.success:
                self._logger.warning(
                    "event_publish_failed",
                    index=index,
                    id=event.id,
                    errors="; ".join(f"{url}: {msg}" for url, msg in outcome.errors.items()),
                )
            outcomes.append(outcome)
            if index < total and delay > 0:
                await self._sleep(delay)
        return outcomes

    # -------------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------------

    def _transition(self, state: CloneState, status: str) -> None:
        self._logger.debug("state_changed", previous=self._state, state=state)
        self._state = state
        self._set_status(status)

    def _set_status(self, status: str) -> None:
        self._status = status
        if self._on_status is not None:
            self._on_status(status)

    def _fail(self, error: ExcaliburError, source_events: Sequence[Event] = ()) -> CloneResult:
        self._logger.error(
            "clone_failed",
            state=self._state,
            error_type=type(error).__name__,
            error=str(error),
        )
        self._state = CloneState.FAILED
        self._error_message = str(error)
        self._cloned_events = ()
        return self._result(source_events)

    def _result(
        self,
        source_events: Sequence[Event],
        outcomes: Sequence[PublishOutcome] = (),
    ) -> CloneResult:
        return CloneResult(
            state=self._state,
            status=self._status,
            error_message=self._error_message,
            source_events=tuple(source_events),
            cloned_events=self._cloned_events,
            outcomes=tuple(outcomes),
        )

    def __repr__(self) -> str:
        return f"ClonePipeline(state={self._state}, relays={len(self._config.relays)})"
