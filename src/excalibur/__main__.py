"""CLI entry point for Excalibur.

Clones every short text note of one Nostr identity onto another. The source
identity is given as an ``npub`` argument; the destination secret key is
read from an environment variable (``EXCALIBUR_NSEC`` by default) and is
never accepted on the command line. Without it, the run only reports how
many events it found.

Examples:
    ```bash
    python -m excalibur npub1... --relay wss://relay.damus.io --relay wss://nos.lol
    EXCALIBUR_NSEC=nsec1... excalibur npub1... --config config/clone.yaml
    excalibur npub1... --limit 10 --log-level DEBUG --json-logs
    ```
"""

import argparse
import asyncio
import datetime
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from excalibur.core.exceptions import ConfigurationError, KeyDecodeError
from excalibur.core.logger import Logger, StructuredFormatter
from excalibur.core.yaml import load_yaml
from excalibur.models.event import Event
from excalibur.services.clone import CloneConfig, ClonePipeline


CONFIG_PATH = Path("config") / "clone.yaml"

logger = Logger("cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the cloner."""
    parser = argparse.ArgumentParser(
        prog="excalibur",
        allow_abbrev=False,
        description="Clone a Nostr identity's notes onto another key",
    )

    parser.add_argument("npub", help="Source identity (npub1...)")

    parser.add_argument(
        "--relay",
        dest="relays",
        action="append",
        metavar="URL",
        help="Relay to query and publish to; repeat for several (overrides the config)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help=f"Config path (default: {CONFIG_PATH})",
    )

    parser.add_argument(
        "--nsec-env",
        metavar="NAME",
        help="Environment variable holding the destination nsec (default: EXCALIBUR_NSEC)",
    )

    parser.add_argument("--limit", type=int, help="Maximum number of events to clone")

    parser.add_argument(
        "--delay",
        type=float,
        metavar="SECONDS",
        help="Pause between consecutive publishes",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit one JSON object per log line",
    )

    return parser.parse_args(argv)


def setup_logging(level: str, *, json_output: bool = False) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that output
    from both ``Logger`` and plain ``logging.getLogger()`` calls in
    models/utils/nips is rendered the same way.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(json_output=json_output))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.info("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def build_config(args: argparse.Namespace) -> CloneConfig:
    """Merge the YAML config with command-line overrides and validate it.

    Raises:
        ConfigurationError: If the merged configuration does not validate.
    """
    config_dict = _load_yaml_dict(args.config)

    if args.relays:
        config_dict["relays"] = args.relays
    if args.limit is not None:
        config_dict.setdefault("query", {})["limit"] = args.limit
    if args.delay is not None:
        config_dict.setdefault("publishing", {})["delay"] = args.delay
    if args.nsec_env:
        config_dict.setdefault("keys", {})["secret_key_env"] = args.nsec_env

    try:
        return CloneConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def format_event_line(index: int, event: Event) -> str:
    """Render one cloned event as ``#i  <local datetime>  <content>``."""
    when = datetime.datetime.fromtimestamp(event.created_at).strftime("%Y-%m-%d %H:%M:%S")
    return f"#{index}  {when}  {event.content}"


def _print_status(status: str) -> None:
    print(status, file=sys.stderr, flush=True)


async def run_clone(args: argparse.Namespace) -> int:
    """Run one clone and print the cloned events.

    Returns:
        Exit code: 0 when the run finished, 1 when it failed.
    """
    config = build_config(args)
    secret_key = config.keys.load_secret_key()

    pipeline = ClonePipeline(config, on_status=_print_status)
    result = await pipeline.run(args.npub, secret_key)

    if not result.ok:
        print(f"Error: {result.error_message}", file=sys.stderr)
        return 1

    for index, event in enumerate(result.cloned_events, start=1):
        print(format_event_line(index, event))
    if result.failed:
        print(
            f"{result.failed} of {len(result.outcomes)} events were rejected by every relay",
            file=sys.stderr,
        )
    return 0


async def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point: parse args, configure logging and run the clone."""
    args = parse_args(argv)
    setup_logging(args.log_level, json_output=args.json_logs)

    try:
        return await run_clone(args)
    except ConfigurationError as e:
        logger.error("config_invalid", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyDecodeError as e:
        logger.error("secret_key_invalid", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    cli()
