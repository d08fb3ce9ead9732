"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module. Keyword arguments passed to a
[Logger][excalibur.core.logger.Logger] call are rendered either as
human-readable ``key=value`` pairs (default) or folded into a single JSON
object per line.

The [StructuredFormatter][excalibur.core.logger.StructuredFormatter] reads
the ``structured_kv`` extra attached by ``Logger`` and appends it to the
message. Installed on the root handler, it gives the same
``level name message`` prefix to plain ``logging.getLogger()`` calls from the
models, nips and utils layers.

Warning:
    Never pass secret key material as a keyword argument. Log public keys
    and event ids only.

Examples:
    ```python
    from excalibur.core.logger import Logger

    logger = Logger("clone")
    logger.info("query_completed", relays=2, events=42)
    # Output: info clone query_completed relays=2 events=42

    json_logger = Logger("clone", json_output=True)
    json_logger.info("query_completed", events=42)
    # Output: {"timestamp": "...", "level": "info", "service": "clone", ...}
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_length: int | None) -> str:
    """Stringify *value*, cutting it to *max_length* characters."""
    s = str(value)
    if max_length and len(s) > max_length:
        return s[:max_length] + f"...<truncated {len(s) - max_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values containing whitespace, equals signs or quotes are escaped and
    double-quoted; empty values are rendered as ``key=""``.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            ``None`` disables truncation.
        prefix: String prepended to a non-empty result.

    Returns:
        Formatted string, e.g. ``' relays=2 error="connection refused"'``,
        or ``""`` when *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(v, max_value_length)
        if not s or any(c in s for c in ' ="\''):
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats every record as ``level name message key=value ...``.

    With ``json_output=True`` each record becomes one JSON object with the
    same ``timestamp``/``level``/``service``/``message`` keys that
    [Logger][excalibur.core.logger.Logger] emits in JSON mode, plus the
    structured fields.
    """

    def __init__(self, *, json_output: bool = False) -> None:
        super().__init__()
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if self._json_output:
            payload = {
                "timestamp": datetime.datetime.fromtimestamp(
                    record.created, datetime.UTC
                ).isoformat(),
                "level": record.levelname.lower(),
                "service": record.name,
                "message": record.getMessage(),
                **extra,
            }
            if record.exc_info:
                payload["exception"] = self.formatException(record.exc_info)
            return json.dumps(payload, default=str)

        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    All public methods mirror the standard logging API with an added
    ``**kwargs`` parameter carrying the structured fields.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, passed to ``logging.getLogger``.
            json_output: Emit one JSON object per record instead of key=value pairs.
            max_value_length: Per-value truncation limit. Defaults to 1000.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **{k: _truncate(v, self._max_value_length) for k, v in kwargs.items()},
        }
        return json.dumps(record, default=str)

    def _log(
        self,
        level: int,
        msg: str,
        kwargs: dict[str, Any],
        *,
        exc_info: bool = False,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            level_name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, level_name, kwargs), exc_info=exc_info)
            return
        extra = (
            {"structured_kv": {k: _truncate(v, self._max_value_length) for k, v in kwargs.items()}}
            if kwargs
            else {}
        )
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
