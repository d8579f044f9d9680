"""
Logging helpers for the SAYMON datasource.

Records are rendered as ``time | level | logger | message | key=value ...`` so
one backend call can be followed from the datasource into the transport.
Request-related keys are printed first, the rest alphabetically. Modules obtain
loggers via :func:`get_logger` instead of installing their own handlers.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging import LoggerAdapter
from typing import Any, Iterator, Mapping, MutableMapping, Optional

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "WARNING"
LEVEL_ENV = "SAYMON_LOG_LEVEL"
LEADING_KEYS = ("datasource", "operation", "method", "url", "status_code", "target", "error")

_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

_configured = False


def resolve_level(level: Optional[int | str] = None) -> int:
    """Translate a level name (or ``SAYMON_LOG_LEVEL``) into a numeric level."""

    if isinstance(level, int):
        return level
    name = (level or os.getenv(LEVEL_ENV) or DEFAULT_LEVEL).upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.WARNING


def _record_extras(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    extras = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS and not key.startswith("_") and value is not None}
    ordered = [key for key in LEADING_KEYS if key in extras]
    ordered += sorted(key for key in extras if key not in LEADING_KEYS)
    for key in ordered:
        yield key, extras[key]


def _render_value(value: Any) -> str:
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, (list, tuple, set)):
        return "[" + ", ".join(_render_value(item) for item in value) + "]"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends the record's structured extras as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = " ".join(f"{key}={_render_value(value)}" for key, value in _record_extras(record))
        return f"{line} | {pairs}" if pairs else line


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install a stderr handler with :class:`StructuredLogFormatter` on the root logger.

    Does nothing when already configured unless ``force`` is set.
    """

    global _configured
    if _configured and not force:
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(StructuredLogFormatter())
    logging.basicConfig(level=resolve_level(level), handlers=[handler], force=force)
    _configured = True


class BoundLogger(LoggerAdapter):
    """Logger adapter whose bound fields are merged with each call's ``extra``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str, *, extra: Optional[Mapping[str, object]] = None) -> BoundLogger:
    """Return a :class:`BoundLogger` for ``name`` carrying the non-``None`` fields of ``extra``."""

    configure_logging()
    bound = {key: value for key, value in (extra or {}).items() if value is not None}
    return BoundLogger(logging.getLogger(name), bound)
