# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Structured logging output for the fake XML-RPC server.

Provides :class:`JsonFormatter`, which renders each record as a single-line
JSON object including every ``extra`` field (``action``, ``request_id``,
``fault_code``, ...), and :func:`configure_logging`, which the CLI uses to
attach a stderr handler to the ``fake_xmlrpc`` loggers.

This module is **not** auto-imported by ``fake_xmlrpc``; import it explicitly::

    from fake_xmlrpc.logging_utils import JsonFormatter
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Literal

__all__ = ["KNOWN_LOGGERS", "JsonFormatter", "configure_logging"]

KNOWN_LOGGERS: tuple[str, ...] = (
    "fake_xmlrpc",
    "fake_xmlrpc.access",
    "fake_xmlrpc.dispatch",
    "fake_xmlrpc.fixtures",
    "fake_xmlrpc.http",
    "fake_xmlrpc.reporter",
    "fake_xmlrpc.server",
)

# Attribute names present on every LogRecord; anything else came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}

_OUTPUT_KEYS: frozenset[str] = frozenset({"ts", "level", "logger", "message", "exception", "stack_info"})


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON.

    The keys ``ts``, ``level``, ``logger`` and ``message`` are always present
    and win over ``extra`` fields of the same name.  ``static_fields`` are
    added to every record (e.g. a test-run identifier).  Values that are not
    JSON-serializable are rendered with ``str``.
    """

    def __init__(self, static_fields: Mapping[str, object] | None = None) -> None:
        """Initialize with optional fields stamped onto every record."""
        super().__init__()
        self._static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string."""
        payload: dict[str, object] = dict(self._static_fields)
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in _OUTPUT_KEYS
        )
        payload["ts"] = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        payload["level"] = record.levelname
        payload["logger"] = record.name
        payload["message"] = record.getMessage()
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: str,
    *,
    fmt: Literal["text", "json"] = "text",
    loggers: Iterable[str] = ("fake_xmlrpc",),
) -> logging.Handler:
    """Attach a stderr handler to *loggers* at *level*.

    Args:
        level: Level name such as ``"INFO"`` or ``"DEBUG"``.
        fmt: ``"text"`` for a human-readable layout, ``"json"`` for
            :class:`JsonFormatter`.
        loggers: Logger names to configure.

    Returns:
        The installed handler (so callers can remove it again).

    Raises:
        ValueError: If *level* is not a known level name.

    """
    numeric_level = logging.getLevelNamesMapping().get(level.upper())
    if numeric_level is None:
        raise ValueError(f"unknown log level {level!r}")

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(name)-24s %(levelname)-7s %(message)s"))

    for name in loggers:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.addHandler(handler)
    return handler
