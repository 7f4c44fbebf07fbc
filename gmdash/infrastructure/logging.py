"""
Logging setup for the gmdash CLI, edge server and dashboard.

Everything logs under the "gmdash" logger tree to stderr, so `gmdash snapshot`
can keep stdout for its JSON document. Two output styles:

- human: one line per record, followed by any request context as key=value
- json: one object per record for log collectors in container deployments

Request context travels on the record through ``extra=``; the fields listed in
CONTEXT_FIELDS are picked up by both formatters when present, e.g.

    logger.error("Proxy error", extra={"method": "GET", "path": "/api/n8n/x"})
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Any, Union

HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Upstream fetches set source/url/status; the edge server sets method/path/client.
CONTEXT_FIELDS = ("source", "url", "status", "method", "path", "client")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the CONTEXT_FIELDS attached to *record*, in declaration order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(record_context(record))
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class HumanFormatter(logging.Formatter):
    """Plain text lines; request context is appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(HUMAN_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = record_context(record)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def resolve_level(level: Union[int, str]) -> int:
    """Map a level name such as "debug" to its logging constant."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_format: bool = False,
) -> None:
    """Install a single stderr handler on the "gmdash" logger.

    Args:
        level: Level name or constant; unknown names fall back to INFO.
        json_format: Emit JSON objects instead of human-readable lines.
    """
    level = resolve_level(level)
    root = logging.getLogger("gmdash")
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    root.addHandler(handler)
