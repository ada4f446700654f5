"""
Structured logging configuration for slippagesim.

Provides JSON-formatted structured logging with:
- Secret filtering (RPC endpoints, private keys, mnemonics never reach logs)
- Bounded records (long lists summarized, nested dicts depth-capped)
- Determinism-safe (formatting never touches simulation state)

Usage:
    from slippagesim.logging_config import setup_logging, get_logger

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)
    logger.info("message", extra={"key": "value"})
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

# Matches URLs; RPC providers put API keys in the path as often as in the query
_URL_PATTERN = re.compile(r"(https?|wss?)://[^\s\"'<>]+")
_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # 32-byte hex strings (private keys look exactly like this)
    (re.compile(r"\b(0x)?[0-9a-fA-F]{64}\b"), "[HEX32]"),
    # key=value style credentials
    (
        re.compile(r"\b(api[_-]?key|private[_-]?key|secret|password)[=:]\s*['\"]?[\w\-]+['\"]?", re.I),
        "[REDACTED]",
    ),
    # Bearer tokens
    (re.compile(r"\bbearer\s+[\w\-\.]+", re.I), "[TOKEN]"),
]

# Fields dropped when the key matches exactly (case-insensitive)
BLOCKED_FIELDS: frozenset[str] = frozenset(
    {
        "api_key",
        "auth",
        "authorization",
        "key",
        "mnemonic",
        "password",
        "private_key",
        "rpc_url",
        "secret",
        "seed",
        "signer_key",
    }
)

# Fields dropped when the key contains one of these
BLOCKED_SUBSTRINGS: tuple[str, ...] = (
    "api_key",
    "mnemonic",
    "password",
    "private_key",
    "secret",
)

# LogRecord attributes that are not user extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)

MAX_LIST_ITEMS = 10
MAX_DEPTH = 3


def _redact_url(match: re.Match[str]) -> str:
    """Keep scheme and host only."""
    parts = urlsplit(match.group(0))
    if not parts.netloc:
        return "[URL]"
    return f"{parts.scheme}://{parts.hostname or parts.netloc}/[REDACTED]"


def _sanitize_text(text: str) -> str:
    """Remove credentials from free-form text (msg, exc).

    - URLs → scheme://host/[REDACTED]
    - 32-byte hex strings → [HEX32]
    - key=value credentials, bearer tokens → placeholders
    """
    if not text:
        return text
    result = _URL_PATTERN.sub(_redact_url, text)
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _is_blocked(key: str) -> bool:
    key_lower = key.lower()
    if key_lower in BLOCKED_FIELDS:
        return True
    return any(blocked in key_lower for blocked in BLOCKED_SUBSTRINGS)


def _filter_log_record(record: dict[str, Any], *, _depth: int = 0) -> dict[str, Any]:
    """Drop secret fields and bound the size of a log record's extras.

    Recursively filters nested dicts up to depth 3.
    """
    if _depth > MAX_DEPTH:
        return {"_truncated": "max depth exceeded"}

    filtered: dict[str, Any] = {}
    for key, value in record.items():
        if _is_blocked(key):
            continue

        if isinstance(value, (int, float, bool, type(None))):
            filtered[key] = value
        elif isinstance(value, str):
            filtered[key] = _sanitize_text(value)
        elif isinstance(value, (list, tuple)):
            if len(value) <= MAX_LIST_ITEMS:
                filtered[key] = [_sanitize_text(str(v)) for v in value]
            else:
                filtered[key] = f"[list:{len(value)} items]"
        elif isinstance(value, dict):
            filtered[key] = _filter_log_record(value, _depth=_depth + 1)
        else:
            # Decimal, FixedPoint, enums: their str() form
            filtered[key] = _sanitize_text(str(value))

    return filtered


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JsonFormatter(logging.Formatter):
    """JSON log formatter, one object per line.

    Output format:
    {"ts":"2024-01-01T00:00:00.000+00:00","level":"INFO","logger":"module","msg":"...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _sanitize_text(record.getMessage()),
        }

        if record.levelno >= logging.WARNING:
            log_dict["file"] = record.filename
            log_dict["line"] = record.lineno

        if record.exc_info:
            log_dict["exc"] = _sanitize_text(self.formatException(record.exc_info))

        extra = _extras(record)
        if extra:
            log_dict.update(_filter_log_record(extra))

        return json.dumps(log_dict, default=str, ensure_ascii=False)


class SimpleFormatter(logging.Formatter):
    """Human-readable formatter for development and the CLI."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname:8s} {record.name}: {_sanitize_text(record.getMessage())}"
        extra = _extras(record)
        if extra:
            filtered = _filter_log_record(extra)
            if filtered:
                base = f"{base} | " + " ".join(f"{k}={v}" for k, v in filtered.items())
        if record.exc_info:
            base = f"{base}\n{_sanitize_text(self.formatException(record.exc_info))}"
        return base


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = True,
    stream: Any = None,
) -> None:
    """Configure logging for the application. Call once at startup.

    Args:
        level: Log level (default INFO).
        json_format: Use JSON formatter (default True).
        stream: Output stream (default stderr).
    """
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else SimpleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically get_logger(__name__))."""
    return logging.getLogger(name)
