"""Logging utilities for nodeguard.

This module provides:
- Logging configuration from GuardConfig
- Safe preview utilities for permission lists and other log values
- Secret redaction
- Structured logging with caller_id / request_id propagation
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import GuardConfig, LogLevel

# Patterns for detecting secrets that may leak into session values or claims
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'[a-f0-9]{32,}',
]

_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "caller_id", "request_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value.

    Sets and frozensets are sorted first so permission lists log
    deterministically.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (set, frozenset)):
        s = json.dumps(sorted(str(v) for v in value), ensure_ascii=False)
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"
    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Replace common secret patterns in text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)
    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """safe_preview() followed by redact_secrets()."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GuardFormatter(logging.Formatter):
    """Formatter emitting JSON or plain text with caller context.

    Extra record attributes are rendered through safe_log_value().
    """

    def __init__(
        self,
        json_format: bool = False,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        caller_id = getattr(record, "caller_id", None)
        request_id = getattr(record, "request_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if caller_id:
            log_data["caller_id"] = str(caller_id)
        if request_id:
            log_data["request_id"] = str(request_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        if caller_id:
            parts.append(f"caller={log_data['caller_id']}")
        if request_id:
            parts.append(f"request={log_data['request_id']}")
        parts.append(f": {log_data['message']}")
        text = " ".join(parts)
        if "exception" in log_data:
            text = f"{text}\n{log_data['exception']}"
        return text


class CallerLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds caller_id and request_id to records.

    Usage:
        logger = get_guard_logger(__name__, caller_id="alice")
        logger.warning("denied", request_id="r-42")
    """

    def __init__(
        self,
        logger: logging.Logger,
        caller_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.caller_id = caller_id
        self.request_id = request_id

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        caller_id = kwargs.pop("caller_id", self.caller_id)
        request_id = kwargs.pop("request_id", self.request_id)

        extra = dict(kwargs.get("extra") or {})
        if caller_id:
            extra["caller_id"] = caller_id
        if request_id:
            extra["request_id"] = request_id
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[GuardConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure the root logger from a GuardConfig.

    Args:
        config: GuardConfig instance (if None, loads from environment)
        json_format: Override config.log_json
        redact_secrets: Whether to redact secrets from log messages
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)
    use_json = config.log_json if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(GuardFormatter(json_format=use_json, redact_secrets=redact_secrets))
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_guard_logger(
    name: str,
    caller_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> CallerLoggerAdapter:
    """Get a CallerLoggerAdapter for ``name``."""
    return CallerLoggerAdapter(logging.getLogger(name), caller_id=caller_id, request_id=request_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "GuardFormatter",
    "CallerLoggerAdapter",
    "setup_logging",
    "get_guard_logger",
]
