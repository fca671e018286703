"""Tests for nodeguard.logging module."""

from __future__ import annotations

import json
import logging
import os
from unittest.mock import patch

import pytest

from nodeguard import (
    GuardConfig,
    LogLevel,
    get_guard_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from nodeguard.logging import GuardFormatter


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _record(msg: str = "Test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSafePreview:
    """Tests for safe_preview function."""

    def test_none_value(self) -> None:
        """None renders as an empty string."""
        assert safe_preview(None) == ""

    def test_string_with_whitespace(self) -> None:
        """Whitespace is collapsed to single spaces."""
        assert safe_preview("users\n\tmanage  now") == "users manage now"

    def test_string_truncation(self) -> None:
        """Long values are cut with an ellipsis."""
        result = safe_preview("a" * 300, limit=100)
        assert len(result) == 100
        assert result.endswith("…")

    def test_permission_set_sorted(self) -> None:
        """Permission sets render sorted for stable log lines."""
        assert safe_preview(frozenset({"b", "a", "c"})) == '["a", "b", "c"]'

    def test_dict_value(self) -> None:
        """Dicts are rendered as JSON."""
        assert safe_preview({"key": "admin.users"}) == '{"key": "admin.users"}'


class TestRedactSecrets:
    """Tests for redact_secrets function."""

    def test_password_pattern(self) -> None:
        """Password assignments are redacted."""
        result = redact_secrets('password: "secret123"')
        assert "[REDACTED]" in result
        assert "secret123" not in result

    def test_bearer_token(self) -> None:
        """Bearer tokens are redacted."""
        result = redact_secrets("Authorization: Bearer abc123def456")
        assert "abc123def456" not in result

    def test_no_secrets(self) -> None:
        """Plain permission names pass through."""
        assert redact_secrets("users.manage;posts.read") == "users.manage;posts.read"

    def test_non_string(self) -> None:
        """Non-strings are returned unchanged."""
        assert redact_secrets(None) is None  # type: ignore[arg-type]

    def test_custom_replacement(self) -> None:
        """The replacement text is configurable."""
        assert "***" in redact_secrets("token=abc", replacement="***")


class TestSafeLogValue:
    """Tests for safe_log_value function."""

    def test_with_redaction(self) -> None:
        """Secrets are redacted by default."""
        assert "[REDACTED]" in safe_log_value("api_key=sk-123")

    def test_without_redaction(self) -> None:
        """Redaction can be disabled."""
        assert safe_log_value("api_key=sk-123", redact=False) == "api_key=sk-123"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_config(self, restore_root_logger: logging.Logger) -> None:
        """The root level follows the configuration."""
        setup_logging(config=GuardConfig(log_level=LogLevel.DEBUG), json_format=False)
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, GuardFormatter)

    @patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True)
    def test_setup_with_env(self, restore_root_logger: logging.Logger) -> None:
        """Without a config the environment is used."""
        setup_logging(json_format=False)
        assert restore_root_logger.level == logging.WARNING

    def test_json_format(self, capsys: pytest.CaptureFixture, restore_root_logger: logging.Logger) -> None:
        """JSON output carries level, logger and message."""
        setup_logging(config=GuardConfig(), json_format=True)
        logging.getLogger("test").info("Test message")

        data = json.loads(capsys.readouterr().err.strip())
        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert data["logger"] == "test"

    def test_plain_format(self, capsys: pytest.CaptureFixture, restore_root_logger: logging.Logger) -> None:
        """Plain output is a single readable line."""
        setup_logging(config=GuardConfig(log_json=False))
        logging.getLogger("test").info("Test message")

        output = capsys.readouterr().err.strip()
        assert "INFO" in output
        assert "Test message" in output
        assert not output.startswith("{")


class TestGuardFormatter:
    """Tests for GuardFormatter."""

    def test_json_format_with_caller(self) -> None:
        """Caller and request ids become JSON fields."""
        result = GuardFormatter(json_format=True).format(_record(caller_id="alice", request_id="req-1"))
        data = json.loads(result)
        assert data["caller_id"] == "alice"
        assert data["request_id"] == "req-1"

    def test_plain_format_with_caller(self) -> None:
        """Caller and request ids appear in plain output."""
        result = GuardFormatter(json_format=False).format(_record(caller_id="alice", request_id="req-1"))
        assert "caller=alice" in result
        assert "request=req-1" in result
        assert result.endswith(": Test message")

    def test_extra_fields_previewed(self) -> None:
        """Extra record fields are rendered through safe_log_value."""
        record = _record(permissions=frozenset({"b", "a"}))
        data = json.loads(GuardFormatter(json_format=True).format(record))
        assert data["permissions"] == '["a", "b"]'

    def test_message_redacted(self) -> None:
        """Secrets in the message are redacted."""
        result = GuardFormatter(json_format=False).format(_record("session token=abc123"))
        assert "abc123" not in result


class TestCallerLoggerAdapter:
    """Tests for get_guard_logger."""

    def test_caller_id_attached(self, caplog: pytest.LogCaptureFixture) -> None:
        """Records carry the adapter's caller_id."""
        logger = get_guard_logger("test", caller_id="alice")
        with caplog.at_level(logging.INFO):
            logger.info("Checked node")
        assert caplog.records[-1].caller_id == "alice"

    def test_per_call_override(self, caplog: pytest.LogCaptureFixture) -> None:
        """caller_id and request_id may be passed per call."""
        logger = get_guard_logger("test", caller_id="alice")
        with caplog.at_level(logging.INFO):
            logger.info("Checked node", caller_id="bob", request_id="req-9")
        record = caplog.records[-1]
        assert record.caller_id == "bob"
        assert record.request_id == "req-9"

    def test_no_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Without ids no extra attributes are set."""
        with caplog.at_level(logging.INFO):
            get_guard_logger("test").info("Plain")
        assert not hasattr(caplog.records[-1], "caller_id")
