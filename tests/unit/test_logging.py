"""Unit tests for logging configuration."""

import json
import logging

import pytest
import structlog

from microsoft365_mailer.logging import redact_secrets, setup_logging


def last_event(err: str) -> dict:
    return json.loads(err.strip().splitlines()[-1])


@pytest.mark.unit
class TestSetupLogging:
    def test_json_events_go_to_stderr(self, capsys):
        setup_logging(log_level="INFO", log_format="json")

        structlog.get_logger("microsoft365_mailer.tests").info("Email sent", message_id="abc@example.com")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = last_event(captured.err)
        assert event["event"] == "Email sent"
        assert event["level"] == "info"
        assert event["logger"] == "microsoft365_mailer.tests"
        assert event["message_id"] == "abc@example.com"
        assert "timestamp" in event

    def test_console_format(self, capsys):
        setup_logging(log_level="INFO", log_format="console")

        structlog.get_logger("microsoft365_mailer.tests").warning("Draft left in mailbox", message_id="mock-id-1")

        err = capsys.readouterr().err
        assert "Draft left in mailbox" in err
        assert "message_id=mock-id-1" in err
        assert not err.lstrip().startswith("{")

    def test_events_below_level_are_dropped(self, capsys):
        setup_logging(log_level="WARNING", log_format="json")
        logger = structlog.get_logger("microsoft365_mailer.tests")

        logger.info("Email sent")
        logger.error("Email send failed")

        lines = capsys.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["Email send failed"]

    def test_noisy_libraries_are_quieted(self):
        setup_logging(log_level="DEBUG", log_format="json")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        assert logging.getLogger("msal").level == logging.WARNING
        assert logging.getLogger("microsoft365_mailer").level == logging.DEBUG

    def test_repeated_setup_keeps_one_handler(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger("microsoft365_mailer").handlers) == 1

    def test_secrets_are_redacted(self, capsys):
        setup_logging(log_level="INFO", log_format="json")

        structlog.get_logger("microsoft365_mailer.tests").info("Token acquired", client_secret="s3cr3t-value")

        err = capsys.readouterr().err
        assert "s3cr3t-value" not in err
        assert last_event(err)["client_secret"] == "[REDACTED]"


@pytest.mark.unit
def test_redact_secrets_leaves_other_keys():
    event = redact_secrets(None, "info", {"event": "x", "password": "pw", "username": "info@example.com"})

    assert event == {"event": "x", "password": "[REDACTED]", "username": "info@example.com"}
