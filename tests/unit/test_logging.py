"""
Unit tests for structured logging.
"""

import json
import logging

from labcal.utils.logging import JSONFormatter, log_security_event


def make_record(**extra):
    record = logging.LogRecord("labcal.test", logging.INFO, __file__, 10, "hello %s", ("lab",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSON log lines."""

    def test_basic_fields(self):
        line = json.loads(JSONFormatter().format(make_record()))

        assert line["message"] == "hello lab"
        assert line["level"] == "INFO"
        assert line["logger"] == "labcal.test"

    def test_context_fields_are_copied(self):
        line = json.loads(JSONFormatter().format(make_record(tenant_id="lab-a", status_code=404, unrelated="x")))

        assert line["tenant_id"] == "lab-a"
        assert line["status_code"] == 404
        assert "unrelated" not in line


class TestSecurityEvents:
    """Tests for log_security_event."""

    def test_logs_warning_with_details(self, caplog):
        logger = logging.getLogger("labcal.security-test")

        with caplog.at_level(logging.WARNING, logger="labcal.security-test"):
            log_security_event("failed_login", {"client": "10.0.0.1"}, logger)

        record = caplog.records[-1]
        assert record.getMessage() == "SECURITY EVENT: failed_login"
        assert record.event_type == "failed_login"
        assert record.details == {"client": "10.0.0.1"}
