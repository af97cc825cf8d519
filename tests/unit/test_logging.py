"""Tests for log redaction."""

from phishguard.middleware.logging import REDACTED, redact_sensitive


class TestRedaction:
    def test_sensitive_keys_scrubbed(self):
        event = {"event": "login", "token": "abc", "password": "hunter2", "user_id": 1}
        out = redact_sensitive(None, "info", event)
        assert out == {"event": "login", "token": REDACTED, "password": REDACTED, "user_id": 1}

    def test_other_keys_untouched(self):
        event = {"event": "x", "domain": "evil.example"}
        assert redact_sensitive(None, "info", dict(event)) == event
