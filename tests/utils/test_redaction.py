"""Tests for secret redaction."""

from carrierkit.utils.redaction import (
    REDACTED,
    redact_for_logging,
    sanitize_error_message,
    sanitize_headers,
)


class TestRedactForLogging:
    """Sensitive keys are replaced recursively."""

    def test_top_level_keys(self):
        data = {"apiKey": "k", "password": "p", "name": "Kiss Anna"}
        assert redact_for_logging(data) == {"apiKey": REDACTED, "password": REDACTED, "name": "Kiss Anna"}

    def test_nested_and_lists(self):
        data = {"auth": {"client_secret": "s"}, "items": [{"access_token": "t", "id": 1}]}
        assert redact_for_logging(data) == {
            "auth": {"client_secret": REDACTED},
            "items": [{"access_token": REDACTED, "id": 1}],
        }

    def test_credentials_container_redacted_whole(self):
        data = {"credentials": {"username": "u", "useTestApi": True}}
        assert redact_for_logging(data) == {"credentials": REDACTED}

    def test_input_not_mutated(self):
        data = {"token": "t"}
        redact_for_logging(data)
        assert data == {"token": "t"}

    def test_custom_patterns(self):
        assert redact_for_logging({"iban": "HU00"}, frozenset({"iban"})) == {"iban": REDACTED}

    def test_scalars_pass_through(self):
        assert redact_for_logging("plain") == "plain"


class TestSanitizeHeaders:

    def test_auth_headers_redacted(self):
        headers = {"Authorization": "Basic abc", "api-key": "k", "Content-Type": "application/json"}
        assert sanitize_headers(headers) == {
            "Authorization": REDACTED, "api-key": REDACTED, "Content-Type": "application/json",
        }

    def test_empty(self):
        assert sanitize_headers(None) == {}


class TestSanitizeErrorMessage:

    def test_bearer_token(self):
        assert "abc.def" not in sanitize_error_message("Authorization: Bearer abc.def failed")

    def test_basic_credentials(self):
        assert "dXNlcjpwYXNz" not in sanitize_error_message("Authorization: Basic dXNlcjpwYXNz")

    def test_key_value(self):
        result = sanitize_error_message('request failed: password="hunter2" user=anna')
        assert "hunter2" not in result
        assert "user=anna" in result

    def test_truncates(self):
        result = sanitize_error_message("x" * 50, max_length=10)
        assert result == "xxxxxxx..."

    def test_none(self):
        assert sanitize_error_message(None) is None
