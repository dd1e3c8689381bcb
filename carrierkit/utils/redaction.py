"""Secret redaction for safe logging and error payloads.

Carrier requests carry credentials (API keys, basic auth, OAuth tokens)
inside request bodies and headers. Everything that reaches a log line
passes through here first. Key matching is a case-insensitive substring
test; nested dicts and lists are walked.
"""

import re
from collections.abc import Mapping
from typing import Any

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "authorization", "api_key", "apikey", "api-key",
    "password", "credential", "client_id", "client_secret",
})

# Keys whose entire value is redacted regardless of its type
_CONTAINER_KEYS = frozenset({"credentials"})

# Header names that are always redacted
_SENSITIVE_HEADERS = frozenset({
    "authorization", "proxy-authorization", "cookie", "set-cookie",
    "api-key", "x-api-key",
})

REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def redact_for_logging(
    obj: Any,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> Any:
    """Redact sensitive values from a payload for safe logging.

    Args:
        obj: Dict, list or scalar to redact. Not mutated.
        sensitive_patterns: Substring patterns whose matching keys' values
            are replaced. Matching is case-insensitive.

    Returns:
        A copy with sensitive values replaced by '***REDACTED***'.
    """
    if isinstance(obj, Mapping):
        result = {}
        for key, value in obj.items():
            key_text = str(key)
            if key_text.lower() in _CONTAINER_KEYS or _is_sensitive_key(
                key_text, sensitive_patterns,
            ):
                result[key] = REDACTED
            else:
                result[key] = redact_for_logging(value, sensitive_patterns)
        return result
    if isinstance(obj, (list, tuple)):
        return [redact_for_logging(item, sensitive_patterns) for item in obj]
    return obj


def sanitize_headers(headers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of request headers with auth-bearing values redacted."""
    if not headers:
        return {}
    return {
        name: REDACTED if name.lower() in _SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


# Patterns for sensitive values in free-text messages:
# Authorization: Bearer <token>, "key": "value", key="value", key=value.
_SENSITIVE_KEYWORDS = (
    r"secret|token|password|api_key|apikey|client_id|client_secret|"
    r"authorization|credential"
)
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    r"Authorization\s*:\s*(?:Bearer|Basic)\s+\S+"
    r"|"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\"[^\"]*\""
    r"|"
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\S+"
    r")",
)


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Redact key=value style secrets from a message and truncate it.

    Args:
        msg: Message to sanitize. None passes through.
        max_length: Maximum length of the result.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
