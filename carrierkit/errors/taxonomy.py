"""Carrier error type and failure classification.

``classify_failure`` turns any transport or provider failure into exactly
one CarrierError. Rules are applied in order, first match wins:

1. HTTP 400 or a provider "bad request" marker -> Validation
2. HTTP 401/403 or a provider "invalid credentials" marker -> Auth
3. HTTP 429 -> RateLimit (retry-after from the provider, default 60s)
4. HTTP >= 500 or a connection-level error -> Transient
5. Anything else, including unparsable success responses -> Permanent

Classification is pure: it never logs, retries or mutates its input.
"""

import json
import logging
import math
import socket
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from carrierkit.errors.categories import ErrorCategory
from carrierkit.errors.translation import (
    CarrierCodeMap,
    extract_carrier_error,
    translate_carrier_error,
)
from carrierkit.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_MS = 60_000
# Upper bound for carrier-suggested delays (one day).
MAX_RETRY_AFTER_MS = 86_400_000

# Exceptions raised before any HTTP status was received.
_CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
    socket.gaierror,
    ConnectionError,
    TimeoutError,
)


class CarrierError(Exception):
    """Structured error raised by every adapter operation.

    Attributes are read-only once constructed.

    Attributes:
        message: Human-readable description.
        category: ErrorCategory driving the caller's retry policy.
        carrier_code: Carrier-specific error code, when known.
        retry_after_ms: Suggested delay before retrying (RateLimit only).
        raw: Raw provider payload or underlying exception, for diagnostics.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory | str,
        *,
        carrier_code: str | None = None,
        retry_after_ms: int | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._category = ErrorCategory(category)
        self._carrier_code = carrier_code
        self._retry_after_ms = (
            retry_after_ms if self._category is ErrorCategory.RATE_LIMIT else None
        )
        self._raw = raw

    @property
    def message(self) -> str:
        return self._message

    @property
    def category(self) -> ErrorCategory:
        return self._category

    @property
    def carrier_code(self) -> str | None:
        return self._carrier_code

    @property
    def retry_after_ms(self) -> int | None:
        return self._retry_after_ms

    @property
    def raw(self) -> Any:
        return self._raw

    def is_retryable(self) -> bool:
        """Whether the caller may retry (RateLimit and Transient only)."""
        return self._category.is_retryable

    def to_dict(self, include_raw: bool = True) -> dict[str, Any]:
        """Serialize to the error response JSON shape.

        Args:
            include_raw: Whether to include the raw provider payload.

        Returns:
            Dict with message, category and any optional fields that are set.
        """
        data: dict[str, Any] = {
            "message": self._message,
            "category": self._category.value,
        }
        if self._carrier_code is not None:
            data["carrierCode"] = self._carrier_code
        if self._retry_after_ms is not None:
            data["retryAfterMs"] = self._retry_after_ms
        if include_raw and self._raw is not None:
            data["raw"] = self._raw if _is_json_like(self._raw) else repr(self._raw)
        return data

    def __str__(self) -> str:
        if self._carrier_code:
            return f"[{self._category.value}:{self._carrier_code}] {self._message}"
        return f"[{self._category.value}] {self._message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._message!r}, {self._category.value!r}, "
            f"carrier_code={self._carrier_code!r})"
        )


class CapabilityNotSupportedError(CarrierError):
    """An operation was invoked on an adapter that does not declare it."""

    def __init__(self, capability: str, adapter_id: str) -> None:
        super().__init__(
            f"Capability '{capability}' is not implemented by adapter '{adapter_id}'",
            ErrorCategory.PERMANENT,
            carrier_code="CAPABILITY_NOT_SUPPORTED",
            raw={"capability": capability, "adapterId": adapter_id},
        )
        self.capability = capability
        self.adapter_id = adapter_id


def parse_retry_after(value: Any, now: datetime | None = None) -> int | None:
    """Parse a Retry-After value into milliseconds.

    Args:
        value: Delay in seconds (number or digit string) or an HTTP-date.
        now: Reference time for HTTP-date values. Defaults to current UTC.

    Returns:
        Delay in milliseconds, clamped to [0, MAX_RETRY_AFTER_MS], or None
        if unparsable or not finite.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _seconds_to_ms(value)
    if isinstance(value, (list, tuple)):
        return parse_retry_after(value[0], now) if value else None
    text = str(value).strip()
    if not text:
        return None
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return _seconds_to_ms(seconds)
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, OverflowError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    reference = now or datetime.now(timezone.utc)
    return _seconds_to_ms((when - reference).total_seconds())


def _seconds_to_ms(seconds: float) -> int | None:
    try:
        seconds = float(seconds)
    except OverflowError:
        # Integers too large for a float.
        return MAX_RETRY_AFTER_MS if seconds > 0 else 0
    if not math.isfinite(seconds):
        return None
    return int(min(max(0.0, seconds * 1000), MAX_RETRY_AFTER_MS))


def classify_failure(
    failure: Any,
    *,
    carrier_codes: CarrierCodeMap | None = None,
    carrier_name: str = "Carrier",
) -> CarrierError:
    """Classify a transport or provider failure into a CarrierError.

    Args:
        failure: An HTTP response (any object with ``status``/``status_code``
            and ``body``), an exception (optionally carrying a ``response``),
            an existing CarrierError, or any other value.
        carrier_codes: Carrier-specific code map used to recognise body
            markers and to refine messages.
        carrier_name: Display name used in generated messages.

    Returns:
        Exactly one CarrierError. Existing CarrierErrors are returned as-is.
    """
    if isinstance(failure, CarrierError):
        return failure

    status, headers, body, parsed = response_parts(failure)
    carrier_code, carrier_message = extract_carrier_error(body)
    marker_category, marker_message = translate_carrier_error(
        carrier_code, carrier_message, carrier_codes,
    )
    # Body markers never demote a rate limit or a server error.
    if status is not None and (status == 429 or status >= 500):
        marker_category = None
    if carrier_code is None and status is not None:
        carrier_code = f"HTTP_{status}"
    raw = body if body is not None else failure
    detail = marker_message or carrier_message

    # 1. Validation
    if status == 400 or marker_category is ErrorCategory.VALIDATION:
        return CarrierError(
            f"{carrier_name} rejected the request: {detail or 'Bad request'}",
            ErrorCategory.VALIDATION,
            carrier_code=carrier_code,
            raw=raw,
        )

    # 2. Auth
    if status in (401, 403) or marker_category is ErrorCategory.AUTH:
        return CarrierError(
            f"{carrier_name} credentials rejected: {detail or 'Unauthorized'}",
            ErrorCategory.AUTH,
            carrier_code=carrier_code,
            raw=raw,
        )

    # 3. RateLimit
    if status == 429:
        retry_after_ms = _retry_after_from(headers, body)
        return CarrierError(
            f"{carrier_name} rate limit exceeded",
            ErrorCategory.RATE_LIMIT,
            carrier_code=carrier_code,
            retry_after_ms=retry_after_ms if retry_after_ms is not None else DEFAULT_RETRY_AFTER_MS,
            raw=raw,
        )

    # 4. Transient
    if status is not None and status >= 500:
        return CarrierError(
            f"{carrier_name} server error (HTTP {status})"
            + (f": {detail}" if detail else ""),
            ErrorCategory.TRANSIENT,
            carrier_code=carrier_code,
            raw=raw,
        )
    if isinstance(failure, _CONNECTION_ERRORS):
        return CarrierError(
            f"{carrier_name} connection error: {str(failure) or type(failure).__name__}",
            ErrorCategory.TRANSIENT,
            carrier_code=type(failure).__name__,
            raw=failure,
        )

    # 5. Permanent
    if status is not None and not parsed:
        message = f"{carrier_name} returned an unparsable response (HTTP {status})"
    elif isinstance(failure, (json.JSONDecodeError, ValueError, TypeError, KeyError)):
        message = f"{carrier_name} returned a malformed response: {failure}"
    elif isinstance(failure, BaseException):
        message = f"Unexpected {carrier_name} error: {str(failure) or type(failure).__name__}"
    else:
        message = f"Unexpected {carrier_name} error" + (f": {detail}" if detail else "")
    return CarrierError(
        message,
        ErrorCategory.PERMANENT,
        carrier_code=carrier_code,
        raw=raw,
    )


@asynccontextmanager
async def classifying_errors(
    adapter_id: str,
    operation: str,
    *,
    carrier_codes: CarrierCodeMap | None = None,
    carrier_name: str | None = None,
) -> AsyncIterator[None]:
    """Guarantee that no unclassified exception escapes an adapter operation.

    Usage:
        async with classifying_errors(self.id, "create_parcels", carrier_codes=FOXPOST_ERROR_MAP):
            response = await ctx.http.post(...)

    Args:
        adapter_id: Adapter identifier, for logging.
        operation: Operation name, for logging.
        carrier_codes: Carrier-specific code map passed to classify_failure.
        carrier_name: Display name for generated messages. Defaults to adapter_id.

    Raises:
        CarrierError: Any exception raised in the block, classified.
    """
    try:
        yield
    except CarrierError:
        raise
    except Exception as e:
        error = classify_failure(
            e, carrier_codes=carrier_codes, carrier_name=carrier_name or adapter_id,
        )
        logger.warning(
            "%s.%s failed with %s: %s",
            adapter_id, operation, error.category.value, sanitize_error_message(error.message),
        )
        raise error from e


def response_parts(
    failure: Any,
) -> tuple[int | None, Mapping[str, Any], Any, bool]:
    """Pull (status, headers, body, body_parsed) out of a response-like value.

    Works with HttpResponse, httpx.Response and exceptions carrying a
    ``response`` attribute (e.g. httpx.HTTPStatusError).
    """
    target = failure
    if isinstance(failure, BaseException):
        target = getattr(failure, "response", None)
        if target is None:
            status = getattr(failure, "status", None)
            if isinstance(status, int):
                return (status, {}, getattr(failure, "body", None), True)
            return (None, {}, None, True)

    status = getattr(target, "status", None)
    if not isinstance(status, int):
        status = getattr(target, "status_code", None)
    if not isinstance(status, int):
        return (None, {}, None, True)

    headers = getattr(target, "headers", None) or {}
    if isinstance(target, httpx.Response):
        try:
            return (status, headers, target.json(), True)
        except ValueError:
            return (status, headers, target.text, not target.content)
    body = getattr(target, "body", None)
    parsed = getattr(target, "parsed", True)
    return (status, headers, body, bool(parsed))


def _retry_after_from(headers: Mapping[str, Any], body: Any) -> int | None:
    for key, value in headers.items():
        if str(key).lower() == "retry-after":
            parsed = parse_retry_after(value)
            if parsed is not None:
                return parsed
    if isinstance(body, dict):
        for key in ("retryAfterMs", "retry_after_ms"):
            if isinstance(body.get(key), (int, float)):
                return int(body[key])
        for key in ("retryAfter", "retry_after"):
            parsed = parse_retry_after(body.get(key))
            if parsed is not None:
                return parsed
    return None


def _is_json_like(value: Any) -> bool:
    return value is None or isinstance(value, (dict, list, str, int, float, bool))
