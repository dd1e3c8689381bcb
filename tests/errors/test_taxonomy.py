"""Tests for CarrierError and failure classification."""

import json
import socket
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from carrierkit.errors import (
    DEFAULT_RETRY_AFTER_MS,
    MAX_RETRY_AFTER_MS,
    FOXPOST_ERROR_MAP,
    MPL_ERROR_MAP,
    CapabilityNotSupportedError,
    CarrierError,
    ErrorCategory,
    classify_failure,
    classifying_errors,
    parse_retry_after,
)
from carrierkit.services.http_transport import HttpResponse


class TestCarrierError:
    """CarrierError shape and serialization."""

    def test_attributes_are_read_only(self):
        """Category and code cannot be reassigned after construction."""
        error = CarrierError("boom", ErrorCategory.TRANSIENT, carrier_code="X")
        with pytest.raises(AttributeError):
            error.category = ErrorCategory.PERMANENT
        with pytest.raises(AttributeError):
            error.carrier_code = "Y"

    def test_category_accepts_wire_name(self):
        error = CarrierError("slow down", "RateLimit", retry_after_ms=1000)
        assert error.category is ErrorCategory.RATE_LIMIT
        assert error.retry_after_ms == 1000

    def test_retry_after_dropped_for_other_categories(self):
        """retry_after_ms is only meaningful for RateLimit."""
        error = CarrierError("down", ErrorCategory.TRANSIENT, retry_after_ms=5000)
        assert error.retry_after_ms is None

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            CarrierError("x", "Unknown")

    @pytest.mark.parametrize("category,retryable", [
        (ErrorCategory.VALIDATION, False),
        (ErrorCategory.AUTH, False),
        (ErrorCategory.RATE_LIMIT, True),
        (ErrorCategory.TRANSIENT, True),
        (ErrorCategory.PERMANENT, False),
    ])
    def test_is_retryable(self, category, retryable):
        assert CarrierError("x", category).is_retryable() is retryable

    def test_to_dict_full(self):
        error = CarrierError(
            "Too many requests", ErrorCategory.RATE_LIMIT,
            carrier_code="HTTP_429", retry_after_ms=30000, raw={"error": "slow"},
        )
        assert error.to_dict() == {
            "message": "Too many requests",
            "category": "RateLimit",
            "carrierCode": "HTTP_429",
            "retryAfterMs": 30000,
            "raw": {"error": "slow"},
        }

    def test_to_dict_omits_unset_fields(self):
        assert CarrierError("bad", ErrorCategory.VALIDATION).to_dict() == {
            "message": "bad",
            "category": "Validation",
        }

    def test_to_dict_without_raw(self):
        error = CarrierError("bad", ErrorCategory.VALIDATION, raw={"secret": "x"})
        assert "raw" not in error.to_dict(include_raw=False)

    def test_to_dict_reprs_non_json_raw(self):
        error = CarrierError("bad", ErrorCategory.PERMANENT, raw=ValueError("nope"))
        assert error.to_dict()["raw"] == "ValueError('nope')"

    def test_str_includes_category_and_code(self):
        error = CarrierError("Invalid APM", ErrorCategory.VALIDATION, carrier_code="INVALID_APM_ID")
        assert str(error) == "[Validation:INVALID_APM_ID] Invalid APM"


class TestCapabilityNotSupportedError:
    """Unsupported operations are Permanent and name capability and adapter."""

    def test_message_and_category(self):
        error = CapabilityNotSupportedError("TRACK", "foxpost")
        assert error.category is ErrorCategory.PERMANENT
        assert error.message == "Capability 'TRACK' is not implemented by adapter 'foxpost'"
        assert error.capability == "TRACK"
        assert error.adapter_id == "foxpost"
        assert isinstance(error, CarrierError)


class TestParseRetryAfter:
    """Retry-After parsing into milliseconds."""

    def test_seconds_string(self):
        assert parse_retry_after("30") == 30000

    def test_seconds_number(self):
        assert parse_retry_after(2.5) == 2500

    def test_http_date(self):
        now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        value = format_datetime(now + timedelta(seconds=45), usegmt=True)
        assert parse_retry_after(value, now=now) == 45000

    def test_past_date_clamped_to_zero(self):
        now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        value = format_datetime(now - timedelta(seconds=10), usegmt=True)
        assert parse_retry_after(value, now=now) == 0

    @pytest.mark.parametrize("value", [None, "", "soon", True])
    def test_unparsable(self, value):
        assert parse_retry_after(value) is None

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400", float("inf"), float("nan")])
    def test_non_finite_rejected(self, value):
        assert parse_retry_after(value) is None

    def test_large_delay_capped(self):
        assert parse_retry_after("31536000") == MAX_RETRY_AFTER_MS
        assert parse_retry_after(10 ** 400) == MAX_RETRY_AFTER_MS

    def test_negative_seconds_clamped_to_zero(self):
        assert parse_retry_after("-5") == 0


class TestClassifyHttpStatus:
    """Status-driven classification rules, applied in order."""

    def test_400_is_validation(self):
        error = classify_failure(HttpResponse(status=400, body={"message": "Missing recipient"}))
        assert error.category is ErrorCategory.VALIDATION
        assert error.carrier_code == "HTTP_400"
        assert "Missing recipient" in error.message

    @pytest.mark.parametrize("status", [401, 403])
    def test_401_403_is_auth(self, status):
        error = classify_failure(HttpResponse(status=status, body=None))
        assert error.category is ErrorCategory.AUTH

    def test_429_with_retry_after_header(self):
        error = classify_failure(HttpResponse(status=429, headers={"Retry-After": "30"}))
        assert error.category is ErrorCategory.RATE_LIMIT
        assert error.retry_after_ms == 30000

    def test_429_header_lookup_is_case_insensitive(self):
        error = classify_failure(HttpResponse(status=429, headers={"retry-after": "30"}))
        assert error.retry_after_ms == 30000

    def test_429_without_header_defaults_to_60s(self):
        error = classify_failure(HttpResponse(status=429))
        assert error.category is ErrorCategory.RATE_LIMIT
        assert error.retry_after_ms == DEFAULT_RETRY_AFTER_MS == 60000

    @pytest.mark.parametrize("value", ["inf", "1e400"])
    def test_429_with_non_finite_retry_after_uses_default(self, value):
        error = classify_failure(HttpResponse(status=429, headers={"Retry-After": value}))
        assert error.category is ErrorCategory.RATE_LIMIT
        assert error.retry_after_ms == DEFAULT_RETRY_AFTER_MS

    def test_429_retry_after_from_body(self):
        error = classify_failure(HttpResponse(status=429, body={"retryAfter": 12}))
        assert error.retry_after_ms == 12000

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_5xx_is_transient(self, status):
        error = classify_failure(HttpResponse(status=status, body="Service Unavailable", parsed=False))
        assert error.category is ErrorCategory.TRANSIENT
        assert error.carrier_code == f"HTTP_{status}"

    def test_503_body_marker_does_not_demote(self):
        """A 'bad request' message in a 503 body stays Transient."""
        error = classify_failure(HttpResponse(status=503, body={"message": "Bad request upstream"}))
        assert error.category is ErrorCategory.TRANSIENT

    def test_500_with_malformed_fault_is_transient(self):
        body = {"Fault": {"detail": {"Errors": {"ErrorDetail": {"PrimaryErrorCode": None}}}}}
        error = classify_failure(HttpResponse(status=500, body=body))
        assert error.category is ErrorCategory.TRANSIENT

    def test_unparsable_200_is_permanent(self):
        error = classify_failure(HttpResponse(status=200, body="<html>oops", parsed=False))
        assert error.category is ErrorCategory.PERMANENT
        assert "unparsable" in error.message

    def test_unexpected_status_is_permanent(self):
        error = classify_failure(HttpResponse(status=404, body={"message": "Not found"}))
        assert error.category is ErrorCategory.PERMANENT
        assert error.carrier_code == "HTTP_404"


class TestClassifyBodyMarkers:
    """Provider error markers in otherwise successful responses."""

    def test_foxpost_wrong_credentials_in_200_is_auth(self):
        body = {"errors": [{"code": "WRONG_USERNAME_OR_PASSWORD", "message": "nope"}]}
        error = classify_failure(HttpResponse(status=200, body=body), carrier_codes=FOXPOST_ERROR_MAP)
        assert error.category is ErrorCategory.AUTH
        assert error.carrier_code == "WRONG_USERNAME_OR_PASSWORD"
        assert "Invalid Foxpost credentials" in error.message

    def test_foxpost_invalid_apm_is_validation(self):
        body = {"error": "INVALID_APM_ID"}
        error = classify_failure(HttpResponse(status=200, body=body), carrier_codes=FOXPOST_ERROR_MAP)
        assert error.category is ErrorCategory.VALIDATION

    def test_gateway_fault_code(self):
        body = {"fault": {
            "faultstring": "Invalid ApiKey",
            "detail": {"errorcode": "oauth.v2.InvalidClientIdentifier"},
        }}
        error = classify_failure(HttpResponse(status=200, body=body), carrier_codes=MPL_ERROR_MAP)
        assert error.category is ErrorCategory.AUTH
        assert error.carrier_code == "oauth.v2.InvalidClientIdentifier"

    def test_generic_invalid_credentials_message(self):
        error = classify_failure(HttpResponse(status=200, body={"message": "Invalid credentials"}))
        assert error.category is ErrorCategory.AUTH

    def test_400_wins_over_auth_marker(self):
        """Rules apply in order: a 400 is Validation even with an auth message."""
        error = classify_failure(HttpResponse(status=400, body={"message": "Authentication failed"}))
        assert error.category is ErrorCategory.VALIDATION


class TestClassifyExceptions:
    """Exceptions raised by transports and parsers."""

    def test_dns_failure_is_transient(self):
        error = classify_failure(socket.gaierror(-2, "Name or service not known"))
        assert error.category is ErrorCategory.TRANSIENT
        assert error.carrier_code == "gaierror"

    def test_httpx_connect_error_is_transient(self):
        error = classify_failure(httpx.ConnectError("Connection refused"))
        assert error.category is ErrorCategory.TRANSIENT

    def test_httpx_timeout_is_transient(self):
        error = classify_failure(httpx.ReadTimeout("timed out"))
        assert error.category is ErrorCategory.TRANSIENT

    def test_connection_refused_is_transient(self):
        assert classify_failure(ConnectionRefusedError()).category is ErrorCategory.TRANSIENT

    def test_http_status_error_uses_response(self):
        request = httpx.Request("POST", "https://api.example.test/parcel")
        response = httpx.Response(429, headers={"Retry-After": "7"}, request=request)
        exc = httpx.HTTPStatusError("429", request=request, response=response)
        error = classify_failure(exc)
        assert error.category is ErrorCategory.RATE_LIMIT
        assert error.retry_after_ms == 7000

    def test_json_decode_error_is_permanent(self):
        with pytest.raises(json.JSONDecodeError) as info:
            json.loads("{not json")
        error = classify_failure(info.value)
        assert error.category is ErrorCategory.PERMANENT

    def test_carrier_error_passes_through(self):
        original = CarrierError("x", ErrorCategory.AUTH)
        assert classify_failure(original) is original

    def test_arbitrary_value_is_permanent(self):
        assert classify_failure(object()).category is ErrorCategory.PERMANENT

    def test_input_not_mutated(self):
        body = {"errors": [{"code": "INVALID_ADDRESS", "message": "bad"}]}
        snapshot = json.dumps(body)
        classify_failure(HttpResponse(status=200, body=body), carrier_codes=FOXPOST_ERROR_MAP)
        assert json.dumps(body) == snapshot


class TestClassifyingErrors:
    """The async guard converts anything escaping an operation."""

    @pytest.mark.asyncio
    async def test_unclassified_exception_converted(self):
        with pytest.raises(CarrierError) as info:
            async with classifying_errors("foxpost", "create_parcels"):
                raise httpx.ConnectError("refused")
        assert info.value.category is ErrorCategory.TRANSIENT
        assert isinstance(info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_rate_limit_with_infinite_retry_after(self):
        request = httpx.Request("POST", "https://webapi.foxpost.hu/api/parcel")
        response = httpx.Response(429, headers={"Retry-After": "inf"}, request=request)
        with pytest.raises(CarrierError) as info:
            async with classifying_errors("foxpost", "create_parcels"):
                raise httpx.HTTPStatusError("Too Many Requests", request=request, response=response)
        assert info.value.category is ErrorCategory.RATE_LIMIT
        assert info.value.retry_after_ms == DEFAULT_RETRY_AFTER_MS

    @pytest.mark.asyncio
    async def test_carrier_error_unchanged(self):
        original = CarrierError("bad", ErrorCategory.VALIDATION)
        with pytest.raises(CarrierError) as info:
            async with classifying_errors("foxpost", "create_parcels"):
                raise original
        assert info.value is original

    @pytest.mark.asyncio
    async def test_no_exception_passes(self):
        async with classifying_errors("foxpost", "track"):
            value = 1
        assert value == 1
