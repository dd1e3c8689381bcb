"""Carrier error code translation to error categories.

Carriers report failures in their own vocabulary: structured error codes in
the body, gateway faults, or free-text messages. This module extracts the
code/message pair from the common response shapes and maps known codes to
an ErrorCategory with a friendlier message.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from carrierkit.errors.categories import ErrorCategory


@dataclass(frozen=True)
class CodeTranslation:
    """Known carrier error code and what it means for the caller.

    Attributes:
        category: Category the code classifies into.
        message: Human-readable message replacing the carrier's text.
    """

    category: ErrorCategory
    message: str


# Per-carrier code maps are plain mappings: carrier code -> CodeTranslation.
CarrierCodeMap = Mapping[str, CodeTranslation]


# Foxpost reports these in the body of otherwise successful responses.
FOXPOST_ERROR_MAP: dict[str, CodeTranslation] = {
    "WRONG_USERNAME_OR_PASSWORD": CodeTranslation(
        ErrorCategory.AUTH, "Invalid Foxpost credentials",
    ),
    "INVALID_APM_ID": CodeTranslation(
        ErrorCategory.VALIDATION, "Invalid APM (locker) ID",
    ),
    "INVALID_RECIPIENT": CodeTranslation(
        ErrorCategory.VALIDATION, "Invalid recipient information",
    ),
    "INVALID_ADDRESS": CodeTranslation(
        ErrorCategory.VALIDATION, "Invalid address provided",
    ),
}

# MPL sits behind an API gateway that answers with fault documents.
MPL_ERROR_MAP: dict[str, CodeTranslation] = {
    "RaiseFault.InvalidCredentials": CodeTranslation(
        ErrorCategory.AUTH, "MPL rejected the API credentials",
    ),
    "oauth.v2.InvalidClientIdentifier": CodeTranslation(
        ErrorCategory.AUTH, "MPL rejected the OAuth client identifier",
    ),
    "oauth.v2.InvalidAccessToken": CodeTranslation(
        ErrorCategory.AUTH, "MPL rejected the OAuth access token",
    ),
    "RaiseFault.MissingAccountingCode": CodeTranslation(
        ErrorCategory.VALIDATION, "MPL requires an accounting code header",
    ),
}

# Free-text patterns, matched case-insensitively against the carrier message.
# Only markers that are unambiguous across carriers belong here.
MESSAGE_PATTERNS: dict[str, ErrorCategory] = {
    "invalid credentials": ErrorCategory.AUTH,
    "wrong username or password": ErrorCategory.AUTH,
    "authentication failed": ErrorCategory.AUTH,
    "bad request": ErrorCategory.VALIDATION,
    "malformed request": ErrorCategory.VALIDATION,
}


def translate_carrier_error(
    carrier_code: str | None,
    carrier_message: str | None,
    carrier_codes: CarrierCodeMap | None = None,
) -> tuple[ErrorCategory | None, str | None]:
    """Translate a carrier code/message pair to a category.

    Args:
        carrier_code: Code reported by the carrier (e.g. "INVALID_APM_ID").
        carrier_message: Message text reported by the carrier.
        carrier_codes: Carrier-specific code map to consult first.

    Returns:
        Tuple of (category, message). Both are None when nothing matched.
    """
    if carrier_code and carrier_codes and carrier_code in carrier_codes:
        known = carrier_codes[carrier_code]
        return (known.category, known.message)

    if carrier_message:
        lower = carrier_message.lower()
        for pattern, category in MESSAGE_PATTERNS.items():
            if pattern in lower:
                return (category, carrier_message)

    return (None, None)


def _first_error(errors: Any) -> dict | None:
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0]
    return None


def extract_carrier_error(body: Any) -> tuple[str | None, str | None]:
    """Extract error code and message from a carrier response body.

    Carrier responses vary in structure. This handles the common formats:
    ``errors[0]``, nested ``response.errors[0]``, API gateway faults,
    SOAP-style ``Fault`` documents and flat ``error``/``code`` fields.

    Args:
        body: Parsed response body (any type).

    Returns:
        Tuple of (error_code, error_message), either may be None.
    """
    if not isinstance(body, dict):
        return (None, None)

    # Format 1: errors[0].code/message
    err = _first_error(body.get("errors"))
    if err is not None:
        return (_as_text(err.get("code")), _as_text(err.get("message")))

    # Format 2: response.errors[0]
    inner = body.get("response")
    if isinstance(inner, dict):
        err = _first_error(inner.get("errors"))
        if err is not None:
            return (_as_text(err.get("code")), _as_text(err.get("message")))

    # Format 3: API gateway fault {"fault": {"faultstring", "detail": {"errorcode"}}}
    fault = body.get("fault")
    if isinstance(fault, dict):
        detail = fault.get("detail")
        code = detail.get("errorcode") if isinstance(detail, dict) else None
        return (_as_text(code), _as_text(fault.get("faultstring")))

    # Format 4: SOAP-style Fault.detail.Errors.ErrorDetail
    soap_fault = body.get("Fault")
    if isinstance(soap_fault, dict):
        detail = soap_fault.get("detail")
        errors = detail.get("Errors") if isinstance(detail, dict) else None
        if isinstance(errors, dict) and "ErrorDetail" in errors:
            ed = errors["ErrorDetail"]
            if isinstance(ed, list):
                ed = ed[0] if ed else None
            primary = ed.get("PrimaryErrorCode") if isinstance(ed, dict) else None
            if not isinstance(primary, dict):
                primary = {}
            return (_as_text(primary.get("Code")), _as_text(primary.get("Description")))

    # Format 5: flat fields
    code = None
    for key in ("error", "code", "errorCode", "error_code"):
        value = body.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            code = str(value)
            break
    message = None
    for key in ("message", "error_description", "errorMessage", "detail"):
        value = body.get(key)
        if isinstance(value, str):
            message = value
            break
    return (code, message)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
