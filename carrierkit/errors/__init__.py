"""Error handling framework for carrierkit.

This package provides:
- The closed set of error categories and their registry metadata
- CarrierError, the one exception type adapter operations raise
- Classification of transport/provider failures into categories
- Carrier error code translation tables

Error categories:
- Validation: bad request, do not retry
- Auth: credentials rejected, do not retry
- RateLimit: retry after the suggested delay
- Transient: server or network failure, retry with backoff
- Permanent: unrecoverable, do not retry
"""

from carrierkit.errors.categories import (
    CATEGORY_REGISTRY,
    CategoryInfo,
    ErrorCategory,
    get_category_info,
)
from carrierkit.errors.taxonomy import (
    DEFAULT_RETRY_AFTER_MS,
    MAX_RETRY_AFTER_MS,
    CapabilityNotSupportedError,
    CarrierError,
    classify_failure,
    classifying_errors,
    parse_retry_after,
    response_parts,
)
from carrierkit.errors.translation import (
    FOXPOST_ERROR_MAP,
    MPL_ERROR_MAP,
    CarrierCodeMap,
    CodeTranslation,
    extract_carrier_error,
    translate_carrier_error,
)

__all__ = [
    # Categories
    "ErrorCategory",
    "CategoryInfo",
    "CATEGORY_REGISTRY",
    "get_category_info",
    # Taxonomy
    "CarrierError",
    "CapabilityNotSupportedError",
    "classify_failure",
    "classifying_errors",
    "parse_retry_after",
    "DEFAULT_RETRY_AFTER_MS",
    "MAX_RETRY_AFTER_MS",
    "response_parts",
    # Translation
    "CodeTranslation",
    "CarrierCodeMap",
    "FOXPOST_ERROR_MAP",
    "MPL_ERROR_MAP",
    "extract_carrier_error",
    "translate_carrier_error",
]
