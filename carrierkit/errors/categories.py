"""Error category registry.

This module defines the closed set of failure categories every carrier
error is classified into, together with the metadata callers need to act
on a category:

- Validation: the carrier rejected the request as malformed
- Auth: the carrier rejected the credentials
- RateLimit: too many requests, retry after the suggested delay
- Transient: carrier-side or network failure, retry with backoff
- Permanent: unrecoverable, do not retry
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for carrier errors. Values are the wire names."""

    VALIDATION = "Validation"
    AUTH = "Auth"
    RATE_LIMIT = "RateLimit"
    TRANSIENT = "Transient"
    PERMANENT = "Permanent"

    @property
    def is_retryable(self) -> bool:
        """Whether a caller may retry an operation that failed this way."""
        return CATEGORY_REGISTRY[self].is_retryable


@dataclass(frozen=True)
class CategoryInfo:
    """Metadata for an error category.

    Attributes:
        category: The category described.
        title: Short title for display.
        http_status: Status a host service should answer with.
        remediation: Action the caller should take.
        is_retryable: Whether the operation can be retried without changes.
    """

    category: ErrorCategory
    title: str
    http_status: int
    remediation: str
    is_retryable: bool = False


CATEGORY_REGISTRY: dict[ErrorCategory, CategoryInfo] = {
    ErrorCategory.VALIDATION: CategoryInfo(
        category=ErrorCategory.VALIDATION,
        title="Invalid Request",
        http_status=400,
        remediation="Correct the request data and retry.",
    ),
    ErrorCategory.AUTH: CategoryInfo(
        category=ErrorCategory.AUTH,
        title="Authentication Failed",
        http_status=401,
        remediation="Check the carrier credentials supplied with the request.",
    ),
    ErrorCategory.RATE_LIMIT: CategoryInfo(
        category=ErrorCategory.RATE_LIMIT,
        title="Rate Limit Exceeded",
        http_status=429,
        remediation="Wait for the suggested delay and retry. Consider smaller batches.",
        is_retryable=True,
    ),
    ErrorCategory.TRANSIENT: CategoryInfo(
        category=ErrorCategory.TRANSIENT,
        title="Carrier Unavailable",
        http_status=503,
        remediation="Retry with backoff. Check the carrier status page if it persists.",
        is_retryable=True,
    ),
    ErrorCategory.PERMANENT: CategoryInfo(
        category=ErrorCategory.PERMANENT,
        title="Unrecoverable Carrier Error",
        http_status=500,
        remediation="Do not retry. Inspect the raw carrier payload for details.",
    ),
}


def get_category_info(category: ErrorCategory | str) -> CategoryInfo:
    """Get registry metadata for a category.

    Args:
        category: An ErrorCategory or its wire name (e.g. "RateLimit").

    Returns:
        The CategoryInfo for the category.

    Raises:
        ValueError: If the name is not a known category.
    """
    return CATEGORY_REGISTRY[ErrorCategory(category)]
