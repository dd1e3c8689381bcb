"""Service layer for carrierkit.

Provides the adapter contract, batch aggregation, the transport boundary,
the auth fallback wrapper and the caller-side retry policy.
"""

from carrierkit.services.adapter import (
    OPERATION_CAPABILITIES,
    AdapterContext,
    BatchDelegatingAdapter,
    Capability,
    CarrierAdapter,
    delegate_to_batch,
    with_call_tracing,
    with_operation_name,
)
from carrierkit.services.auth_fallback import (
    AuthFallbackTransport,
    AuthRejectionSignature,
    CachedToken,
    TokenExchanger,
    bearer_authorization,
)
from carrierkit.services.batch import (
    BatchResponse,
    aggregate_batch,
    dominant_error_category,
    first_result,
    http_status_for_batch,
)
from carrierkit.services.carrier_types import (
    BatchItem,
    CarrierResource,
    FailedCarrierResource,
    ItemError,
    failed_item,
    missing_carrier_id,
)
from carrierkit.services.http_transport import (
    HttpResponse,
    HttpTransport,
    HttpxTransport,
    RequestConfig,
)
from carrierkit.services.oauth_exchange import (
    BASIC_AUTH_NOT_ENABLED,
    OAuthClientCredentialsExchanger,
)
from carrierkit.services.retry import (
    RetryDecision,
    RetryPolicy,
    call_with_retry,
    decide_retry,
)

__all__ = [
    "Capability",
    "OPERATION_CAPABILITIES",
    "AdapterContext",
    "CarrierAdapter",
    "BatchDelegatingAdapter",
    "delegate_to_batch",
    "with_call_tracing",
    "with_operation_name",
    "AuthFallbackTransport",
    "AuthRejectionSignature",
    "CachedToken",
    "TokenExchanger",
    "bearer_authorization",
    "BASIC_AUTH_NOT_ENABLED",
    "OAuthClientCredentialsExchanger",
    "BatchResponse",
    "aggregate_batch",
    "dominant_error_category",
    "first_result",
    "http_status_for_batch",
    "BatchItem",
    "CarrierResource",
    "FailedCarrierResource",
    "ItemError",
    "failed_item",
    "missing_carrier_id",
    "HttpResponse",
    "HttpTransport",
    "HttpxTransport",
    "RequestConfig",
    "RetryDecision",
    "RetryPolicy",
    "call_with_retry",
    "decide_retry",
]
