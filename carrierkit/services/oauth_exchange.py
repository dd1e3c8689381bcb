"""OAuth2 client-credentials token exchange.

Exchanges Basic API-key credentials for a bearer token at a gateway's
token endpoint. Used with AuthFallbackTransport for accounts whose gateway
refuses Basic authentication.
"""

import base64
import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlencode

from carrierkit.errors import CarrierError, ErrorCategory, extract_carrier_error
from carrierkit.services.auth_fallback import AuthRejectionSignature, CachedToken
from carrierkit.services.http_transport import HttpTransport, RequestConfig
from carrierkit.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)

# Gateway answer for an account that only accepts OAuth.
BASIC_AUTH_NOT_ENABLED = AuthRejectionSignature(
    statuses=frozenset({401}),
    error_codes=frozenset({"RaiseFault.BasicAuthNotEnabled"}),
    message_markers=("Basic authentication is not enabled",),
)


def basic_authorization(client_id: str, client_secret: str) -> str:
    """Build a Basic Authorization header value."""
    encoded = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")
    return f"Basic {encoded}"


def _is_number(value: Any) -> bool:
    """True for finite numbers and numeric strings."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        return math.isfinite(float(value))
    except (ValueError, OverflowError):
        return False


class OAuthClientCredentialsExchanger:
    """TokenExchanger for the OAuth2 client_credentials grant.

    Attributes:
        _transport: Transport used for the token request. Must not be the
            AuthFallbackTransport that consumes this exchanger.
        _token_url: Token endpoint URL.
    """

    def __init__(
        self,
        transport: HttpTransport,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        extra_headers: Mapping[str, str] | None = None,
        scope: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._extra_headers = dict(extra_headers or {})
        self._scope = scope
        self._clock = clock

    def __repr__(self) -> str:
        return f"<OAuthClientCredentialsExchanger token_url={self._token_url!r}>"

    async def exchange(self) -> CachedToken:
        """Request a new access token.

        Returns:
            CachedToken issued at the time the request was sent.

        Raises:
            CarrierError: Auth for a gateway fault, Transient for any other
                non-200 status, Permanent for a malformed success body.
        """
        form = {"grant_type": "client_credentials"}
        if self._scope:
            form["scope"] = self._scope
        headers = {
            **self._extra_headers,
            "Authorization": basic_authorization(self._client_id, self._client_secret),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        issued_at = self._clock()
        logger.debug("Requesting client_credentials token from %s", self._token_url)
        response = await self._transport.post(
            self._token_url, urlencode(form), RequestConfig(headers=headers),
        )
        body = response.body

        if response.status != 200:
            if isinstance(body, dict) and isinstance(body.get("fault"), dict):
                code, message = extract_carrier_error(body)
                logger.warning(
                    "OAuth token exchange rejected: status=%d code=%s",
                    response.status, code,
                )
                raise CarrierError(
                    f"OAuth token exchange failed: {message or 'Unknown error'} "
                    f"({code or 'UNKNOWN'})",
                    ErrorCategory.AUTH,
                    carrier_code=code,
                    raw=body,
                )
            raise CarrierError(
                f"OAuth token exchange returned status {response.status} "
                "with unexpected response format",
                ErrorCategory.TRANSIENT,
                carrier_code=f"HTTP_{response.status}",
                raw=body,
            )

        if not isinstance(body, dict) or not isinstance(body.get("access_token"), str) \
                or not body["access_token"]:
            raise CarrierError(
                "Invalid OAuth token response: missing access_token",
                ErrorCategory.PERMANENT,
                raw=redact_for_logging(body) if isinstance(body, dict) else body,
            )
        expires_in = body.get("expires_in")
        if not _is_number(expires_in) or float(expires_in) <= 0:
            raise CarrierError(
                "Invalid OAuth token response: expires_in is not a positive number",
                ErrorCategory.PERMANENT,
                raw=redact_for_logging(body),
            )

        return CachedToken(
            token=body["access_token"],
            issued_at=issued_at,
            ttl_seconds=float(expires_in),
            token_type=body.get("token_type") or "Bearer",
            raw=redact_for_logging(body),
        )
