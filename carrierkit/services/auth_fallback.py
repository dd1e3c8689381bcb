"""Authentication fallback wrapper for outbound transports.

Some carrier accounts reject the primary auth scheme (e.g. Basic API-key
credentials) with a narrow, structured signal and expect an exchanged
OAuth token instead. AuthFallbackTransport wraps an HttpTransport so that
adapters keep attaching their primary credentials and never see the switch:

1. Send the call unmodified.
2. If the outcome matches the AuthRejectionSignature, get a token
   (cached while more than ``refresh_margin_seconds`` of validity remain,
   otherwise exchanged).
3. Retry the call once with the token applied and return that outcome
   unconditionally.

Generic auth failures (wrong password) do not match the signature and are
returned as-is. A failed exchange surfaces as a Transient CarrierError.

The cached token is the one piece of shared mutable state. An
asyncio.Lock guards the cache check and the start of an exchange, and the
exchange itself runs as one shared task: concurrent callers that find no
usable token all await it and receive the same token or the same error.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from carrierkit.errors import (
    CarrierError,
    ErrorCategory,
    extract_carrier_error,
    response_parts,
)
from carrierkit.services.http_transport import HttpResponse, HttpTransport, RequestConfig

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MARGIN_SECONDS = 30.0

_BODYLESS_METHODS = frozenset({"get", "delete"})


@dataclass(frozen=True)
class CachedToken:
    """Exchanged credential with its validity window.

    Attributes:
        token: The token value. Hidden from repr.
        issued_at: Issue time, epoch seconds.
        ttl_seconds: Lifetime in seconds from issued_at.
        token_type: Authorization scheme the token is sent with.
        raw: Redacted exchange response, for diagnostics.
    """

    token: str = field(repr=False)
    issued_at: float
    ttl_seconds: float
    token_type: str = "Bearer"
    raw: Any = field(default=None, repr=False)

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.ttl_seconds

    def remaining(self, now: float) -> float:
        """Seconds of validity left at ``now`` (negative once expired)."""
        return self.expires_at - now

    def is_usable(self, now: float, margin: float = DEFAULT_REFRESH_MARGIN_SECONDS) -> bool:
        """True while more than ``margin`` seconds of validity remain."""
        return self.remaining(now) > margin


class TokenExchanger(Protocol):
    """Exchanges the primary credentials for a CachedToken."""

    async def exchange(self) -> CachedToken: ...


@dataclass(frozen=True)
class AuthRejectionSignature:
    """The narrow "primary auth scheme not permitted" condition.

    A response or exception matches when its status is one of ``statuses``
    and its body carries one of ``error_codes`` or a message containing one
    of ``message_markers``. The status alone never matches.

    Attributes:
        statuses: HTTP statuses the rejection arrives with.
        error_codes: Structured carrier error codes signalling the rejection.
        message_markers: Case-insensitive substrings of the carrier message.
    """

    statuses: frozenset[int] = frozenset({401})
    error_codes: frozenset[str] = frozenset()
    message_markers: tuple[str, ...] = ()

    def matches(self, outcome: Any) -> bool:
        """Whether a response or raised exception is this rejection."""
        status, _, body, _ = response_parts(outcome)
        if status is None or status not in self.statuses:
            return False
        code, message = extract_carrier_error(body)
        if code is not None and code in self.error_codes:
            return True
        if message:
            lower = message.lower()
            return any(marker.lower() in lower for marker in self.message_markers)
        return False


def bearer_authorization(config: RequestConfig, token: CachedToken) -> RequestConfig:
    """Replace the Authorization header with the exchanged token."""
    scheme = "Bearer" if token.token_type.lower() == "bearer" else token.token_type
    return config.with_header("Authorization", f"{scheme} {token.token}")


TokenApplier = Callable[[RequestConfig, CachedToken], RequestConfig]


class AuthFallbackTransport:
    """HttpTransport that falls back to an exchanged token on a narrow auth rejection.

    One instance owns one token cache. Share an instance across concurrent
    calls for the same account; never share a cache across accounts.

    Attributes:
        _inner: Transport that performs the calls.
        _exchanger: Source of new tokens.
        _signature: Rejection condition that triggers the fallback.
        _apply_token: Builds the retry's RequestConfig from the token.
        _refresh_margin: Seconds before expiry at which a token is replaced.
        _clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        inner: HttpTransport,
        exchanger: TokenExchanger,
        *,
        signature: AuthRejectionSignature,
        apply_token: TokenApplier = bearer_authorization,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._inner = inner
        self._exchanger = exchanger
        self._signature = signature
        self._apply_token = apply_token
        self._refresh_margin = refresh_margin_seconds
        self._clock = clock
        self._token: CachedToken | None = None
        self._lock = asyncio.Lock()
        self._inflight: asyncio.Future[CachedToken] | None = None
        self._exchange_count = 0
        self._fallback_count = 0

    @property
    def exchange_count(self) -> int:
        """Number of token exchanges started by this wrapper."""
        return self._exchange_count

    @property
    def fallback_count(self) -> int:
        """Number of calls retried with an exchanged token."""
        return self._fallback_count

    @property
    def cached_token(self) -> CachedToken | None:
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next fallback exchanges a new one."""
        self._token = None

    async def get(self, url: str, config: RequestConfig | None = None) -> HttpResponse:
        return await self._call("get", url, None, config)

    async def delete(self, url: str, config: RequestConfig | None = None) -> HttpResponse:
        return await self._call("delete", url, None, config)

    async def post(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._call("post", url, body, config)

    async def put(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._call("put", url, body, config)

    async def patch(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._call("patch", url, body, config)

    async def get_token(self) -> CachedToken:
        """Return a usable token, exchanging a new one if needed.

        Concurrent callers share one in-flight exchange and receive its
        token or its error. The exchange is cleared once it settles, so the
        next call after a failure starts a fresh one.

        Raises:
            CarrierError: Transient, if the exchange fails for any reason.
        """
        token = self._token
        if token is not None and token.is_usable(self._clock(), self._refresh_margin):
            return token

        async with self._lock:
            # Another caller may have finished an exchange while we waited.
            token = self._token
            if token is not None and token.is_usable(self._clock(), self._refresh_margin):
                return token
            if self._inflight is None:
                self._inflight = asyncio.ensure_future(self._exchange())
            inflight = self._inflight

        # Shielded so a cancelled caller does not cancel the shared exchange.
        return await asyncio.shield(inflight)

    async def _exchange(self) -> CachedToken:
        self._exchange_count += 1
        logger.info("Exchanging credentials for a new token (exchange #%d)", self._exchange_count)
        try:
            token = await self._exchanger.exchange()
        except CarrierError as e:
            logger.warning("Token exchange failed: %s", e)
            raise CarrierError(
                f"Token exchange failed: {e.message}",
                ErrorCategory.TRANSIENT,
                carrier_code=e.carrier_code or "TOKEN_EXCHANGE_FAILED",
                raw=e.raw,
            ) from e
        except Exception as e:
            logger.warning("Token exchange failed: %s", type(e).__name__)
            raise CarrierError(
                f"Token exchange failed: {str(e) or type(e).__name__}",
                ErrorCategory.TRANSIENT,
                carrier_code="TOKEN_EXCHANGE_FAILED",
                raw=repr(e),
            ) from e
        finally:
            self._inflight = None

        self._token = token
        logger.debug(
            "Cached exchanged token, valid for %.0fs",
            token.remaining(self._clock()),
        )
        return token

    async def _send(
        self, method: str, url: str, body: Any, config: RequestConfig | None,
    ) -> HttpResponse:
        call = getattr(self._inner, method)
        if method in _BODYLESS_METHODS:
            return await call(url, config)
        return await call(url, body, config)

    async def _call(
        self, method: str, url: str, body: Any, config: RequestConfig | None,
    ) -> HttpResponse:
        try:
            response = await self._send(method, url, body, config)
        except Exception as e:
            if not self._signature.matches(e):
                raise
        else:
            if not self._signature.matches(response):
                return response

        logger.info(
            "Primary auth rejected for %s %s, retrying once with exchanged token",
            method.upper(), url,
        )
        token = await self.get_token()
        self._fallback_count += 1
        retry_config = self._apply_token(config or RequestConfig(), token)
        # Single retry: its outcome is returned or raised as-is.
        return await self._send(method, url, body, retry_config)
