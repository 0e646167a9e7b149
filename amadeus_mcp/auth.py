"""
OAuth2 client-credentials token exchange against Amadeus.

Every forwarded call needs a bearer token. This module obtains one by posting
the API key/secret pair to the token endpoint of the selected realm:

    POST https://{service_name}.api.amadeus.com/v1/security/oauth2/token
    Content-Type: application/x-www-form-urlencoded

    grant_type=client_credentials&client_id={api_key}&client_secret={api_secret}

Response body (JSON):
    {
        "access_token": "abc...",     # what we return
        "token_type": "Bearer",
        "expires_in": 1799            # seconds
    }

By default nothing is cached: every call performs a fresh round trip, and two
concurrent calls fetch two tokens. TokenCache is an opt-in (see
AMADEUS_TOKEN_CACHE_TTL_SECONDS) that reuses a token per (service_name,
api_key) and lets only one coroutine refresh an expired entry at a time.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from amadeus_mcp.config import settings
from amadeus_mcp.errors import AuthError, ConfigError
from amadeus_mcp.validation import check_service_name, check_timeout

TOKEN_PATH = "/v1/security/oauth2/token"

logger = logging.getLogger("amadeus-mcp.auth")


@dataclass(frozen=True)
class Credentials:
    """
    The client-credentials pair plus the realm it belongs to.

    Attributes:
        service_name: Upstream realm, used as the api.amadeus.com subdomain
        api_key: OAuth2 client_id
        api_secret: OAuth2 client_secret (never logged)
    """

    service_name: str
    api_key: str
    api_secret: str = field(repr=False)

    @classmethod
    def resolve(
        cls,
        service_name: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
    ) -> "Credentials":
        """
        Build credentials from explicit values, falling back to settings.

        Raises:
            ConfigError: If no non-empty key or secret is available
            ValidationError: If the realm is not a single DNS label
        """
        realm = check_service_name(service_name or settings.service_name)
        key = api_key or settings.api_key
        secret = api_secret or settings.api_secret
        missing = [
            name
            for name, value in (("AMADEUS_API_KEY", key), ("AMADEUS_API_SECRET", secret))
            if not value or not value.strip()
        ]
        if missing:
            raise ConfigError(
                f"Missing Amadeus credentials: set {' and '.join(missing)} "
                "or pass api_key/api_secret with the call"
            )
        return cls(
            service_name=realm,
            api_key=key,
            api_secret=secret,
        )

    @classmethod
    def from_settings(cls) -> "Credentials":
        return cls.resolve()


def token_url(service_name: str) -> str:
    return f"https://{service_name}.api.amadeus.com{TOKEN_PATH}"


def _describe(data: Any) -> str:
    return data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))


def _transport_message(exc: httpx.HTTPError) -> str:
    # Some httpx timeouts carry an empty message.
    return str(exc) or type(exc).__name__


async def _request_token(credentials: Credentials, timeout_ms: int) -> dict[str, Any]:
    """POST the client-credentials form and return the decoded JSON body."""
    form = {
        "grant_type": "client_credentials",
        "client_id": credentials.api_key,
        "client_secret": credentials.api_secret,
    }
    try:
        async with httpx.AsyncClient(timeout=timeout_ms / 1000) as client:
            response = await client.post(
                token_url(credentials.service_name),
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        raise AuthError(_transport_message(e), reason="transport") from e

    try:
        data: Any = response.json()
    except ValueError:
        data = response.text

    if response.is_error:
        detail = data if data not in ("", None) else f"HTTP {response.status_code}"
        raise AuthError(_describe(detail), reason="rejected", status_code=response.status_code)

    if not isinstance(data, dict) or not data.get("access_token"):
        raise AuthError(
            "No access_token in Amadeus response",
            reason="missing_token",
            status_code=response.status_code,
        )
    return data


async def fetch_token(credentials: Credentials, timeout_ms: int | None = None) -> dict[str, Any]:
    """
    Perform one token exchange and return the full token response.

    Raises:
        ValidationError: If timeout_ms is outside (0, 60000]
        AuthError: On transport failure, non-2xx status or missing token
    """
    timeout_ms = check_timeout(settings.token_timeout_ms if timeout_ms is None else timeout_ms)
    try:
        data = await _request_token(credentials, timeout_ms)
    except AuthError as e:
        logger.warning(
            "Token exchange failed",
            extra={
                "log_data": {
                    "service_name": credentials.service_name,
                    "reason": e.reason,
                    "status_code": e.status_code,
                }
            },
        )
        raise

    logger.debug(
        "Token exchange succeeded",
        extra={
            "log_data": {
                "service_name": credentials.service_name,
                "expires_in": data.get("expires_in"),
            }
        },
    )
    return data


async def get_token(credentials: Credentials, timeout_ms: int | None = None) -> str:
    """
    Exchange the credentials for a bearer token.

    Args:
        credentials: Realm plus client id/secret
        timeout_ms: Bound on the round trip; defaults to
                    settings.token_timeout_ms (10000)

    Returns:
        The access_token value

    Raises:
        ValidationError: If timeout_ms is outside (0, 60000]
        AuthError: On transport failure, non-2xx status or missing token
    """
    data = await fetch_token(credentials, timeout_ms)
    return data["access_token"]


@dataclass
class _CachedToken:
    value: str
    expires_at: float


class TokenCache:
    """
    Process-lifetime token cache keyed by (service_name, api_key).

    A cached token is reused until min(ttl_seconds, expires_in - margin)
    elapses. A per-key asyncio.Lock makes concurrent callers with an empty or
    expired entry wait for a single refresh instead of each fetching a token.

    Only in-memory; nothing survives a restart.
    """

    # Refresh this many seconds before the upstream-declared expiry.
    EXPIRY_MARGIN_SECONDS = 30

    def __init__(self, ttl_seconds: float, clock=time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], _CachedToken] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, key: tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _lifetime(self, data: dict[str, Any]) -> float:
        expires_in = data.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            return max(0.0, min(self.ttl_seconds, expires_in - self.EXPIRY_MARGIN_SECONDS))
        return self.ttl_seconds

    async def get_token(self, credentials: Credentials, timeout_ms: int | None = None) -> str:
        key = (credentials.service_name, credentials.api_key)
        async with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at > self._clock():
                return entry.value

            data = await fetch_token(credentials, timeout_ms)
            token = data["access_token"]
            self._entries[key] = _CachedToken(token, self._clock() + self._lifetime(data))
            return token

    def invalidate(self, credentials: Credentials) -> None:
        self._entries.pop((credentials.service_name, credentials.api_key), None)

    def clear(self) -> None:
        self._entries.clear()


def cache_from_settings() -> TokenCache | None:
    """Return a TokenCache if AMADEUS_TOKEN_CACHE_TTL_SECONDS is positive."""
    if settings.token_cache_ttl_seconds > 0:
        return TokenCache(settings.token_cache_ttl_seconds)
    return None
