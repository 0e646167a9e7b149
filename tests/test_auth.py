"""
Unit tests for the OAuth2 client-credentials exchange (amadeus_mcp/auth.py).

Each failure mode of the token endpoint gets its own test, so a failure points
straight at the step that broke:

1. Request shape (URL, form body, content type)
2. Success: access_token extraction
3. 2xx without a token
4. Non-2xx from the token endpoint
5. Transport failures
6. Credential resolution from settings
7. The optional token cache
"""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from amadeus_mcp.auth import Credentials, TokenCache, cache_from_settings, get_token, token_url
from amadeus_mcp.config import settings
from amadeus_mcp.errors import AuthError, ConfigError, ValidationError


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestGetToken:
    # ----- Happy path -----

    async def test_returns_access_token(self, credentials, mock_token):
        mock_token(token="abc")

        assert await get_token(credentials) == "abc"

    async def test_posts_client_credentials_form(self, credentials, mock_token):
        route = mock_token()

        await get_token(credentials)

        request = route.calls.last.request
        assert str(request.url) == "https://test.api.amadeus.com/v1/security/oauth2/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {
            "grant_type": ["client_credentials"],
            "client_id": ["test-api-key"],
            "client_secret": ["test-api-secret"],
        }

    async def test_service_name_selects_host(self, mock_token):
        mock_token(token="prod-token", service_name="production")
        creds = Credentials("production", "k", "s")

        assert await get_token(creds) == "prod-token"

    def test_token_url(self):
        assert token_url("test") == "https://test.api.amadeus.com/v1/security/oauth2/token"

    async def test_every_call_fetches_a_fresh_token(self, credentials, mock_token):
        route = mock_token()

        await get_token(credentials)
        await get_token(credentials)

        assert route.call_count == 2

    # ----- Missing token -----

    async def test_missing_access_token_raises(self, credentials, mock_token):
        mock_token(json={"token_type": "Bearer"})

        with pytest.raises(AuthError, match="No access_token in Amadeus response") as exc:
            await get_token(credentials)

        assert exc.value.reason == "missing_token"

    async def test_empty_access_token_raises(self, credentials, mock_token):
        mock_token(json={"access_token": ""})

        with pytest.raises(AuthError, match="No access_token"):
            await get_token(credentials)

    async def test_non_json_success_body_raises(self, credentials, mock_token):
        mock_token(text="<html>ok</html>")

        with pytest.raises(AuthError, match="No access_token"):
            await get_token(credentials)

    # ----- Rejected by the token endpoint -----

    async def test_401_carries_upstream_body(self, credentials, mock_token):
        mock_token(
            status=401,
            json={"error": "invalid_client", "error_description": "Client credentials are invalid"},
        )

        with pytest.raises(AuthError) as exc:
            await get_token(credentials)

        assert exc.value.reason == "rejected"
        assert exc.value.status_code == 401
        assert str(exc.value) == (
            'Amadeus auth error: {"error":"invalid_client",'
            '"error_description":"Client credentials are invalid"}'
        )

    async def test_text_error_body_is_kept_verbatim(self, credentials, mock_token):
        mock_token(status=503, text="Service Unavailable")

        with pytest.raises(AuthError, match="^Amadeus auth error: Service Unavailable$"):
            await get_token(credentials)

    async def test_empty_error_body_falls_back_to_status(self, credentials, mock_token):
        mock_token(status=500, text="")

        with pytest.raises(AuthError, match="HTTP 500"):
            await get_token(credentials)

    # ----- Transport failures -----

    async def test_connection_error_is_wrapped(self, credentials, respx_mock):
        respx_mock.post(token_url("test")).mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(AuthError, match="Connection refused") as exc:
            await get_token(credentials)

        assert exc.value.reason == "transport"
        assert exc.value.status_code is None

    async def test_timeout_is_wrapped(self, credentials, respx_mock):
        respx_mock.post(token_url("test")).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(AuthError, match="timed out"):
            await get_token(credentials)

    # ----- Timeout bounds -----

    @pytest.mark.parametrize("timeout_ms", [0, -1, 60001])
    async def test_out_of_range_timeout_is_rejected_before_io(self, credentials, timeout_ms, respx_mock):
        with pytest.raises(ValidationError, match="timeout_ms"):
            await get_token(credentials, timeout_ms)

        assert not respx_mock.calls


class TestCredentials:
    def test_explicit_values_win(self, env_credentials):
        creds = Credentials.resolve("production", "other-key", "other-secret")

        assert creds == Credentials("production", "other-key", "other-secret")

    def test_falls_back_to_settings(self, env_credentials):
        assert Credentials.from_settings() == env_credentials

    def test_missing_credentials_raise_config_error(self):
        with pytest.raises(ConfigError, match="AMADEUS_API_KEY and AMADEUS_API_SECRET"):
            Credentials.from_settings()

    def test_missing_secret_only(self, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "k")

        with pytest.raises(ConfigError, match="AMADEUS_API_SECRET") as exc:
            Credentials.from_settings()

        assert "AMADEUS_API_KEY" not in str(exc.value)

    def test_blank_key_is_missing(self, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "   ")
        monkeypatch.setattr(settings, "api_secret", "s")

        with pytest.raises(ConfigError):
            Credentials.from_settings()

    def test_invalid_realm_in_settings_is_rejected(self, env_credentials, monkeypatch):
        monkeypatch.setattr(settings, "service_name", "evil.example")

        with pytest.raises(ValidationError, match="service_name"):
            Credentials.from_settings()

    def test_secret_is_not_in_repr(self, credentials):
        assert "test-api-secret" not in repr(credentials)


class TestTokenCache:
    async def test_reuses_token_until_expiry(self, credentials, mock_token):
        route = mock_token(token="abc")
        clock = FakeClock()
        cache = TokenCache(ttl_seconds=600, clock=clock)

        assert await cache.get_token(credentials) == "abc"
        clock.now = 599
        assert await cache.get_token(credentials) == "abc"

        assert route.call_count == 1

    async def test_refreshes_after_ttl(self, credentials, respx_mock):
        route = respx_mock.post(token_url("test")).mock(
            side_effect=[
                httpx.Response(200, json={"access_token": "first", "expires_in": 1799}),
                httpx.Response(200, json={"access_token": "second", "expires_in": 1799}),
            ]
        )
        clock = FakeClock()
        cache = TokenCache(ttl_seconds=600, clock=clock)

        assert await cache.get_token(credentials) == "first"
        clock.now = 601
        assert await cache.get_token(credentials) == "second"
        assert route.call_count == 2

    async def test_upstream_expiry_shortens_lifetime(self, credentials, mock_token):
        route = mock_token(expires_in=100)
        clock = FakeClock()
        cache = TokenCache(ttl_seconds=600, clock=clock)

        await cache.get_token(credentials)
        # 100s expiry minus the 30s margin
        clock.now = 71
        await cache.get_token(credentials)

        assert route.call_count == 2

    async def test_concurrent_callers_share_one_fetch(self, credentials, mock_token):
        route = mock_token(token="abc")
        cache = TokenCache(ttl_seconds=600)

        tokens = await asyncio.gather(*(cache.get_token(credentials) for _ in range(5)))

        assert tokens == ["abc"] * 5
        assert route.call_count == 1

    async def test_keys_are_separate_per_api_key(self, credentials, mock_token):
        route = mock_token()
        cache = TokenCache(ttl_seconds=600)

        await cache.get_token(credentials)
        await cache.get_token(Credentials("test", "another-key", "s"))

        assert route.call_count == 2

    async def test_failed_fetch_is_not_cached(self, credentials, respx_mock):
        route = respx_mock.post(token_url("test")).mock(
            side_effect=[
                httpx.Response(401, json={"error": "invalid_client"}),
                httpx.Response(200, json={"access_token": "abc"}),
            ]
        )
        cache = TokenCache(ttl_seconds=600)

        with pytest.raises(AuthError):
            await cache.get_token(credentials)
        assert await cache.get_token(credentials) == "abc"
        assert route.call_count == 2

    async def test_invalidate_forces_refetch(self, credentials, mock_token):
        route = mock_token()
        cache = TokenCache(ttl_seconds=600)

        await cache.get_token(credentials)
        cache.invalidate(credentials)
        await cache.get_token(credentials)

        assert route.call_count == 2

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            TokenCache(ttl_seconds=0)

    def test_cache_disabled_by_default(self):
        assert cache_from_settings() is None

    def test_cache_enabled_by_setting(self, monkeypatch):
        monkeypatch.setattr(settings, "token_cache_ttl_seconds", 300)

        cache = cache_from_settings()

        assert isinstance(cache, TokenCache)
        assert cache.ttl_seconds == 300
