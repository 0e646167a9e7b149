"""
Shared test fixtures for the Amadeus proxy test suite.

Key fixtures:
- credentials: A fixed Credentials value for the "test" realm
- mock_token: A factory that mocks the OAuth2 token endpoint via respx
- mock_resource: A factory that mocks one upstream resource path via respx
- env_credentials: Puts credentials into settings, as if read from AMADEUS_*

Testing approach:
    No test touches the network. respx patches httpx, and the `respx_mock`
    fixture fails a test if any request is made that wasn't mocked, or if a
    mocked route is never called.

    - test_paths.py: allowlist matching in isolation
    - test_auth.py: token exchange and the optional token cache
    - test_forwarder.py: forward_request() against mocked upstream routes
    - test_tools.py: the endpoint table, argument parsing, and full MCP tool
      calls through FastMCP's in-memory Client
    - test_fetch_token.py: the credential-check CLI
"""

import httpx
import pytest

from amadeus_mcp import server
from amadeus_mcp.auth import Credentials, token_url
from amadeus_mcp.config import settings
from amadeus_mcp.forwarder import upstream_url

TEST_SERVICE = "test"
TEST_KEY = "test-api-key"
TEST_SECRET = "test-api-secret"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """
    Reset settings for every test so a developer's .env or AMADEUS_* variables
    can't leak in. Credentials start empty; use env_credentials to set them.
    """
    monkeypatch.setattr(settings, "service_name", TEST_SERVICE)
    monkeypatch.setattr(settings, "api_key", "")
    monkeypatch.setattr(settings, "api_secret", "")
    monkeypatch.setattr(settings, "timeout_ms", 15000)
    monkeypatch.setattr(settings, "token_timeout_ms", 10000)
    monkeypatch.setattr(settings, "token_cache_ttl_seconds", 0)
    monkeypatch.setattr(server, "token_cache", None)


@pytest.fixture
def env_credentials(monkeypatch):
    """Credentials configured through the environment settings."""
    monkeypatch.setattr(settings, "api_key", TEST_KEY)
    monkeypatch.setattr(settings, "api_secret", TEST_SECRET)
    return Credentials(TEST_SERVICE, TEST_KEY, TEST_SECRET)


@pytest.fixture
def credentials():
    return Credentials(service_name=TEST_SERVICE, api_key=TEST_KEY, api_secret=TEST_SECRET)


@pytest.fixture
def mock_token(respx_mock):
    """
    Factory fixture that mocks the token endpoint.

    Usage in tests:
        async def test_something(mock_token):
            route = mock_token(token="abc")
            ...
            assert route.call_count == 1

    By default the endpoint answers 200 with a normal Amadeus token body.
    Pass `json` or `text` to replace the body, `status` to change the code.
    """

    def _mock_token(
        token: str = "abc",
        status: int = 200,
        json: object | None = None,
        text: str | None = None,
        service_name: str = TEST_SERVICE,
        expires_in: int = 1799,
    ):
        if text is not None:
            response = httpx.Response(status, text=text)
        else:
            body = json if json is not None else {
                "type": "amadeusOAuth2Token",
                "access_token": token,
                "token_type": "Bearer",
                "expires_in": expires_in,
                "state": "approved",
            }
            response = httpx.Response(status, json=body)
        return respx_mock.post(token_url(service_name)).mock(return_value=response)

    return _mock_token


@pytest.fixture
def mock_resource(respx_mock):
    """
    Factory fixture that mocks one upstream resource.

    Usage in tests:
        route = mock_resource("GET", "/v2/shopping/flight-offers", json={"data": []})
    """

    def _mock_resource(
        method: str,
        path: str,
        status: int = 200,
        service_name: str = TEST_SERVICE,
        **response_kwargs,
    ):
        route = respx_mock.route(
            method=method,
            scheme="https",
            host=httpx.URL(upstream_url(service_name, path)).host,
            path=path,
        )
        return route.mock(return_value=httpx.Response(status, **response_kwargs))

    return _mock_resource
