"""
Forward one tool call to the Amadeus REST API.

The flow for every call is linear:

    get token --(AuthError)--> raised, nothing is sent
        |
    send request --(4xx/5xx)--> ForwardResult(body, is_error=True)
        |        --(DNS/timeout/connection/TLS)--> ForwardResult("Forwarding error (500): ...", True)
        |
    ForwardResult(body, is_error=False)

Upstream error responses and transport failures come back as values of the
same shape; callers check `is_error`.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from amadeus_mcp.auth import Credentials, TokenCache, get_token

MAX_REDIRECTS = 3
DEFAULT_CONTENT_TYPE = "application/json"

# Caller headers with these names (any case) are replaced by server values.
_SERVER_HEADERS = ("authorization", "content-type")

logger = logging.getLogger("amadeus-mcp.forwarder")


@dataclass(frozen=True)
class ForwardResult:
    """
    Normalized outcome of a forwarded call.

    Attributes:
        payload: Upstream body as text (JSON bodies re-serialized compactly),
                 or a "Forwarding error (...)" message
        is_error: True for upstream status >= 400 or a transport failure
    """

    payload: str
    is_error: bool


def upstream_url(service_name: str, path: str) -> str:
    return f"https://{service_name}.api.amadeus.com{path}"


def _to_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _query_params(query: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Flatten a query mapping into (key, value) pairs for the URL."""
    params: list[tuple[str, str]] = []
    for key, value in (query or {}).items():
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                continue
            if isinstance(item, bool):
                params.append((key, "true" if item else "false"))
            elif isinstance(item, (dict, list)):
                params.append((key, _to_json(item)))
            else:
                params.append((key, str(item)))
    return params


def _encode_body(body: Any, content_type: str) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if "application/x-www-form-urlencoded" in content_type.lower() and isinstance(body, Mapping):
        return urlencode(body, doseq=True).encode("utf-8")
    return _to_json(body).encode("utf-8")


def _merge_headers(headers: Mapping[str, str] | None, token: str, content_type: str) -> dict[str, str]:
    merged = {k: v for k, v in (headers or {}).items() if k.lower() not in _SERVER_HEADERS}
    merged["Authorization"] = f"Bearer {token}"
    merged["Content-Type"] = content_type
    return merged


def _payload(response: httpx.Response) -> str:
    """Body text verbatim unless it is JSON, which is re-serialized compactly."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    return data if isinstance(data, str) else _to_json(data)


async def forward_request(
    credentials: Credentials,
    method: str,
    path: str,
    *,
    query: Mapping[str, Any] | None = None,
    body: Any = None,
    headers: Mapping[str, str] | None = None,
    content_type: str = DEFAULT_CONTENT_TYPE,
    timeout_ms: int = 15000,
    token_cache: TokenCache | None = None,
) -> ForwardResult:
    """
    Authenticate and send one request upstream.

    The path is used as given. Callers accepting arbitrary paths must check it
    with path_is_allowed() first, and headers must not contain Authorization
    (see validation.assert_no_auth_header).

    Args:
        credentials: Realm plus client id/secret
        method: HTTP method (GET, POST, PUT, PATCH, DELETE)
        path: Resource path starting with "/"
        query: Query parameters
        body: Request body; JSON-encoded unless already str/bytes or sent as
              a form with a mapping body
        headers: Extra request headers
        content_type: Content-Type of the request body
        timeout_ms: Bound on the token fetch and, separately, on the request
        token_cache: Reuse tokens through this cache instead of fetching one

    Returns:
        ForwardResult with the upstream body and error flag

    Raises:
        AuthError: If no token could be obtained
        ValidationError: If timeout_ms is out of range
    """
    if token_cache is not None:
        token = await token_cache.get_token(credentials, timeout_ms)
    else:
        token = await get_token(credentials, timeout_ms)

    url = upstream_url(credentials.service_name, path)
    log_data = {"service_name": credentials.service_name, "method": method, "path": path}

    try:
        async with httpx.AsyncClient(
            timeout=timeout_ms / 1000,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
        ) as client:
            response = await client.request(
                method,
                url,
                params=_query_params(query) or None,
                content=_encode_body(body, content_type),
                headers=_merge_headers(headers, token, content_type),
            )
    except httpx.HTTPError as e:
        detail = str(e) or type(e).__name__
        logger.warning(
            "Forwarding failed",
            extra={"log_data": {**log_data, "error": detail, "error_type": type(e).__name__}},
        )
        return ForwardResult(f"Forwarding error (500): {_to_json({'error': detail})}", True)

    is_error = response.status_code >= 400
    logger.info(
        "Request forwarded",
        extra={"log_data": {**log_data, "status": response.status_code, "is_error": is_error}},
    )
    return ForwardResult(_payload(response), is_error)
