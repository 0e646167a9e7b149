"""
Error taxonomy for the Amadeus proxy.

Only local, fail-fast problems are exceptions here:

- ConfigError: credentials or environment are missing / malformed
- ValidationError: the caller's tool input breaks a shape or allowlist rule
- AuthError: the OAuth2 token exchange failed

Upstream 4xx/5xx responses and transport failures of the forwarded request are
NOT exceptions. They come back from the forwarder as a ForwardResult with
is_error=True, so callers only ever check a flag.
"""

from typing import Any


class ProxyError(Exception):
    """
    Base exception for the proxy.

    Attributes:
        code: Stable machine-readable error code (e.g. "VALIDATION_ERROR")
        message: Human-readable description, safe to show to the tool caller
        details: Extra structured context for logs
    """

    code = "PROXY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(ProxyError):
    """Missing or malformed credentials / environment configuration."""

    code = "CONFIG_ERROR"


class ValidationError(ProxyError):
    """Tool input rejected before any network I/O."""

    code = "VALIDATION_ERROR"


class AuthError(ProxyError):
    """
    Raised when the client-credentials token exchange fails for any reason.

    Every failure carries the same "Amadeus auth error: ..." message prefix.
    The `reason` attribute tells the cases apart without parsing the text:

        "transport"      network error or timeout talking to the token endpoint
        "missing_token"  2xx response without an access_token
        "rejected"       non-2xx response from the token endpoint

    Attributes:
        reason: One of the values above
        status_code: Upstream HTTP status, when a response was received
    """

    code = "AUTH_ERROR"

    def __init__(self, detail: str, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            f"Amadeus auth error: {detail}",
            details={"reason": reason, "status_code": status_code},
        )
