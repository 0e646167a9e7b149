"""
Entry-boundary checks for tool input.

These run before any network I/O. Every failure is a ValidationError whose
message is returned to the tool caller as-is.
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from amadeus_mcp.config import MAX_TIMEOUT_MS
from amadeus_mcp.errors import ValidationError

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

# A single lowercase DNS label, so the realm can only select an
# {service_name}.api.amadeus.com host.
_SERVICE_NAME_RE = re.compile(r"[a-z0-9][a-z0-9-]{0,61}[a-z0-9]")

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~".
_SEGMENT_SAFE = "!*'()"


def ensure_string(value: Any, name: str) -> str:
    """Return `value` if it is a non-blank string."""
    if not isinstance(value, str) or value.strip() == "":
        raise ValidationError(f"{name} must be a non-empty string")
    return value


def assert_no_auth_header(headers: Mapping[str, str] | None) -> None:
    """
    Reject caller headers that try to set Authorization.

    The bearer token is always set by the server, so any "authorization" key
    (in any letter case) is refused outright rather than silently dropped.
    """
    if not headers:
        return
    if any(key.lower() == "authorization" for key in headers):
        raise ValidationError("Do not send Authorization; it will be set by the server.")


def check_timeout(timeout_ms: Any) -> int:
    # bool is an int subclass; True is not a timeout.
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
        raise ValidationError(f"timeout_ms must be a positive integer up to {MAX_TIMEOUT_MS}")
    if not 0 < timeout_ms <= MAX_TIMEOUT_MS:
        raise ValidationError(f"timeout_ms must be a positive integer up to {MAX_TIMEOUT_MS}")
    return timeout_ms


def check_method(method: Any) -> str:
    if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
        raise ValidationError(f"method must be one of {', '.join(HTTP_METHODS)}")
    return method.upper()


def quote_segment(value: str) -> str:
    """Percent-encode a value for use as a single path segment ("/" included)."""
    return quote(value, safe=_SEGMENT_SAFE)


def check_service_name(service_name: Any) -> str:
    """Return `service_name` if it is a valid realm label such as "test"."""
    if not isinstance(service_name, str) or not _SERVICE_NAME_RE.fullmatch(service_name):
        raise ValidationError(
            "service_name must be a single lowercase DNS label (letters, digits, "
            'hyphens), e.g. "test" or "production"'
        )
    return service_name
