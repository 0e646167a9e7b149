"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables (or a local .env file):

- AMADEUS_SERVICE_NAME selects the upstream realm ("test" or "production")
- AMADEUS_API_KEY / AMADEUS_API_SECRET are the client-credentials pair
- AMADEUS_TIMEOUT_MS is the default per-call timeout for forwarded requests

Credentials may also be passed on each tool call; the environment values are
only the fallback. Missing credentials are reported as a ConfigError when a
call needs them, before anything goes on the network.
"""

from pydantic_settings import BaseSettings

# Upper bound for any per-call timeout, in milliseconds.
MAX_TIMEOUT_MS = 60000


class Settings(BaseSettings):
    """
    Server configuration with environment variable bindings.

    Each field maps to an environment variable with the AMADEUS_ prefix.
    For example, `api_key` reads from AMADEUS_API_KEY.
    """

    # --- Upstream realm and credentials ---

    # Subdomain of api.amadeus.com: "test" is the self-service sandbox,
    # "production" the live environment.
    service_name: str = "test"

    # Empty by default so the server can start without credentials when every
    # caller supplies its own.
    api_key: str = ""
    api_secret: str = ""

    # --- Timeouts ---

    # Default timeout for forwarded tool calls (token fetch + request).
    timeout_ms: int = 15000

    # Default timeout for a standalone token exchange.
    token_timeout_ms: int = 10000

    # --- Token cache ---

    # Seconds to reuse a token for the same (service_name, api_key).
    # 0 disables caching: every call fetches a fresh token.
    token_cache_ttl_seconds: int = 0

    # --- Logging ---

    log_level: str = "info"

    model_config = {
        "env_prefix": "AMADEUS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Singleton instance: import this from other modules.
settings = Settings()
