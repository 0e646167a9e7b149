"""
CLI utility to check Amadeus credentials by fetching a token.

Runs the same client-credentials exchange the server performs before every
forwarded call, and prints a masked token on success. Handy for confirming
that AMADEUS_API_KEY / AMADEUS_API_SECRET are valid for a realm before wiring
the server into an MCP client.

Usage examples:

    # Credentials from the environment (or .env), test realm
    python -m scripts.fetch_token

    # Production realm
    python -m scripts.fetch_token --service-name production

    # Explicit credentials and a short timeout
    python -m scripts.fetch_token --api-key KEY --api-secret SECRET --timeout-ms 3000

Exit status is 0 on success and 1 when the credentials are missing or the
token endpoint rejects them.
"""

import argparse
import asyncio
import sys

from amadeus_mcp.auth import Credentials, fetch_token, token_url
from amadeus_mcp.config import settings
from amadeus_mcp.errors import ProxyError


def mask(token: str, visible: int = 4) -> str:
    """Show only the first and last `visible` characters of a token."""
    if len(token) <= visible * 2:
        return "*" * len(token)
    return f"{token[:visible]}...{token[-visible:]}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch an Amadeus OAuth2 token to verify credentials.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Environment credentials:
    %(prog)s

  Production realm:
    %(prog)s --service-name production
        """,
    )
    parser.add_argument(
        "--service-name",
        default=settings.service_name,
        help="Amadeus realm: 'test' or 'production' (default: AMADEUS_SERVICE_NAME)",
    )
    parser.add_argument("--api-key", default=None, help="Client id (default: AMADEUS_API_KEY)")
    parser.add_argument(
        "--api-secret", default=None, help="Client secret (default: AMADEUS_API_SECRET)"
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=settings.token_timeout_ms,
        help="Timeout in milliseconds, 1-60000 (default: AMADEUS_TOKEN_TIMEOUT_MS)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        credentials = Credentials.resolve(args.service_name, args.api_key, args.api_secret)
        data = asyncio.run(fetch_token(credentials, args.timeout_ms))
    except ProxyError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(f"Endpoint:   {token_url(credentials.service_name)}")
    print(f"Client id:  {credentials.api_key}")
    print(f"Expires in: {data.get('expires_in', 'unknown')}s")
    print(f"Token:      {mask(data['access_token'])}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
