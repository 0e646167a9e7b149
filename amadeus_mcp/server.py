"""
MCP server exposing the Amadeus travel API as tools, over stdio.

This module creates and runs the MCP server with:
- One tool per entry in tools.ENDPOINTS (flights, hotels, activities,
  transfers, predictions, analytics)
- A generic `amadeus.request` tool for any allowlisted path
- Transparent OAuth2 client-credentials authentication on every call
- Structured JSON logging to stderr (stdout carries the MCP protocol)

Architecture:
    The flow for every tools/call request:

    1. FastMCP routes the call to the AmadeusTool registered under that name
    2. tools.parse_arguments() validates the input (Authorization header ban,
       timeout range, path allowlist for the generic tool) and resolves
       credentials, falling back to the AMADEUS_* environment settings
    3. forwarder.forward_request() fetches a bearer token and sends the request
    4. The upstream body becomes the tool's text content; is_error becomes the
       MCP isError flag

    Validation, configuration and auth failures become failed tool results
    too. Nothing a caller sends, and nothing the upstream returns, crashes the
    process.

Running the server:
    python -m amadeus_mcp.server      (or the `amadeus-mcp` console script)
"""

import json
import logging
import sys
import uuid
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import Tool, ToolResult

from amadeus_mcp.auth import TokenCache, cache_from_settings
from amadeus_mcp.config import settings
from amadeus_mcp.errors import ProxyError
from amadeus_mcp.forwarder import forward_request
from amadeus_mcp.tools import ENDPOINTS, GENERIC_TOOL_NAME, Endpoint, input_schema, parse_arguments

# ---------------------------------------------------------------------------
# Structured JSON Logging
# ---------------------------------------------------------------------------
# One JSON object per line on stderr. Extra structured fields are passed as
# logger.info("msg", extra={"log_data": {...}}). Credentials and tokens are
# never put in log_data.


class JSONLogFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Example output:

        {"timestamp": "2026-02-06 10:30:00,123", "level": "INFO",
         "logger": "amadeus-mcp.forwarder", "message": "Request forwarded",
         "method": "GET", "path": "/v2/shopping/flight-offers", "status": 200}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "log_data"):
            log_entry.update(record.log_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = settings.log_level) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONLogFormatter())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )


logger = logging.getLogger("amadeus-mcp")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class AmadeusTool(Tool):
    """
    An MCP tool that forwards one Amadeus operation.

    The input schema comes from tools.input_schema(); arguments are validated
    by tools.parse_arguments() rather than by a Python signature, so every
    operation shares one handler.

    Attributes:
        endpoint: The operation to forward, or None for the generic tool whose
                  method and path come from the caller
    """

    endpoint: Endpoint | None = None

    @classmethod
    def for_endpoint(cls, endpoint: Endpoint) -> "AmadeusTool":
        return cls(
            name=endpoint.name,
            title=endpoint.title,
            description=endpoint.description,
            parameters=input_schema(endpoint),
            endpoint=endpoint,
        )

    @classmethod
    def generic(cls) -> "AmadeusTool":
        return cls(
            name=GENERIC_TOOL_NAME,
            title="Forward an Amadeus API request",
            description=(
                "Authenticates with Amadeus (OAuth2 client credentials) and forwards "
                "an HTTP request to a whitelisted Amadeus REST path."
            ),
            parameters=input_schema(None),
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        request_id = str(uuid.uuid4())[:8]
        log_data = {"request_id": request_id, "tool": self.name}

        try:
            call = parse_arguments(self.endpoint, arguments)
            result = await forward_request(
                call.credentials,
                call.method,
                call.path,
                query=call.query,
                body=call.body,
                headers=call.headers,
                content_type=call.content_type,
                timeout_ms=call.timeout_ms,
                token_cache=token_cache,
            )
        except ProxyError as e:
            logger.warning(
                "Tool call rejected",
                extra={"log_data": {**log_data, "code": e.code, "error": e.message}},
            )
            raise ToolError(e.message) from e

        logger.info(
            "Tool call completed",
            extra={"log_data": {**log_data, "path": call.path, "is_error": result.is_error}},
        )
        if result.is_error:
            # FastMCP turns ToolError into a result with isError=true whose
            # text is the error message, i.e. the upstream payload. FastMCP's
            # tool manager also logs a traceback for it; that is expected for
            # ordinary upstream 4xx/5xx responses.
            raise ToolError(result.payload)
        return ToolResult(content=result.payload)


# Shared only when AMADEUS_TOKEN_CACHE_TTL_SECONDS > 0; otherwise None and
# every call fetches its own token.
token_cache: TokenCache | None = cache_from_settings()


def create_server() -> FastMCP:
    server = FastMCP(
        name="amadeus-proxy-mcp",
        instructions=(
            "Forwards requests to the Amadeus Self-Service travel APIs (flights, "
            "hotels, activities, transfers, predictions, analytics). "
            "Authentication is handled by the server."
        ),
    )
    server.add_tool(AmadeusTool.generic())
    for endpoint in ENDPOINTS:
        server.add_tool(AmadeusTool.for_endpoint(endpoint))
    return server


mcp = create_server()


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------


def main() -> None:
    configure_logging()
    logger.info(
        "Starting MCP server (transport=stdio)",
        extra={
            "log_data": {
                "service_name": settings.service_name,
                "tools": len(ENDPOINTS) + 1,
                "token_cache": token_cache is not None,
            }
        },
    )
    try:
        mcp.run(transport="stdio")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
