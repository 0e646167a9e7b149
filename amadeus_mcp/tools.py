"""
Tool definitions: one entry per Amadeus operation.

This module is the central registry of what the server exposes:

    Endpoint(name, title, description, method, path, path_param)

server.py iterates ENDPOINTS and registers one MCP tool per entry, so adding
an operation means adding a line here (and its path to paths.ALLOWED_PATHS).

Fixed-path endpoints forward to `path` verbatim. Templated endpoints have a
single ":placeholder" segment; its value comes from the tool argument named by
`path_param` and is percent-encoded before substitution.

parse_arguments() turns a tool's raw arguments into a validated ToolCall. It
is the entry boundary: the Authorization header ban, the timeout range and
(for the generic tool) the path allowlist are all enforced there, before any
network I/O.

Tool naming convention:
- Format: "amadeus.<version>.<resource path with "/" replaced by ".">"
- Templated lookups end in ".by-id" (or the action name, e.g. ".cancellation")
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from amadeus_mcp.auth import Credentials
from amadeus_mcp.config import MAX_TIMEOUT_MS, settings
from amadeus_mcp.errors import ValidationError
from amadeus_mcp.forwarder import DEFAULT_CONTENT_TYPE
from amadeus_mcp.paths import (
    PLACEHOLDER_PREFIX,
    is_dot_segment,
    path_is_allowed,
    strip_query_and_fragment,
)
from amadeus_mcp.validation import (
    HTTP_METHODS,
    assert_no_auth_header,
    check_method,
    check_service_name,
    check_timeout,
    ensure_string,
    quote_segment,
)

# Name of the general-purpose tool that accepts any allowlisted path.
GENERIC_TOOL_NAME = "amadeus.request"


@dataclass(frozen=True)
class PathParam:
    """
    The placeholder of a templated endpoint.

    Attributes:
        argument: Tool argument name (e.g. "flight_order_id")
        description: Shown to the caller in the tool's input schema
    """

    argument: str
    description: str


@dataclass(frozen=True)
class Endpoint:
    name: str
    title: str
    description: str
    method: str
    path: str
    path_param: PathParam | None = None

    def resolve_path(self, value: str | None = None) -> str:
        """Return the concrete path, substituting the placeholder if any."""
        if self.path_param is None:
            return self.path
        value = ensure_string(value, self.path_param.argument)
        if is_dot_segment(value):
            raise ValidationError(f'{self.path_param.argument} must not be "." or ".."')
        return "/".join(
            quote_segment(value) if part.startswith(PLACEHOLDER_PREFIX) else part
            for part in self.path.split("/")
        )


def _get(name: str, title: str, description: str, path: str, path_param: PathParam | None = None):
    return Endpoint(name, f"Amadeus: {title}", description, "GET", path, path_param)


def _post(name: str, title: str, description: str, path: str, path_param: PathParam | None = None):
    return Endpoint(name, f"Amadeus: {title}", description, "POST", path, path_param)


ENDPOINTS: tuple[Endpoint, ...] = (
    # --- Flights: search, dates, pricing ---
    _get("amadeus.v2.shopping.flight-offers", "Flight Offers Search",
         "Search for available flight offers.", "/v2/shopping/flight-offers"),
    _get("amadeus.v1.shopping.flight-dates", "Flight Dates",
         "Search for the cheapest flight dates.", "/v1/shopping/flight-dates"),
    _post("amadeus.v1.shopping.flight-offers.pricing", "Flight Offers Pricing",
          "Confirm pricing of a flight offer.", "/v1/shopping/flight-offers/pricing"),
    # --- Flight orders (booking) ---
    _post("amadeus.v1.booking.flight-orders", "Flight Orders",
          "Create a new flight booking order.", "/v1/booking/flight-orders"),
    _get("amadeus.v1.booking.flight-orders.by-id", "Flight Order by ID",
         "Retrieve a specific flight booking order by ID.",
         "/v1/booking/flight-orders/:flightOrderId",
         PathParam("flight_order_id", "Flight order ID returned when the order was created.")),
    # --- Seatmaps & schedules ---
    _post("amadeus.v1.shopping.seatmaps", "Seatmaps",
          "Get seat maps for a flight offer.", "/v1/shopping/seatmaps"),
    _get("amadeus.v2.schedule.flights", "Schedules (Flights)",
         "Retrieve airline schedules for flights.", "/v2/schedule/flights"),
    # --- Predictions & analytics ---
    _get("amadeus.v1.travel.predictions.flight-delay", "Flight Delay Prediction",
         "Predict probability of a flight delay.", "/v1/travel/predictions/flight-delay"),
    _get("amadeus.v1.analytics.itinerary-price-metrics", "Itinerary Price Metrics",
         "Get itinerary price metrics.", "/v1/analytics/itinerary-price-metrics"),
    _post("amadeus.v1.shopping.flight-offers.upselling", "Flight Offers Upselling",
          "Find upsell offers for a flight.", "/v1/shopping/flight-offers/upselling"),
    _post("amadeus.v2.shopping.flight-offers.prediction", "Flight Offer Low-Price Prediction",
          "Predict if a flight offer is likely the lowest price.",
          "/v2/shopping/flight-offers/prediction"),
    _get("amadeus.v1.travel.predictions.trip-purpose", "Trip Purpose Prediction",
         "Predict business vs leisure trip.", "/v1/travel/predictions/trip-purpose"),
    # --- Shopping: destinations, availability ---
    _get("amadeus.v1.shopping.flight-destinations", "Flight Destinations",
         "Cheapest destinations from an origin.", "/v1/shopping/flight-destinations"),
    _post("amadeus.v1.shopping.availability.flight-availabilities", "Flight Availabilities",
          "Real-time seat availability.", "/v1/shopping/availability/flight-availabilities"),
    # --- Reference data & airports ---
    _get("amadeus.v1.reference-data.recommended-locations", "Recommended Locations",
         "Recommended locations for a city.", "/v1/reference-data/recommended-locations"),
    _get("amadeus.v1.airport.predictions.on-time", "Airport On-Time Prediction",
         "Airport on-time performance prediction.", "/v1/airport/predictions/on-time"),
    _get("amadeus.v1.reference-data.locations", "Locations",
         "Search locations (cities/airports).", "/v1/reference-data/locations"),
    _get("amadeus.v1.reference-data.locations.CMUC", "Location by ID (CMUC)",
         "Details for a specific location ID.", "/v1/reference-data/locations/CMUC"),
    _get("amadeus.v1.reference-data.locations.airports", "Airports by City",
         "Airports serving a city.", "/v1/reference-data/locations/airports"),
    _get("amadeus.v1.airport.direct-destinations", "Airport Direct Destinations",
         "Direct destinations from an airport.", "/v1/airport/direct-destinations"),
    _get("amadeus.v2.reference-data.urls.checkin-links", "Airline Check-in Links",
         "Airline check-in links.", "/v2/reference-data/urls/checkin-links"),
    _get("amadeus.v1.reference-data.airlines", "Airlines",
         "Airline information by code.", "/v1/reference-data/airlines"),
    _get("amadeus.v1.airline.destinations", "Airline Destinations",
         "Destinations served by an airline.", "/v1/airline/destinations"),
    # --- Activities ---
    _get("amadeus.v1.shopping.activities", "Activities Search",
         "Search activities at a destination.", "/v1/shopping/activities"),
    _get("amadeus.v1.shopping.activities.4615", "Activity by ID (4615)",
         "Retrieve a specific activity by ID.", "/v1/shopping/activities/4615"),
    _get("amadeus.v1.shopping.activities.by-square", "Activities by Bounding Box",
         "Search activities by geographic bounding box.", "/v1/shopping/activities/by-square"),
    _get("amadeus.v1.reference-data.locations.cities", "Cities",
         "Cities information.", "/v1/reference-data/locations/cities"),
    # --- Transfers ---
    _get("amadeus.v1.shopping.transfer-offers", "Transfer Offers",
         "Search ground transfer offers.", "/v1/shopping/transfer-offers"),
    _post("amadeus.v1.ordering.transfer-orders", "Transfer Orders",
          "Book a ground transfer order.", "/v1/ordering/transfer-orders"),
    _post("amadeus.v1.ordering.transfer-orders.cancellation", "Cancel Transfer Order",
          "Cancel a transfer order.",
          "/v1/ordering/transfer-orders/:transferOrderId/transfers/cancellation",
          PathParam("transfer_order_id", "Transfer order ID to cancel.")),
    # --- Air traffic analytics ---
    _get("amadeus.v1.travel.analytics.air-traffic.traveled", "Air Traffic (Traveled)",
         "Air traffic analytics: traveled.", "/v1/travel/analytics/air-traffic/traveled"),
    _get("amadeus.v1.travel.analytics.air-traffic.booked", "Air Traffic (Booked)",
         "Air traffic analytics: booked.", "/v1/travel/analytics/air-traffic/booked"),
    _get("amadeus.v1.travel.analytics.air-traffic.busiest-period", "Air Traffic (Busiest Period)",
         "Busiest travel period analytics.", "/v1/travel/analytics/air-traffic/busiest-period"),
    # --- Hotels ---
    _get("amadeus.v1.reference-data.locations.hotels.by-city", "Hotels by City",
         "List hotels by city.", "/v1/reference-data/locations/hotels/by-city"),
    _get("amadeus.v3.shopping.hotel-offers", "Hotel Offers",
         "Search hotel offers.", "/v3/shopping/hotel-offers"),
    _post("amadeus.v1.booking.hotel-bookings", "Hotel Bookings",
          "Book a hotel.", "/v1/booking/hotel-bookings"),
    _get("amadeus.v1.reference-data.locations.hotels.by-hotels", "Hotels by IDs",
         "Hotel details by IDs.", "/v1/reference-data/locations/hotels/by-hotels"),
    _get("amadeus.v1.reference-data.locations.hotels.by-geocode", "Hotels by Geocode",
         "Hotels near coordinates.", "/v1/reference-data/locations/hotels/by-geocode"),
    _get("amadeus.v3.shopping.hotel-offers.by-id", "Hotel Offer by ID",
         "Retrieve a specific hotel offer by ID.", "/v3/shopping/hotel-offers/:hotelOfferId",
         PathParam("hotel_offer_id", "Hotel offer ID from a hotel offers search.")),
    _post("amadeus.v2.booking.hotel-orders", "Hotel Orders",
          "Create/manage a hotel order.", "/v2/booking/hotel-orders"),
    _get("amadeus.v2.e-reputation.hotel-sentiments", "Hotel Sentiments",
         "Hotel review sentiment analysis.", "/v2/e-reputation/hotel-sentiments"),
    _get("amadeus.v1.reference-data.locations.hotel", "Hotel Location",
         "Hotel location details.", "/v1/reference-data/locations/hotel"),
)

ENDPOINTS_BY_NAME: dict[str, Endpoint] = {e.name: e for e in ENDPOINTS}


# ---------------------------------------------------------------------------
# Tool input
# ---------------------------------------------------------------------------
# Every tool takes the same base arguments. Credentials are optional and fall
# back to the AMADEUS_* environment settings.


def input_schema(endpoint: Endpoint | None) -> dict[str, Any]:
    """JSON schema for a tool's arguments (endpoint=None: the generic tool)."""
    properties: dict[str, Any] = {
        "service_name": {
            "type": "string",
            "minLength": 2,
            "pattern": "^[a-z0-9][a-z0-9-]{0,61}[a-z0-9]$",
            "description": 'Amadeus realm, e.g. "test" or "production".',
        },
        "api_key": {"type": "string", "minLength": 1},
        "api_secret": {"type": "string", "minLength": 1},
        "query": {"type": "object", "description": "Query string parameters."},
        "body": {"description": "Request body, JSON-encoded unless content_type says otherwise."},
        "headers": {
            "type": "object",
            "additionalProperties": {"type": "string"},
            "description": "Extra request headers. Authorization is not allowed.",
        },
        "content_type": {"type": "string", "default": DEFAULT_CONTENT_TYPE},
        "timeout_ms": {
            "type": "integer",
            "minimum": 1,
            "maximum": MAX_TIMEOUT_MS,
            "default": settings.timeout_ms,
        },
    }
    required: list[str] = []

    if endpoint is None:
        properties["method"] = {"type": "string", "enum": list(HTTP_METHODS)}
        properties["path"] = {
            "type": "string",
            "description": 'Allowlisted Amadeus path, e.g. "/v2/shopping/flight-offers".',
        }
        required += ["method", "path"]
    elif endpoint.path_param is not None:
        properties[endpoint.path_param.argument] = {
            "type": "string",
            "minLength": 1,
            "description": endpoint.path_param.description,
        }
        required.append(endpoint.path_param.argument)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": True,
    }


@dataclass(frozen=True)
class ToolCall:
    """A validated tool invocation, ready for forward_request()."""

    credentials: Credentials
    method: str
    path: str
    query: dict[str, Any]
    body: Any
    headers: dict[str, str]
    content_type: str
    timeout_ms: int


def _optional_string(arguments: Mapping[str, Any], name: str) -> str | None:
    value = arguments.get(name)
    if value is None:
        return None
    return ensure_string(value, name)


def _mapping(arguments: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = arguments.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{name} must be an object")
    return dict(value)


def parse_arguments(endpoint: Endpoint | None, arguments: Mapping[str, Any]) -> ToolCall:
    """
    Validate raw tool arguments and resolve the upstream method and path.

    For the generic tool (endpoint=None) the caller's path must be on the
    allowlist; fixed endpoints use their own hardcoded path.

    Raises:
        ValidationError: On any shape or allowlist violation
        ConfigError: If no credentials are available
    """
    service_name = _optional_string(arguments, "service_name")
    if service_name is not None:
        check_service_name(service_name)
    api_key = _optional_string(arguments, "api_key")
    api_secret = _optional_string(arguments, "api_secret")

    query = _mapping(arguments, "query")
    headers = _mapping(arguments, "headers")
    if not all(isinstance(v, str) for v in headers.values()):
        raise ValidationError("headers values must be strings")
    assert_no_auth_header(headers)

    content_type = arguments.get("content_type")
    if content_type is None:
        content_type = DEFAULT_CONTENT_TYPE
    content_type = ensure_string(content_type, "content_type")

    timeout_ms = arguments.get("timeout_ms")
    timeout_ms = check_timeout(settings.timeout_ms if timeout_ms is None else timeout_ms)

    if endpoint is None:
        method = check_method(arguments.get("method"))
        path = ensure_string(arguments.get("path"), "path")
        if not path_is_allowed(path):
            raise ValidationError(f"Path not allowed: {path}")
        path = strip_query_and_fragment(path)
    else:
        method = endpoint.method
        argument = endpoint.path_param.argument if endpoint.path_param else None
        path = endpoint.resolve_path(arguments.get(argument) if argument else None)

    credentials = Credentials.resolve(service_name, api_key, api_secret)

    return ToolCall(
        credentials=credentials,
        method=method,
        path=path,
        query=query,
        body=arguments.get("body"),
        headers=headers,
        content_type=content_type,
        timeout_ms=timeout_ms,
    )
