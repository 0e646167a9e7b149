"""
Allowlist of upstream Amadeus resource paths.

The generic `amadeus.request` tool accepts an arbitrary path from the caller,
so every such path is checked here before it is forwarded. Fixed-path tools
skip the check: their path is hardcoded.

Templates are plain strings. A segment starting with ":" is a placeholder that
stands for exactly one non-empty path segment:

    "/v1/booking/flight-orders/:flightOrderId"

    /v1/booking/flight-orders/ABC123       -> allowed
    /v1/booking/flight-orders/             -> rejected (empty segment)
    /v1/booking/flight-orders/ABC/extra    -> rejected (extra segment)

Matching is anchored at both ends and segment-for-segment. Trailing slashes
are not normalized, so "/a/b" and "/a/b/" are different paths. Any query
string or fragment is stripped before matching so it can't be used to smuggle
a path past the check.
Placeholders never match "." or ".." (nor their percent-encoded forms),
since the HTTP client resolves dot segments and would send a different path
than the one that was checked.
"""

from dataclasses import dataclass
from urllib.parse import unquote

PLACEHOLDER_PREFIX = ":"

ALLOWED_PATHS: frozenset[str] = frozenset(
    {
        # Flights: search, dates, pricing, booking
        "/v2/shopping/flight-offers",
        "/v1/shopping/flight-dates",
        "/v1/shopping/flight-offers/pricing",
        "/v1/booking/flight-orders",
        "/v1/booking/flight-orders/:flightOrderId",
        "/v1/shopping/seatmaps",
        "/v2/schedule/flights",
        "/v1/shopping/flight-offers/upselling",
        "/v2/shopping/flight-offers/prediction",
        "/v1/shopping/flight-destinations",
        "/v1/shopping/availability/flight-availabilities",
        # Predictions & analytics
        "/v1/travel/predictions/flight-delay",
        "/v1/analytics/itinerary-price-metrics",
        "/v1/airport/predictions/on-time",
        "/v1/travel/predictions/trip-purpose",
        "/v1/travel/analytics/air-traffic/traveled",
        "/v1/travel/analytics/air-traffic/booked",
        "/v1/travel/analytics/air-traffic/busiest-period",
        # Reference data & airports
        "/v1/reference-data/recommended-locations",
        "/v1/reference-data/locations",
        "/v1/reference-data/locations/CMUC",
        "/v1/reference-data/locations/airports",
        "/v1/reference-data/locations/cities",
        "/v1/airport/direct-destinations",
        "/v2/reference-data/urls/checkin-links",
        "/v1/reference-data/airlines",
        "/v1/airline/destinations",
        # Activities
        "/v1/shopping/activities",
        "/v1/shopping/activities/4615",
        "/v1/shopping/activities/by-square",
        # Transfers
        "/v1/shopping/transfer-offers",
        "/v1/ordering/transfer-orders",
        "/v1/ordering/transfer-orders/:transferOrderId/transfers/cancellation",
        # Auth
        "/v1/security/oauth2/token",
        # Hotels
        "/v1/reference-data/locations/hotels/by-city",
        "/v1/reference-data/locations/hotels/by-hotels",
        "/v1/reference-data/locations/hotels/by-geocode",
        "/v1/reference-data/locations/hotel",
        "/v3/shopping/hotel-offers",
        "/v3/shopping/hotel-offers/:hotelOfferId",
        "/v1/booking/hotel-bookings",
        "/v2/booking/hotel-orders",
        "/v2/e-reputation/hotel-sentiments",
    }
)


@dataclass(frozen=True)
class Segment:
    """One path segment of a template: a literal string or a placeholder."""

    value: str
    placeholder: bool = False

    def matches(self, candidate: str) -> bool:
        if self.placeholder:
            return candidate != "" and not is_dot_segment(candidate)
        return candidate == self.value


@dataclass(frozen=True)
class PathTemplate:
    """
    A parsed allowlist entry.

    Attributes:
        raw: The template as written in ALLOWED_PATHS
        segments: The "/"-separated parts of `raw` (the leading "" included)
    """

    raw: str
    segments: tuple[Segment, ...]

    @classmethod
    def parse(cls, raw: str) -> "PathTemplate":
        segments = tuple(
            Segment(part[1:], placeholder=True)
            if part.startswith(PLACEHOLDER_PREFIX)
            else Segment(part)
            for part in raw.split("/")
        )
        return cls(raw=raw, segments=segments)

    @property
    def is_literal(self) -> bool:
        return not any(s.placeholder for s in self.segments)

    def matches(self, path: str) -> bool:
        parts = path.split("/")
        if len(parts) != len(self.segments):
            return False
        return all(seg.matches(part) for seg, part in zip(self.segments, parts))


class PathMatcher:
    """
    Decides whether a relative resource path may be forwarded upstream.

    Templates are parsed once at construction; each check is a set lookup
    followed by a scan over the (few) templated entries.
    """

    def __init__(self, templates: frozenset[str] | set[str]):
        parsed = [PathTemplate.parse(t) for t in templates]
        self._literals = frozenset(t.raw for t in parsed if t.is_literal)
        self._templated = tuple(t for t in parsed if not t.is_literal)

    def is_allowed(self, path: str) -> bool:
        path = strip_query_and_fragment(path)
        if not path.startswith("/"):
            return False
        if path in self._literals:
            return True
        return any(t.matches(path) for t in self._templated)


def is_dot_segment(segment: str) -> bool:
    return unquote(segment) in (".", "..")


def strip_query_and_fragment(path: str) -> str:
    for sep in ("?", "#"):
        path = path.split(sep, 1)[0]
    return path


# Module-level matcher over the Amadeus allowlist.
_matcher = PathMatcher(ALLOWED_PATHS)


def path_is_allowed(path: str) -> bool:
    """Return True if `path` is on the Amadeus allowlist."""
    return _matcher.is_allowed(path)
