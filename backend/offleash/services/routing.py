# backend/offleash/services/routing.py
"""
Travel-time provider: Google Distance Matrix over httpx.

Only one call is needed: base driving duration (no live traffic; peak hours are
handled by the travel cache multiplier) and distance between two coordinates.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Provider unreachable, rejected the request, or returned no route."""


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def as_param(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class RouteEstimate:
    duration_minutes: int
    distance_meters: int


class RoutingProvider(Protocol):
    def travel_time(self, origin: Coordinates, destination: Coordinates) -> RouteEstimate: ...


class GoogleMapsClient:
    """Distance Matrix client. One origin, one destination per request."""

    def __init__(
        self,
        api_key: str,
        base_url: str = settings.routing_base_url,
        timeout: float = settings.routing_timeout_seconds,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.client = client or httpx.Client(timeout=timeout)

    def travel_time(self, origin: Coordinates, destination: Coordinates) -> RouteEstimate:
        params = {
            "origins": origin.as_param(),
            "destinations": destination.as_param(),
            "key": self.api_key,
            "mode": "driving",
        }
        try:
            resp = self.client.get(self.base_url, params=params)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as e:
            raise RoutingError(f"distance matrix request failed: {e}") from e
        except ValueError as e:
            raise RoutingError("distance matrix returned invalid JSON") from e

        return _parse_matrix(payload)

    def close(self) -> None:
        self.client.close()


def _parse_matrix(payload: dict) -> RouteEstimate:
    status = payload.get("status")
    if status != "OK":
        message = payload.get("error_message") or status
        raise RoutingError(f"distance matrix error: {message}")

    try:
        element = payload["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise RoutingError("distance matrix returned no elements") from e

    if element.get("status") != "OK":
        raise RoutingError(f"no route: {element.get('status')}")

    # Base duration only; traffic is applied by the peak multiplier
    duration = element.get("duration")
    distance = element.get("distance")
    if not duration or not distance:
        raise RoutingError("distance matrix element missing duration or distance")

    return RouteEstimate(
        duration_minutes=int(duration["value"]) // 60,
        distance_meters=int(distance["value"]),
    )


_provider: GoogleMapsClient | None = None


def get_routing_provider() -> RoutingProvider | None:
    """FastAPI dependency. None when no API key is configured."""
    global _provider
    if not settings.routing_api_key:
        return None
    if _provider is None:
        _provider = GoogleMapsClient(settings.routing_api_key)
    return _provider
