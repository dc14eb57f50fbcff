"""Pairwise travel-time matrix construction."""

from __future__ import annotations

import logging
import time
from typing import Literal, Sequence

import httpx

from ...config import settings
from ..geospatial import haversine_minutes, round_half_up
from .geocoder import LocationResolver
from .models import UNREACHABLE_MINUTES, DistanceMatrix, Location
from .rate_limit import RateLimiter

# Google Distance Matrix accepts at most 25 origins and 25 destinations per call.
MAX_ELEMENTS_PER_SIDE = 25

logger = logging.getLogger(__name__)


class MatrixProviderError(RuntimeError):
    """Raised when the distance-matrix provider fails a request outright."""


def _format_latlng(point: tuple[float, float]) -> str:
    lat, lng = point
    return f"{lat},{lng}"


class GoogleDistanceMatrixClient:
    """Google Distance Matrix API client returning whole-minute durations."""

    def __init__(
        self,
        api_key: str,
        *,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.api_key = api_key
        self.url = url or settings.google_distance_matrix_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._client = client

    def _get(self, params: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.get(self.url, params=params)
        with httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0)) as client:
            return client.get(self.url, params=params)

    def table(
        self,
        origins: Sequence[tuple[float, float]],
        destinations: Sequence[tuple[float, float]],
    ) -> list[list[int]]:
        """Return an ``len(origins) x len(destinations)`` grid of drive minutes.

        Traffic-aware durations are preferred when present. Elements whose
        status is not ``OK`` get ``UNREACHABLE_MINUTES``.
        """
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")
        if len(origins) > MAX_ELEMENTS_PER_SIDE or len(destinations) > MAX_ELEMENTS_PER_SIDE:
            raise ValueError(
                f"Distance matrix request too large ({len(origins)}x{len(destinations)}); "
                f"max {MAX_ELEMENTS_PER_SIDE} per side."
            )

        params = {
            "origins": "|".join(_format_latlng(point) for point in origins),
            "destinations": "|".join(_format_latlng(point) for point in destinations),
            "units": "imperial",
            "departure_time": "now",
            "key": self.api_key,
        }
        try:
            response = self._get(params)
        except httpx.HTTPError as exc:
            raise MatrixProviderError(f"Distance Matrix request failed: {exc}") from exc
        if response.status_code < 200 or response.status_code >= 300:
            raise MatrixProviderError(f"Distance Matrix HTTP error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise MatrixProviderError("Distance Matrix returned a non-JSON body.") from exc
        if not isinstance(data, dict):
            raise MatrixProviderError(f"Distance Matrix returned an unexpected {type(data).__name__} body.")
        if data.get("status") != "OK":
            raise MatrixProviderError(f"Distance Matrix API error: {data.get('status')}")

        rows = data.get("rows")
        if not isinstance(rows, list):
            rows = []
        grid = [[UNREACHABLE_MINUTES] * len(destinations) for _ in origins]
        for i, row in enumerate(rows[: len(origins)]):
            elements = row.get("elements") if isinstance(row, dict) else None
            if not isinstance(elements, list):
                continue
            for j, element in enumerate(elements[: len(destinations)]):
                try:
                    if element.get("status") != "OK":
                        continue
                    traffic = element.get("duration_in_traffic")
                    seconds = float(traffic["value"] if traffic else element["duration"]["value"])
                except (AttributeError, KeyError, TypeError, ValueError):
                    logger.warning(f"Malformed Distance Matrix element at [{i}][{j}]; marking unreachable")
                    continue
                grid[i][j] = round_half_up(seconds / 60.0)
        return grid


def haversine_matrix(
    locations: Sequence[Location],
    *,
    speed_kmh: float | None = None,
    overhead_minutes: int | None = None,
) -> list[list[int]]:
    speed = speed_kmh if speed_kmh is not None else settings.haversine_speed_kmh
    overhead = overhead_minutes if overhead_minutes is not None else settings.haversine_overhead_minutes
    n = len(locations)
    minutes = [[0] * n for _ in range(n)]
    for i, origin in enumerate(locations):
        for j, destination in enumerate(locations):
            if i == j:
                continue
            minutes[i][j] = haversine_minutes(
                origin.lat,
                origin.lng,
                destination.lat,
                destination.lng,
                speed_kmh=speed,
                overhead_minutes=overhead,
            )
    return minutes


class DistanceMatrixBuilder:
    """Build a dense travel-time matrix for a set of locations.

    Without a provider every cell is a haversine estimate. With a provider
    the matrix is filled in ``batch_size`` x ``batch_size`` blocks, paced by
    ``batch_limiter``. ``failure_policy`` decides what a provider failure
    does: ``"degrade"`` rebuilds the whole matrix from haversine estimates,
    ``"raise"`` propagates ``MatrixProviderError``.
    """

    def __init__(
        self,
        resolver: LocationResolver | None,
        provider: GoogleDistanceMatrixClient | None = None,
        *,
        failure_policy: Literal["degrade", "raise"] | None = None,
        batch_size: int | None = None,
        batch_limiter: RateLimiter | None = None,
    ) -> None:
        self.resolver = resolver
        self.provider = provider
        self.failure_policy = failure_policy or settings.matrix_failure_policy
        self.batch_size = min(batch_size or settings.matrix_batch_size, MAX_ELEMENTS_PER_SIDE)
        self.batch_limiter = batch_limiter or RateLimiter(settings.matrix_batch_interval_seconds)

    def _geocode_missing(self, locations: Sequence[Location]) -> None:
        missing = [location for location in locations if not location.has_coordinates]
        if not missing:
            return
        if self.resolver is None:
            logger.warning(f"{len(missing)} locations lack coordinates and no resolver is configured")
            return
        resolved = self.resolver.resolve_many(location.address for location in missing)
        for location in missing:
            result = resolved.get(location.address)
            if result is not None:
                location.lat = result.lat
                location.lng = result.lng

    def pairwise_matrix(self, locations: Sequence[Location]) -> DistanceMatrix:
        """Return the travel-time matrix over every location that has coordinates.

        Locations still lacking coordinates after geocoding are left out of
        ``location_ids``; callers must treat absence as unroutable.
        """
        self._geocode_missing(locations)
        valid = [location for location in locations if location.has_coordinates]
        dropped = len(locations) - len(valid)
        if dropped:
            logger.warning(f"Dropped {dropped} locations without coordinates from the distance matrix")
        location_ids = [location.id for location in valid]

        if len(valid) <= 1:
            return DistanceMatrix(location_ids=location_ids, minutes=[[0] * len(valid) for _ in valid])

        if self.provider is None:
            logger.warning("No distance-matrix provider configured; using straight-line (haversine) estimates")
            return DistanceMatrix(location_ids=location_ids, minutes=haversine_matrix(valid), source="haversine")

        try:
            minutes = self._provider_matrix(valid)
        except MatrixProviderError as exc:
            if self.failure_policy == "raise":
                raise
            logger.error(f"Distance-matrix provider failed ({exc}); falling back to haversine estimates")
            return DistanceMatrix(
                location_ids=location_ids,
                minutes=haversine_matrix(valid),
                source="haversine_fallback",
            )
        return DistanceMatrix(location_ids=location_ids, minutes=minutes, source="provider")

    def _provider_matrix(self, locations: Sequence[Location]) -> list[list[int]]:
        n = len(locations)
        points = [(location.lat, location.lng) for location in locations]
        minutes = [[0] * n for _ in range(n)]
        size = self.batch_size
        start_time = time.time()
        requests = 0

        for oi in range(0, n, size):
            origins = points[oi : oi + size]
            for di in range(0, n, size):
                destinations = points[di : di + size]
                self.batch_limiter.acquire()
                block = self.provider.table(origins, destinations)
                requests += 1
                for i, row in enumerate(block):
                    for j, value in enumerate(row):
                        if oi + i != di + j:
                            minutes[oi + i][di + j] = value

        logger.info(f"Built {n}x{n} distance matrix with {requests} provider requests in {time.time() - start_time:.2f}s")
        return minutes


def build_matrix_builder(resolver: LocationResolver | None) -> DistanceMatrixBuilder:
    provider = GoogleDistanceMatrixClient(settings.google_maps_api_key) if settings.google_maps_api_key else None
    return DistanceMatrixBuilder(resolver, provider)
