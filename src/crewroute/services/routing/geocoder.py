"""Address geocoding with a paid-first, free-fallback provider cascade."""

from __future__ import annotations

import functools
import logging
from typing import Iterable

import httpx

from ...config import settings
from .cache import GeocodeCache
from .models import GeocodeResult
from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)


class _HTTPProvider:
    def __init__(self, url: str, timeout: float | None = None, client: httpx.Client | None = None) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        # Injected clients are owned by the caller and never closed here.
        self._client = client

    def _get(self, params: dict, headers: dict | None = None) -> httpx.Response:
        if self._client is not None:
            return self._client.get(self.url, params=params, headers=headers)
        with httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0)) as client:
            return client.get(self.url, params=params, headers=headers)


class GoogleGeocoder(_HTTPProvider):
    """Google Geocoding API client."""

    name = "google"

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
        super().__init__(url or settings.google_geocode_url, timeout, client)
        self.api_key = api_key

    def geocode(self, address: str) -> GeocodeResult | None:
        try:
            response = self._get({"address": address, "key": self.api_key})
        except httpx.HTTPError as exc:
            logger.error(f"Google geocode request failed for '{address}': {exc}")
            return None
        if response.status_code != 200:
            logger.error(f"Google geocode HTTP error {response.status_code} for '{address}'")
            return None
        try:
            data = response.json()
            if not isinstance(data, dict):
                logger.error(f"Unexpected Google geocode payload for '{address}': {type(data).__name__}")
                return None
            if data.get("status") != "OK" or not data.get("results"):
                logger.warning(f"Google geocode returned {data.get('status')} for '{address}'")
                return None
            first = data["results"][0]
            location = first["geometry"]["location"]
            return GeocodeResult(
                lat=float(location["lat"]),
                lng=float(location["lng"]),
                formatted_address=first.get("formatted_address") or address,
                place_id=str(first.get("place_id") or ""),
                provider=self.name,
            )
        except (AttributeError, ValueError, KeyError, TypeError, IndexError) as exc:
            logger.error(f"Malformed Google geocode response for '{address}': {exc}")
            return None


class NominatimGeocoder(_HTTPProvider):
    """OpenStreetMap Nominatim search client (no key, one request per second)."""

    name = "nominatim"

    def __init__(
        self,
        *,
        url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(url or settings.nominatim_url, timeout, client)
        self.user_agent = user_agent or settings.nominatim_user_agent

    def geocode(self, address: str) -> GeocodeResult | None:
        headers = {"User-Agent": self.user_agent, "Accept-Language": "en"}
        try:
            response = self._get({"q": address, "format": "json", "limit": 1}, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Nominatim request failed for '{address}': {exc}")
            return None
        if response.status_code != 200:
            logger.error(f"Nominatim HTTP error {response.status_code} for '{address}'")
            return None
        try:
            data = response.json()
            if not isinstance(data, list) or not data:
                logger.warning(f"Nominatim returned no results for '{address}'")
                return None
            first = data[0]
            return GeocodeResult(
                lat=float(first["lat"]),
                lng=float(first["lon"]),
                formatted_address=first.get("display_name") or address,
                place_id=str(first.get("place_id") or ""),
                provider=self.name,
            )
        except (AttributeError, ValueError, KeyError, TypeError) as exc:
            logger.error(f"Malformed Nominatim response for '{address}': {exc}")
            return None


class LocationResolver:
    """Resolve street addresses to coordinates.

    Lookups go through the cache first, then Google (when a key is
    configured), then Nominatim. Each provider call waits on that provider's
    rate limiter, so a batch that falls back to Nominatim is paced at its
    one-request-per-second policy while a Google-only batch runs at 20/s.
    Failures return ``None`` and are not cached.
    """

    def __init__(
        self,
        *,
        google: GoogleGeocoder | None,
        nominatim: NominatimGeocoder | None,
        cache: GeocodeCache,
        google_limiter: RateLimiter | None = None,
        nominatim_limiter: RateLimiter | None = None,
    ) -> None:
        self.google = google
        self.nominatim = nominatim
        self.cache = cache
        self.google_limiter = google_limiter or RateLimiter(settings.google_geocode_interval_seconds)
        self.nominatim_limiter = nominatim_limiter or RateLimiter(settings.nominatim_interval_seconds)

    @property
    def paid_provider_configured(self) -> bool:
        return self.google is not None

    def resolve(self, address: str) -> GeocodeResult | None:
        if not address or not address.strip():
            return None

        cached = self.cache.get(address)
        if cached is not None:
            return cached

        if self.google is not None:
            self.google_limiter.acquire()
            result = self.google.geocode(address)
            if result is not None:
                self.cache.put(address, result)
                return result
            logger.info(f"Google geocode failed, using Nominatim fallback for '{address}'")
        else:
            logger.debug(f"No Google key configured, using Nominatim for '{address}'")

        if self.nominatim is None:
            return None
        self.nominatim_limiter.acquire()
        result = self.nominatim.geocode(address)
        if result is not None:
            self.cache.put(address, result)
        return result

    def resolve_many(self, addresses: Iterable[str]) -> dict[str, GeocodeResult]:
        """Resolve many addresses, returning a map keyed by the input strings."""
        results: dict[str, GeocodeResult] = {}
        pending: list[str] = []
        seen: set[str] = set()

        for address in addresses:
            cached = self.cache.get(address)
            if cached is not None:
                results[address] = cached
            elif address not in seen:
                seen.add(address)
                pending.append(address)

        if pending:
            logger.info(f"Geocoding {len(pending)} addresses ({len(results)} served from cache)")

        for address in pending:
            result = self.resolve(address)
            if result is not None:
                results[address] = result
            else:
                logger.warning(f"Could not geocode address '{address}'")
        return results


@functools.lru_cache(maxsize=1)
def get_geocode_cache() -> GeocodeCache:
    """Process-wide geocode cache shared by every resolver built from settings."""
    return GeocodeCache(
        max_entries=settings.geocode_cache_max_entries,
        ttl_seconds=settings.geocode_cache_ttl_seconds,
    )


def build_location_resolver(cache: GeocodeCache | None = None) -> LocationResolver:
    google = GoogleGeocoder(settings.google_maps_api_key) if settings.google_maps_api_key else None
    return LocationResolver(
        google=google,
        nominatim=NominatimGeocoder(),
        cache=cache or get_geocode_cache(),
    )
