import httpx
import pytest

from crewroute.services.routing.cache import GeocodeCache
from crewroute.services.routing.geocoder import GoogleGeocoder, LocationResolver, NominatimGeocoder
from crewroute.services.routing.rate_limit import RateLimiter

GOOGLE_URL = "https://maps.example.test/geocode/json"
NOMINATIM_URL = "https://nominatim.example.test/search"


def _google_ok(lat: float = 34.0522, lng: float = -118.2437) -> dict:
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": "123 Main St, Los Angeles, CA 90012, USA",
                "place_id": "ChIJ-google",
                "geometry": {"location": {"lat": lat, "lng": lng}},
            }
        ],
    }


def _nominatim_ok(lat: str = "34.05", lon: str = "-118.25") -> list:
    return [{"lat": lat, "lon": lon, "display_name": "Main Street, Los Angeles", "place_id": 4242}]


class ProviderStub:
    """Routes requests to canned Google and Nominatim responses and records them."""

    def __init__(self, google=None, nominatim=None):
        self.google = google
        self.nominatim = nominatim
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "maps.example.test":
            handler = self.google
        else:
            handler = self.nominatim
        if handler is None:
            return httpx.Response(404)
        if isinstance(handler, httpx.Response):
            return handler
        if callable(handler):
            return handler(request)
        return httpx.Response(200, json=handler)

    def hosts(self) -> list[str]:
        return [request.url.host for request in self.requests]


def _resolver(stub: ProviderStub, clock, *, with_google: bool = True, cache: GeocodeCache | None = None):
    client = httpx.Client(transport=httpx.MockTransport(stub))
    google = GoogleGeocoder("test-key", url=GOOGLE_URL, client=client) if with_google else None
    nominatim = NominatimGeocoder(url=NOMINATIM_URL, user_agent="crewroute-tests/1.0", client=client)
    return LocationResolver(
        google=google,
        nominatim=nominatim,
        cache=cache or GeocodeCache(),
        google_limiter=RateLimiter(0.05, clock=clock, sleep=clock.sleep),
        nominatim_limiter=RateLimiter(1.1, clock=clock, sleep=clock.sleep),
    )


def test_google_result_is_used_when_available(clock):
    stub = ProviderStub(google=_google_ok())
    resolver = _resolver(stub, clock)

    result = resolver.resolve("123 Main St, Los Angeles")

    assert result is not None
    assert result.provider == "google"
    assert result.lat == pytest.approx(34.0522)
    assert result.lng == pytest.approx(-118.2437)
    assert result.place_id == "ChIJ-google"
    assert stub.hosts() == ["maps.example.test"]
    assert stub.requests[0].url.params["key"] == "test-key"


def test_zero_results_falls_back_to_nominatim(clock):
    stub = ProviderStub(google={"status": "ZERO_RESULTS", "results": []}, nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock)

    result = resolver.resolve("1 Nowhere Rd")

    assert result is not None
    assert result.provider == "nominatim"
    assert result.lat == pytest.approx(34.05)
    assert result.place_id == "4242"
    assert stub.hosts() == ["maps.example.test", "nominatim.example.test"]


def test_google_http_error_falls_back_to_nominatim(clock):
    stub = ProviderStub(google=httpx.Response(500), nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock)

    assert resolver.resolve("123 Main St").provider == "nominatim"


def test_google_transport_error_falls_back_to_nominatim(clock):
    def explode(request):
        raise httpx.ConnectError("connection refused", request=request)

    stub = ProviderStub(google=explode, nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock)

    assert resolver.resolve("123 Main St").provider == "nominatim"


def test_no_google_key_goes_straight_to_nominatim(clock):
    stub = ProviderStub(nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock, with_google=False)

    result = resolver.resolve("123 Main St")

    assert result.provider == "nominatim"
    assert stub.hosts() == ["nominatim.example.test"]
    assert resolver.paid_provider_configured is False


def test_nominatim_request_identifies_client(clock):
    stub = ProviderStub(nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock, with_google=False)

    resolver.resolve("123 Main St")

    request = stub.requests[0]
    assert request.headers["User-Agent"] == "crewroute-tests/1.0"
    assert request.url.params["q"] == "123 Main St"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "1"


def test_failure_from_both_providers_returns_none_and_is_not_cached(clock):
    stub = ProviderStub(google={"status": "ZERO_RESULTS", "results": []}, nominatim=[])
    cache = GeocodeCache()
    resolver = _resolver(stub, clock, cache=cache)

    assert resolver.resolve("1 Nowhere Rd") is None
    assert len(cache) == 0

    resolver.resolve("1 Nowhere Rd")
    assert len(stub.requests) == 4


def test_malformed_nominatim_payload_returns_none(clock):
    stub = ProviderStub(nominatim=[{"lat": "not-a-number", "lon": "1"}])
    resolver = _resolver(stub, clock, with_google=False)

    assert resolver.resolve("123 Main St") is None


def test_blank_address_is_not_sent(clock):
    stub = ProviderStub(google=_google_ok())
    resolver = _resolver(stub, clock)

    assert resolver.resolve("   ") is None
    assert stub.requests == []


def test_cached_address_skips_providers(clock):
    stub = ProviderStub(google=_google_ok())
    resolver = _resolver(stub, clock)

    first = resolver.resolve("123 Main St")
    second = resolver.resolve("  123 MAIN st ")

    assert second == first
    assert len(stub.requests) == 1


def test_resolve_many_paces_nominatim_calls(clock):
    stub = ProviderStub(nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock, with_google=False)

    results = resolver.resolve_many(["1 A St", "2 B St", "3 C St"])

    assert set(results) == {"1 A St", "2 B St", "3 C St"}
    assert clock.sleeps == [pytest.approx(1.1), pytest.approx(1.1)]


def test_resolve_many_google_only_batch_runs_at_google_rate(clock):
    stub = ProviderStub(google=_google_ok())
    resolver = _resolver(stub, clock)

    resolver.resolve_many(["1 A St", "2 B St", "3 C St"])

    assert clock.sleeps == [pytest.approx(0.05), pytest.approx(0.05)]
    assert "nominatim.example.test" not in stub.hosts()


def test_resolve_many_deduplicates_and_uses_cache(clock):
    stub = ProviderStub(google=_google_ok())
    resolver = _resolver(stub, clock)
    resolver.resolve("1 A St")
    stub.requests.clear()

    results = resolver.resolve_many(["1 A St", "2 B St", "2 B St"])

    assert set(results) == {"1 A St", "2 B St"}
    assert len(stub.requests) == 1


def test_resolve_many_omits_failures(clock):
    def by_query(request):
        if request.url.params["q"] == "bad":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=_nominatim_ok())

    stub = ProviderStub(nominatim=by_query)
    resolver = _resolver(stub, clock, with_google=False)

    results = resolver.resolve_many(["good", "bad"])

    assert list(results) == ["good"]


def test_google_geocoder_requires_key():
    with pytest.raises(ValueError):
        GoogleGeocoder("")


def test_google_list_body_falls_back_to_nominatim(clock):
    stub = ProviderStub(google=["unexpected"], nominatim=_nominatim_ok())
    resolver = _resolver(stub, clock)

    result = resolver.resolve("1 Main St")

    assert result is not None
    assert result.provider == "nominatim"


def test_non_object_payloads_from_both_providers_resolve_to_none(clock):
    stub = ProviderStub(google=["unexpected"], nominatim=[["34.05", "-118.25"]])
    resolver = _resolver(stub, clock)

    assert resolver.resolve("1 Main St") is None
    assert resolver.resolve_many(["1 Main St", "2 Main St"]) == {}
