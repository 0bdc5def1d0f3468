import asyncio
from types import SimpleNamespace

import pytest
from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from core.errors import ExternalServiceError, ValidationError
from core.geocoding import DEFAULT_LAT, DEFAULT_LNG, GeocodingService, LocationPicker, PickedLocation


class FakeGeocoder:
    """Stands in for geopy's Nominatim: same call signatures, canned answers."""

    def __init__(self, reverse_result=None, search_results=None, error=None):
        self.reverse_result = reverse_result
        self.search_results = search_results or []
        self.error = error
        self.calls = []

    def reverse(self, point, exactly_one=True):
        self.calls.append(("reverse", point))
        if self.error:
            raise self.error
        return self.reverse_result

    def geocode(self, query, exactly_one=False, limit=5):
        self.calls.append(("geocode", query, limit))
        if self.error:
            raise self.error
        return self.search_results[:limit]


def _place(lat, lng, address):
    return SimpleNamespace(latitude=lat, longitude=lng, address=address)


def test_reverse_returns_the_address():
    service = GeocodingService(FakeGeocoder(reverse_result=_place(1.0, 2.0, "1 Main St, Springfield")))
    picked = asyncio.run(service.reverse(1.0, 2.0))
    assert picked == PickedLocation(lat=1.0, lng=2.0, address="1 Main St, Springfield")


@pytest.mark.parametrize(
    "geocoder",
    [
        FakeGeocoder(error=GeocoderTimedOut("slow")),
        FakeGeocoder(error=GeocoderServiceError("down")),
        FakeGeocoder(reverse_result=None),
        FakeGeocoder(reverse_result=_place(40.7128, -74.006, "")),
    ],
)
def test_reverse_falls_back_to_the_coordinate_label(geocoder):
    picked = asyncio.run(GeocodingService(geocoder).reverse(40.7128, -74.006))
    assert picked.address == "40.7128, -74.006"
    assert picked.is_fallback
    assert (picked.lat, picked.lng) == (40.7128, -74.006)


def test_reverse_rejects_out_of_range_points():
    with pytest.raises(ValidationError):
        asyncio.run(GeocodingService(FakeGeocoder()).reverse(91, 0))


def test_search_maps_results():
    geocoder = FakeGeocoder(search_results=[_place(1, 2, "A"), _place(3, 4, "B")])
    found = asyncio.run(GeocodingService(geocoder).search("  main st ", limit=1))
    assert found == [PickedLocation(lat=1, lng=2, address="A")]
    assert geocoder.calls == [("geocode", "main st", 1)]


def test_search_requires_a_query():
    with pytest.raises(ValidationError):
        asyncio.run(GeocodingService(FakeGeocoder()).search("   "))


def test_search_failure_is_an_external_error():
    with pytest.raises(ExternalServiceError):
        asyncio.run(GeocodingService(FakeGeocoder(error=GeocoderTimedOut("slow"))).search("main st"))


class GatedGeocoding:
    """Async reverse lookups that only finish when the test releases them."""

    def __init__(self):
        self.gates = {}

    async def reverse(self, lat, lng):
        gate = self.gates.setdefault((lat, lng), asyncio.Event())
        await gate.wait()
        return PickedLocation(lat=lat, lng=lng, address=f"near {lat}")


def test_picker_starts_at_the_default_point():
    picker = LocationPicker(GatedGeocoding())
    assert (picker.selection.lat, picker.selection.lng) == (DEFAULT_LAT, DEFAULT_LNG)


def test_stale_reverse_reply_is_discarded():
    async def scenario():
        geocoding = GatedGeocoding()
        picker = LocationPicker(geocoding)
        first = asyncio.create_task(picker.pick(1.0, 1.0))
        await asyncio.sleep(0)
        second = asyncio.create_task(picker.pick(2.0, 2.0))
        await asyncio.sleep(0)

        # the newer lookup answers first, the older one afterwards
        geocoding.gates[(2.0, 2.0)].set()
        newest = await second
        geocoding.gates[(1.0, 1.0)].set()
        stale = await first
        return picker, newest, stale

    picker, newest, stale = asyncio.run(scenario())
    assert stale is None
    assert newest.address == "near 2.0"
    assert picker.selection == newest


def test_search_choice_supersedes_pending_lookups():
    async def scenario():
        geocoding = GatedGeocoding()
        picker = LocationPicker(geocoding)
        pending = asyncio.create_task(picker.pick(1.0, 1.0))
        await asyncio.sleep(0)
        chosen = picker.choose(PickedLocation(lat=5.0, lng=6.0, address="Town Hall"))
        geocoding.gates[(1.0, 1.0)].set()
        return picker, chosen, await pending

    picker, chosen, stale = asyncio.run(scenario())
    assert stale is None
    assert picker.selection == chosen


def test_reverse_endpoint_falls_back(api):
    from main import app
    from routers.geocoding import get_geocoding_service

    app.dependency_overrides[get_geocoding_service] = lambda: GeocodingService(FakeGeocoder(error=GeocoderTimedOut("slow")))
    res = api.get("/geocode/reverse", params={"lat": 40.7128, "lng": -74.006})
    assert res.status_code == 200
    assert res.json() == {"lat": 40.7128, "lng": -74.006, "address": "40.7128, -74.006", "is_fallback": True}


def test_search_endpoint_hides_upstream_errors(api):
    from main import app
    from routers.geocoding import get_geocoding_service

    app.dependency_overrides[get_geocoding_service] = lambda: GeocodingService(FakeGeocoder(error=GeocoderServiceError("nominatim 503")))
    res = api.get("/geocode/search", params={"q": "main st"})
    assert res.status_code == 502
    assert "nominatim" not in res.text


def test_out_of_range_click_keeps_the_pending_lookup_current():
    async def scenario():
        geocoding = GatedGeocoding()
        picker = LocationPicker(geocoding)
        pending = asyncio.create_task(picker.pick(1.0, 1.0))
        await asyncio.sleep(0)
        with pytest.raises(ValidationError):
            await picker.pick(95.0, 0.0)
        geocoding.gates[(1.0, 1.0)].set()
        return picker, await pending

    picker, picked = asyncio.run(scenario())
    assert picked is not None
    assert picker.selection == picked
