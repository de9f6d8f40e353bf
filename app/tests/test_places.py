import asyncio
from dataclasses import replace

import httpx
import pytest

from app.services.places import DETAIL_FIELDS, PlacesClient, PlacesUpstreamError
from app.tests.fakes import FakeUpstream, make_place


def _call(handler, settings, method, *args):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await getattr(PlacesClient(client, settings), method)(*args)

    return asyncio.run(go())


def test_search_nearby_query_params(settings):
    upstream = FakeUpstream([("a", make_place("A", 25.0, 121.5))])
    results = _call(upstream.handler, settings, "search_nearby", 25.033, 121.5654)

    assert results == [{"place_id": "a"}]
    params = upstream.requests[0].url.params
    assert params["location"] == "25.033,121.5654"
    assert params["radius"] == "2000"
    assert params["type"] == "establishment"
    assert params["keyword"] == "咖啡"
    assert params["language"] == "zh-TW"
    assert params["key"] == "test-key"


def test_search_nearby_zero_results(settings):
    upstream = FakeUpstream([])
    assert _call(upstream.handler, settings, "search_nearby", 25.0, 121.5) == []


def test_search_nearby_denied_is_upstream_error(settings):
    def handler(request):
        return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"})

    with pytest.raises(PlacesUpstreamError) as exc:
        _call(handler, settings, "search_nearby", 25.0, 121.5)
    assert exc.value.status == "REQUEST_DENIED"
    assert exc.value.message == "bad key"


def test_search_nearby_without_key(settings):
    with pytest.raises(PlacesUpstreamError) as exc:
        _call(FakeUpstream().handler, replace(settings, google_places_api_key=""), "search_nearby", 0, 0)
    assert exc.value.status == "CONFIG_ERROR"


def test_fetch_details_params_and_result(settings):
    place = make_place("A", 25.0, 121.5)
    upstream = FakeUpstream([("a", place)])
    assert _call(upstream.handler, settings, "fetch_details", "a") == place

    params = upstream.requests[0].url.params
    assert params["place_id"] == "a"
    assert params["fields"] == DETAIL_FIELDS


def test_fetch_details_not_found(settings):
    upstream = FakeUpstream([("a", None)])
    assert _call(upstream.handler, settings, "fetch_details", "a") is None


def test_malformed_json_is_upstream_error(settings):
    def handler(request):
        return httpx.Response(200, text="<html>nope</html>")

    with pytest.raises(PlacesUpstreamError) as exc:
        _call(handler, settings, "fetch_details", "a")
    assert exc.value.status == "INVALID_JSON"


def test_retries_once_on_server_error(settings):
    upstream = FakeUpstream([("a", make_place("A", 25.0, 121.5))])
    upstream.fail_next = [503]

    assert _call(upstream.handler, settings, "fetch_details", "a")["name"] == "A"
    assert len(upstream.requests) == 2


def test_gives_up_after_retry(settings):
    upstream = FakeUpstream([("a", make_place("A", 25.0, 121.5))])
    upstream.fail_next = [503, 502]

    with pytest.raises(PlacesUpstreamError) as exc:
        _call(upstream.handler, settings, "fetch_details", "a")
    assert exc.value.status == "HTTP_ERROR"
    assert len(upstream.requests) == 2


def test_retries_on_transport_error(settings):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, json={"status": "OK", "result": {"name": "A"}})

    assert _call(handler, settings, "fetch_details", "a") == {"name": "A"}
    assert len(calls) == 2


def test_transport_error_exhausted(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(PlacesUpstreamError) as exc:
        _call(handler, replace(settings, http_retries=0), "fetch_details", "a")
    assert exc.value.status == "TRANSPORT_ERROR"
