import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as LocalServer

from nodewatch.api.client import ApiError, SnapshotApiClient


LATEST = {
    "timestamp": 1700000000,
    "total_nodes": 2,
    "latest_height": 850000,
    "nodes": {
        "1.2.3.4:8333": [70016, "/Satoshi:27.0.0/", 1699990000, 1033, 850000,
                         None, None, "DE", 0.0, 0.0, None, "AS1", "Org"],
        "[::1]:8333": [70016, "/Knots:20240801/"],
    },
}


def make_app():
    app = web.Application()

    async def latest(request):
        assert request.headers["User-Agent"] == "nodewatch-test"
        return web.json_response(LATEST)

    async def listing(request):
        return web.json_response({
            "count": 1,
            "next": None,
            "previous": None,
            "results": [{"url": str(request.url.with_path("/snapshots/1700000000/")),
                         "timestamp": 1700000000, "total_nodes": 2, "latest_height": 850000}],
        })

    async def broken(request):
        return web.Response(status=503, text="busy")

    async def garbage(request):
        return web.Response(text="<html>", content_type="text/html")

    app.router.add_get("/snapshots/latest/", latest)
    app.router.add_get("/snapshots/", listing)
    app.router.add_get("/snapshots/1700000000/", latest)
    app.router.add_get("/broken/", broken)
    app.router.add_get("/garbage/", garbage)
    return app


@pytest.fixture
async def api():
    async with LocalServer(make_app()) as server:
        async with SnapshotApiClient(str(server.make_url("/")), "nodewatch-test", request_timeout=5) as client:
            yield client


async def test_latest_snapshot(api):
    snapshot = await api.latest_snapshot()

    assert snapshot.total_nodes == 2
    assert snapshot.nodes["1.2.3.4:8333"].version == "/Satoshi:27.0.0/"
    assert snapshot.nodes["1.2.3.4:8333"].country == "DE"
    # short rows are padded
    assert snapshot.nodes["[::1]:8333"].organization is None


async def test_listing_and_detail(api):
    listing = await api.snapshot_listing()

    assert listing.next is None
    assert listing.results[0].timestamp == 1700000000

    snapshot = await api.snapshot(listing.results[0].url)
    assert snapshot.timestamp == 1700000000


async def test_http_error_raises(api):
    with pytest.raises(ApiError) as excinfo:
        await api.get_json(f"{api.base_url}/broken/")

    assert excinfo.value.status_code == 503
    assert api.get_stats()["failed_requests"] == 1


async def test_invalid_json_raises(api):
    with pytest.raises(ApiError):
        await api.get_json(f"{api.base_url}/garbage/")


async def test_unstarted_client_raises():
    client = SnapshotApiClient("http://localhost", "nodewatch-test")

    with pytest.raises(ApiError):
        await client.latest_snapshot()
