"""Tests for the Roku ECP HTTP client."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from bridge_errors import InvalidInputError, NetworkError
from control.roku_ecp import RokuHttpClient, build_url


DEVICE_INFO_XML = (
    "<device-info><serial-number>X1</serial-number><device-id>D1</device-id>"
    "<model-name>Roku Express</model-name><friendly-device-name>Bedroom Roku</friendly-device-name></device-info>"
)


class TestBuildUrl:
    @pytest.mark.parametrize("host,expected", [
        ("192.168.1.30", "http://192.168.1.30:8060/keypress/Home"),
        ("192.168.1.30:9000", "http://192.168.1.30:9000/keypress/Home"),
        ("http://192.168.1.30", "http://192.168.1.30:8060/keypress/Home"),
        ("http://192.168.1.30:8060/", "http://192.168.1.30:8060/keypress/Home"),
        ("HTTPS://roku.local", "https://roku.local:8060/keypress/Home"),
        ("  192.168.1.30  ", "http://192.168.1.30:8060/keypress/Home"),
    ])
    def test_host_forms(self, host, expected):
        assert build_url(host, "/keypress/Home") == expected

    def test_endpoint_without_slash(self):
        assert build_url("10.0.0.5", "query/apps") == "http://10.0.0.5:8060/query/apps"

    def test_blank_host_is_rejected(self):
        with pytest.raises(InvalidInputError, match="Missing Roku IP address"):
            build_url("", "/keypress/Home")

    def test_scheme_only_is_rejected(self):
        with pytest.raises(InvalidInputError):
            build_url("http://", "/keypress/Home")


class FakeRoku:
    def __init__(self):
        self.posts = []

    async def record_post(self, request):
        self.posts.append((request.path, dict(request.query), await request.text()))
        return web.Response(text="")

    async def device_info(self, request):
        return web.Response(text=DEVICE_INFO_XML, content_type="text/xml")

    async def missing(self, request):
        return web.Response(status=404, text="not here")

    async def garbled(self, request):
        return web.Response(status=500, body=b"\xff\xfe oops", content_type="text/plain", charset="utf-8")


@pytest_asyncio.fixture
async def fake_roku():
    roku = FakeRoku()
    app = web.Application()
    app.router.add_post("/keypress/{key}", roku.record_post)
    app.router.add_post("/launch/{app_id}", roku.record_post)
    app.router.add_post("/search/browse", roku.record_post)
    app.router.add_get("/query/device-info", roku.device_info)
    app.router.add_get("/query/missing", roku.missing)
    app.router.add_get("/query/garbled", roku.garbled)
    server = TestServer(app, host="127.0.0.1")
    await server.start_server()
    roku.server = server
    roku.base = f"http://127.0.0.1:{server.port}"
    yield roku
    await server.close()


class TestRokuHttpClient:
    @pytest.mark.asyncio
    async def test_get_returns_body_text(self, fake_roku):
        text = await RokuHttpClient({}).get(f"{fake_roku.base}/query/device-info")
        assert "<model-name>Roku Express</model-name>" in text

    @pytest.mark.asyncio
    async def test_get_error_status_raises(self, fake_roku):
        with pytest.raises(NetworkError, match="HTTP 404") as excinfo:
            await RokuHttpClient({}).get(f"{fake_roku.base}/query/missing")
        assert excinfo.value.status_code == 404
        assert excinfo.value.body == "not here"

    @pytest.mark.asyncio
    async def test_undecodable_error_body_is_network_error(self, fake_roku):
        with pytest.raises(NetworkError, match="HTTP 500") as excinfo:
            await RokuHttpClient({}).get(f"{fake_roku.base}/query/garbled")
        assert "oops" in excinfo.value.body

    @pytest.mark.asyncio
    async def test_post_with_body(self, fake_roku):
        await RokuHttpClient({}).post(f"{fake_roku.base}/search/browse", "keyword=news")
        assert fake_roku.posts == [("/search/browse", {}, "keyword=news")]

    @pytest.mark.asyncio
    async def test_post_to_unknown_path_raises(self, fake_roku):
        with pytest.raises(NetworkError) as excinfo:
            await RokuHttpClient({}).post(f"{fake_roku.base}/nothing")
        assert excinfo.value.status_code in (404, 405)

    @pytest.mark.asyncio
    async def test_unreachable_host_raises(self, unused_tcp_port):
        with pytest.raises(NetworkError, match="GET .* failed"):
            await RokuHttpClient({"request_timeout_seconds": 2}).get(f"http://127.0.0.1:{unused_tcp_port}/")

    @pytest.mark.asyncio
    async def test_blank_url_is_rejected(self):
        with pytest.raises(InvalidInputError, match="Missing url"):
            await RokuHttpClient({}).get("   ")

    @pytest.mark.asyncio
    async def test_keypress(self, fake_roku):
        await RokuHttpClient({}).keypress(fake_roku.base, "Home")
        assert fake_roku.posts == [("/keypress/Home", {}, "")]

    @pytest.mark.asyncio
    async def test_launch_with_content_id(self, fake_roku):
        await RokuHttpClient({}).launch(fake_roku.base, "12", content_id="tt 01")
        assert fake_roku.posts == [("/launch/12", {"contentID": "tt 01"}, "")]

    @pytest.mark.asyncio
    async def test_device_info_uses_configured_port(self, fake_roku):
        client = RokuHttpClient({"ecp_port": fake_roku.server.port})
        info = await client.device_info("127.0.0.1")
        assert info == {
            "serial_number": "X1",
            "device_id": "D1",
            "model_name": "Roku Express",
            "friendly_name": "Bedroom Roku",
        }
