"""Integration tests for the gateway HTTP API."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from imaging_gateway.api.app import create_app
from imaging_gateway.config.loader import GatewayConfig
from imaging_gateway.core.quota import QuotaTracker
from imaging_gateway.sdk.inference_client import InferenceClient
from imaging_gateway.storage.quota_store import InMemoryQuotaStore

from conftest import COMPLETION_BODY, ENDPOINT_URL, TOKEN, RecordingTransport

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"


def build_app(tmp_path, transport, environ=None, limit=3):
    config = GatewayConfig(daily_limit=limit)
    tracker = QuotaTracker(InMemoryQuotaStore(), daily_limit=limit)
    env = {"HF_ENDPOINT_URL": ENDPOINT_URL, "HF_TOKEN": TOKEN} if environ is None else environ
    client = InferenceClient(config, environ=env, transport=transport)
    return create_app(config=config, tracker=tracker, client=client, static_dir=str(tmp_path / "missing"))


def upload():
    return {"image": ("chest.png", PNG_BYTES, "image/png")}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def remote():
    return RecordingTransport()


@pytest.fixture
def gateway(tmp_path, remote):
    return build_app(tmp_path, remote)


def http_client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------
class TestAnalyze:
    @pytest.mark.asyncio
    async def test_success_relays_remote_body(self, gateway, remote):
        async with http_client(gateway) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 200
        assert resp.json() == COMPLETION_BODY
        content = remote.payloads[0]["messages"][0]["content"]
        assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_daily_limit(self, gateway, remote):
        """Requests 1-3 reach the endpoint; request 4 gets 429."""
        async with http_client(gateway) as c:
            statuses = []
            for _ in range(4):
                resp = await c.post("/api/analyze", files=upload())
                statuses.append(resp.status_code)

        assert statuses == [200, 200, 200, 429]
        assert resp.json() == {"error": "Daily free limit reached (3 analyses/day)."}
        assert len(remote.requests) == 3

    @pytest.mark.asyncio
    async def test_no_file(self, gateway, remote):
        async with http_client(gateway) as c:
            resp = await c.post("/api/analyze", data={"note": "forgot the file"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_wrong_field_name(self, gateway):
        async with http_client(gateway) as c:
            resp = await c.post("/api/analyze", files={"photo": ("chest.png", PNG_BYTES, "image/png")})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}

    @pytest.mark.asyncio
    async def test_empty_body(self, gateway):
        async with http_client(gateway) as c:
            resp = await c.post("/api/analyze")

        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_two_images_rejected(self, gateway, remote):
        files = [
            ("image", ("left.png", PNG_BYTES, "image/png")),
            ("image", ("right.png", PNG_BYTES, "image/png")),
        ]
        async with http_client(gateway) as c:
            resp = await c.post("/api/analyze", files=files)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Only one image can be uploaded per request"}
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_missing_endpoint_no_network_call(self, tmp_path, remote):
        """Endpoint unset: 500 naming the setting, and nothing is sent."""
        app = build_app(tmp_path, remote, environ={"HF_TOKEN": TOKEN})
        async with http_client(app) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 500
        assert resp.json() == {"error": "HF_ENDPOINT_URL missing in .env"}
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_missing_token(self, tmp_path, remote):
        app = build_app(tmp_path, remote, environ={"HF_ENDPOINT_URL": ENDPOINT_URL})
        async with http_client(app) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 500
        assert resp.json() == {"error": "HF_TOKEN missing in .env"}

    @pytest.mark.asyncio
    async def test_remote_503_relayed(self, tmp_path):
        body = {"error": "Service Unavailable", "estimated_time": 120.0}
        app = build_app(tmp_path, RecordingTransport(status_code=503, body=body))
        async with http_client(app) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 503
        assert resp.json() == body

    @pytest.mark.asyncio
    async def test_remote_garbage_is_generic_500(self, tmp_path):
        app = build_app(tmp_path, RecordingTransport(status_code=502, body=b"<html>Bad Gateway</html>"))
        async with http_client(app) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to analyze image"}

    @pytest.mark.asyncio
    async def test_remote_nan_is_generic_500(self, tmp_path):
        app = build_app(tmp_path, RecordingTransport(status_code=200, body=b'{"score": NaN}'))
        async with http_client(app) as c:
            resp = await c.post("/api/analyze", files=upload())

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to analyze image"}

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_quota(self, tmp_path, remote):
        """Parallel requests from one client never exceed the limit."""
        app = build_app(tmp_path, remote, limit=2)
        async with http_client(app) as c:
            responses = await asyncio.gather(
                *[c.post("/api/analyze", files=upload()) for _ in range(5)]
            )

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [200, 200, 429, 429, 429]
        assert len(remote.requests) == 2


# ---------------------------------------------------------------------------
# Ambient endpoints
# ---------------------------------------------------------------------------
class TestAmbient:
    @pytest.mark.asyncio
    async def test_health(self, gateway):
        async with http_client(gateway) as c:
            resp = await c.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_cors_headers(self, gateway):
        async with http_client(gateway) as c:
            resp = await c.get("/health", headers={"Origin": "http://localhost:5173"})

        assert resp.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_static_frontend_served(self, tmp_path, remote):
        public = tmp_path / "public"
        public.mkdir()
        (public / "index.html").write_text("<h1>Upload a scan</h1>")
        config = GatewayConfig(daily_limit=3)
        app = create_app(
            config=config,
            tracker=QuotaTracker(InMemoryQuotaStore(), 3),
            client=InferenceClient(config, environ={}, transport=remote),
            static_dir=str(public),
        )
        async with http_client(app) as c:
            page = await c.get("/")
            health = await c.get("/health")

        assert page.status_code == 200
        assert "Upload a scan" in page.text
        assert health.status_code == 200
