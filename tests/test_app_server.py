"""
Integration tests for the web application in netinfo.ipowner.app

Tests cover routing, client address detection, response shaping and caching headers,
CORS handling and the internal probe, with the resolution core patched where a lookup
would leave the process.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import web
from aiohttp import test_utils
from aiohttp.test_utils import make_mocked_request

from netinfo.ipowner.app.config import (
    BootstrapRegistryAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
)
from netinfo.ipowner.app.cors import get_cors_headers
from netinfo.ipowner.app.handlers.ownership import client_ip_helper, handle_ownership
from netinfo.ipowner.app.metrics import NoOpMetricsClient
from netinfo.ipowner.app.server import start_web_server
from netinfo.ipowner.model.rdap import OwnershipResult, RdapObject, ResolutionError
from netinfo.ipowner.resolve.bootstrap import BootstrapRegistry
from tests.test_helpers import RDAP_NETWORK


def make_settings(**kwargs) -> Settings:
    values = {"metrics_backend": "none", "cache_max_age": 60}
    values.update(kwargs)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


async def make_client(settings: Settings) -> test_utils.TestClient:
    app = await start_web_server(settings)
    client = test_utils.TestClient(test_utils.TestServer(app))
    await client.start_server()
    return client


class TestInternalHandlers:
    """Test suite for internal endpoints."""

    @pytest.mark.asyncio
    async def test_alive(self, settings):
        client = await make_client(settings)
        try:
            resp = await client.get("/internal/alive")
            assert resp.status == 200
        finally:
            await client.close()


class TestOwnershipHandler:
    """Test suite for the ownership endpoints."""

    @pytest.mark.asyncio
    async def test_private_connecting_ip(self, settings):
        client = await make_client(settings)
        try:
            resp = await client.get("/", headers={"CF-Connecting-IP": "10.0.0.5"})
            assert resp.status == 200
            assert await resp.json() == {
                "clientIP": "10.0.0.5",
                "name": "internal",
                "organization": "",
            }
            assert resp.headers["Cache-Control"] == "public, max-age=60"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_peer_address_fallback(self, settings):
        """Test the loopback peer address of the test client resolves internally."""
        client = await make_client(settings)
        try:
            resp = await client.get("/")
            body = await resp.json()
            assert resp.status == 200
            assert body["clientIP"] == "127.0.0.1"
            assert body["name"] == "internal"
        finally:
            await client.close()

    @pytest.mark.asyncio
    @patch("netinfo.ipowner.app.handlers.ownership.resolve_ownership", new_callable=AsyncMock)
    async def test_path_address_resolved(self, mock_resolve, settings):
        mock_resolve.return_value = OwnershipResult(
            client_ip="192.0.2.10", name="EXAMPLE-NET", organization="Example Networks Inc."
        )
        client = await make_client(settings)
        try:
            resp = await client.get("/ip/192.0.2.10")
            assert resp.status == 200
            assert await resp.json() == {
                "clientIP": "192.0.2.10",
                "name": "EXAMPLE-NET",
                "organization": "Example Networks Inc.",
            }

            args, kwargs = mock_resolve.call_args
            assert args[2] == "192.0.2.10"
            assert isinstance(args[1], BootstrapRegistry)
            assert kwargs == {
                "default_server": settings.default_rdap_server,
                "timeout": settings.http_timeout,
            }
        finally:
            await client.close()

    @pytest.mark.asyncio
    @patch("netinfo.ipowner.app.handlers.ownership.resolve_ownership", new_callable=AsyncMock)
    async def test_resolution_failure(self, mock_resolve, settings):
        mock_resolve.return_value = ResolutionError(client_ip="192.0.2.10")
        client = await make_client(settings)
        try:
            resp = await client.get("/", headers={"CF-Connecting-IP": "192.0.2.10"})
            assert resp.status == 502
            assert await resp.json() == {
                "clientIP": "192.0.2.10",
                "error": "rdap_unavailable",
            }
            assert resp.headers["Cache-Control"] == "no-store"
        finally:
            await client.close()

    @pytest.mark.asyncio
    @patch("netinfo.ipowner.app.handlers.ownership.resolve_ownership", new_callable=AsyncMock)
    async def test_forwarded_for(self, mock_resolve, settings):
        mock_resolve.return_value = OwnershipResult(
            client_ip="203.0.113.7", name="NET", organization=""
        )
        client = await make_client(settings)
        try:
            resp = await client.get(
                "/", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
            )
            assert resp.status == 200
            assert mock_resolve.call_args.args[2] == "203.0.113.7"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_invalid_path_address(self, settings):
        client = await make_client(settings)
        try:
            resp = await client.get("/ip/not-an-ip")
            assert resp.status == 400
            assert await resp.json() == {"error": "invalid IP", "clientIP": "not-an-ip"}
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_no_address(self, settings):
        app = web.Application()
        app[SettingsAppKey] = settings
        app[MetricsClientAppKey] = NoOpMetricsClient()
        app[BootstrapRegistryAppKey] = BootstrapRegistry()
        app[SessionAppKey] = AsyncMock()
        request = make_mocked_request("GET", "/", app=app)

        resp = await handle_ownership(request)

        assert resp.status == 400
        assert json.loads(resp.body) == {"error": "no IP"}


class TestRawRdapHandler:
    """Test suite for the raw RDAP pass-through endpoints."""

    @pytest.mark.asyncio
    @patch("netinfo.ipowner.app.handlers.ownership.fetch_raw_rdap", new_callable=AsyncMock)
    async def test_raw_object(self, mock_fetch, settings):
        mock_fetch.return_value = RdapObject.model_validate(RDAP_NETWORK)
        client = await make_client(settings)
        try:
            resp = await client.get("/rdap/192.0.2.10")
            assert resp.status == 200
            assert await resp.json() == RDAP_NETWORK
        finally:
            await client.close()

    @pytest.mark.asyncio
    @patch("netinfo.ipowner.app.handlers.ownership.fetch_raw_rdap", new_callable=AsyncMock)
    async def test_raw_failure(self, mock_fetch, settings):
        mock_fetch.return_value = None
        client = await make_client(settings)
        try:
            resp = await client.get("/rdap", headers={"CF-Connecting-IP": "192.0.2.10"})
            assert resp.status == 502
            assert (await resp.json())["clientIP"] == "192.0.2.10"
        finally:
            await client.close()


class TestClientIpHelper:
    """Test suite for client_ip_helper function."""

    def test_path_wins(self):
        request = make_mocked_request(
            "GET",
            "/ip/192.0.2.1",
            headers={"CF-Connecting-IP": "198.51.100.1"},
            match_info={"ip": "192.0.2.1"},
        )
        assert client_ip_helper(request) == "192.0.2.1"

    def test_connecting_ip_before_forwarded_for(self):
        request = make_mocked_request(
            "GET",
            "/",
            headers={"CF-Connecting-IP": "198.51.100.1", "X-Forwarded-For": "192.0.2.1"},
        )
        assert client_ip_helper(request) == "198.51.100.1"

    def test_forwarded_for_first_entry(self):
        request = make_mocked_request(
            "GET", "/", headers={"X-Forwarded-For": " 192.0.2.1 , 198.51.100.1"}
        )
        assert client_ip_helper(request) == "192.0.2.1"


class TestCors:
    """Test suite for CORS handling."""

    def test_wildcard(self):
        headers = get_cors_headers("https://any.example", ["*"], False)
        assert headers["Access-Control-Allow-Origin"] == "*"

    def test_allowed_origin(self):
        headers = get_cors_headers("https://app.example", ["https://app.example"], False)
        assert headers["Access-Control-Allow-Origin"] == "https://app.example"

    def test_disallowed_origin(self):
        headers = get_cors_headers("https://evil.example", ["https://app.example"], False)
        assert "Access-Control-Allow-Origin" not in headers

    def test_debug_localhost(self):
        headers = get_cors_headers("http://localhost:3000", ["https://app.example"], True)
        assert headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    @pytest.mark.asyncio
    async def test_preflight(self):
        client = await make_client(make_settings(allowed_domains="https://app.example"))
        try:
            resp = await client.options("/", headers={"Origin": "https://app.example"})
            assert resp.status == 204
            assert resp.headers["Access-Control-Allow-Origin"] == "https://app.example"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_headers_on_responses(self, settings):
        client = await make_client(settings)
        try:
            resp = await client.get("/", headers={"CF-Connecting-IP": "10.0.0.5"})
            assert resp.headers["Access-Control-Allow-Origin"] == "*"
        finally:
            await client.close()


class TestSettings:
    """Test suite for Settings defaults."""

    def test_defaults(self):
        settings = make_settings()
        assert settings.default_rdap_server == "https://rdap.db.ripe.net/ip/"
        assert settings.ipv4_bootstrap_url == "https://data.iana.org/rdap/ipv4.json"
        assert settings.ipv6_bootstrap_url == "https://data.iana.org/rdap/ipv6.json"
        assert settings.bootstrap_ttl == 86400

    def test_allowed_origins(self):
        settings = make_settings(allowed_domains="https://a.example, https://b.example,")
        assert settings.allowed_origins == ["https://a.example", "https://b.example"]
