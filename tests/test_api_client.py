"""Tests for the api_client effect and curl rendering."""

import logging

import httpx
import pytest

from perch.app import App
from perch.effects import api_client
from perch.effects.api import _log_curl, create_api_client, curl_command_for_request
from perch.testing import TestClient


class TestCurlCommand:
    def test_get(self) -> None:
        request = httpx.Request("GET", "https://api.test/foos?page=2")
        assert curl_command_for_request(request) == "curl -v -X GET https://api.test/foos?page=2"

    def test_json_body_replaces_method(self) -> None:
        request = httpx.Request("POST", "https://api.test/foos", json={"a": 1})
        command = curl_command_for_request(request)
        assert command.startswith("curl -v --data '{\"a\": 1}'")
        assert "-X" not in command
        assert command.endswith(" https://api.test/foos")

    def test_custom_headers_only(self) -> None:
        request = httpx.Request("DELETE", "https://api.test/foos/1", headers={"X-Token": "t"})
        command = curl_command_for_request(request)
        assert "x-token:t" in command.lower()
        assert "host:" not in command.lower()

    def test_non_json_body(self) -> None:
        request = httpx.Request("PUT", "https://api.test/raw", content=b"plain text")
        assert "--data 'plain text'" in curl_command_for_request(request)

    async def test_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="perch.api_request"):
            await _log_curl(httpx.Request("GET", "https://api.test/"))
        assert "curl -v -X GET https://api.test/" in caplog.text


class TestApiClientEffect:
    async def test_configured_client(self) -> None:
        client = create_api_client(
            {"api_base_url": "https://api.test", "api_headers": {"X-Key": "k"}, "api_timeout": 2}
        )
        try:
            assert str(client.base_url).startswith("https://api.test")
            assert client.headers["x-key"] == "k"
            assert client.timeout.connect == 2
            assert client.event_hooks["request"] == [_log_curl]
        finally:
            await client.aclose()

    async def test_no_curl_logging_in_production(self) -> None:
        client = create_api_client({"environment": "production"})
        try:
            assert client.event_hooks["request"] == []
        finally:
            await client.aclose()

    async def test_same_config_shares_client(self) -> None:
        first = api_client({"api_base_url": "https://shared.test"})
        second = api_client({"api_base_url": "https://shared.test"})
        other = api_client({"api_base_url": "https://other.test"})
        try:
            assert first(None) is second(None)
            assert first(None) is not other(None)
            assert isinstance(first(None), httpx.AsyncClient)
        finally:
            for instantiate in (first, second, other):
                await instantiate.aclose()

    async def test_client_closed_by_last_holder(self) -> None:
        first = api_client({"api_base_url": "https://release.test"})
        second = api_client({"api_base_url": "https://release.test"})
        client = first.client
        await first.aclose()
        await first.aclose()
        assert not client.is_closed
        await second.aclose()
        assert client.is_closed
        fresh = api_client({"api_base_url": "https://release.test"})
        try:
            assert fresh.client is not client
        finally:
            await fresh.aclose()

    async def test_app_shutdown_closes_client(self) -> None:
        app = App(settings={"api_base_url": "https://app.test", "environment": "production"})
        app.effect("api", api_client)
        seen: list[httpx.AsyncClient] = []

        @app.get("/a")
        def a(ctx):
            seen.append(ctx.effects["api"])
            return "a"

        @app.get("/b")
        def b(ctx):
            seen.append(ctx.effects["api"])
            return "b"

        async with TestClient(app) as client:
            await client.get("/a")
            await client.get("/b")
            assert seen[0] is seen[1]
            assert not seen[0].is_closed
        assert seen[0].is_closed
