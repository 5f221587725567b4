"""Tests for perch.middleware — error rendering and request logging."""

import json
from typing import Any

import pytest

from perch.app import App
from perch.errors import HTTPError, NotFound
from perch.middleware import catch_and_render_errors, log_requests
from perch.middleware.errors import content_type_for
from perch.send import send_text
from perch.testing import TestClient


class FakeLogger:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self.calls.append((args, kwargs))

    @property
    def extras(self) -> list[dict[str, Any]]:
        return [kwargs["extra"] for _, kwargs in self.calls]


def _error_page(status: int, message: str) -> str:
    return f"<h1>{status}</h1><p>{message}</p>"


def _failing_app(exc: Exception, error_page=_error_page) -> App:
    app = App()
    app.add_middleware(catch_and_render_errors(error_page))

    def fail(ctx):
        raise exc

    app.route("all", "/*")(fail)
    return app


class TestContentTypeFor:
    @pytest.mark.parametrize(
        ("pathname", "expected"),
        [
            ("/foos.json", "application/json"),
            ("/bundle.js", "application/javascript"),
            ("/foos", "text/html"),
            ("/", "text/html"),
        ],
    )
    def test_by_extension(self, pathname: str, expected: str) -> None:
        assert content_type_for(pathname) == expected


class TestCatchAndRenderErrors:
    async def test_http_error_as_html(self) -> None:
        async with TestClient(_failing_app(NotFound())) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.content_type.startswith("text/html")
        assert response.text == "<h1>404</h1><p>Not Found</p>"

    async def test_json_path(self) -> None:
        async with TestClient(_failing_app(HTTPError(403, "Forbidden"))) as client:
            response = await client.get("/secret.json")
        assert response.status == 403
        assert response.content_type.startswith("application/json")
        assert json.loads(response.text) == {"message": "Forbidden", "statusCode": 403}

    async def test_javascript_path(self) -> None:
        async with TestClient(_failing_app(HTTPError(410, "Gone"))) as client:
            response = await client.get("/old.js")
        assert response.status == 410
        assert response.text == "// Gone"

    async def test_unexpected_error_becomes_500(self, caplog: pytest.LogCaptureFixture) -> None:
        async with TestClient(_failing_app(RuntimeError("secret detail"))) as client:
            response = await client.get("/data.json")
        assert response.status == 500
        assert json.loads(response.text) == {
            "message": "Internal Server Error",
            "statusCode": 500,
        }
        assert "secret detail" in caplog.text

    async def test_text_fallback_without_error_page(self) -> None:
        async with TestClient(_failing_app(NotFound(), error_page=None)) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.content_type.startswith("text/plain")
        assert response.text == "Not Found"

    async def test_error_headers_kept(self) -> None:
        exc = HTTPError(429, "Slow down", headers=(("Retry-After", "30"),))
        async with TestClient(_failing_app(exc)) as client:
            response = await client.get("/api.json")
        assert response.get_header("retry-after") == "30"

    async def test_passes_results_through(self) -> None:
        app = App()
        app.add_middleware(catch_and_render_errors())
        app.get("/ok")(lambda ctx: "fine")
        async with TestClient(app) as client:
            response = await client.get("/ok")
        assert response.status == 200
        assert response.text == "fine"

    async def test_error_after_send_is_reraised(self) -> None:
        app = App()
        app.add_middleware(catch_and_render_errors())

        async def late_failure(ctx):
            await send_text(ctx.res, 200, "partial")
            raise RuntimeError("too late")

        app.get("/late")(late_failure)
        async with TestClient(app) as client:
            response = await client.get("/late")
        assert response.status == 200
        assert response.text == "partial"


class TestLogRequests:
    def _app(self, handler, fake: FakeLogger) -> App:
        app = App()
        app.effect("logger", lambda config: lambda ctx: fake)
        app.route("get", "/*", middlewares=[log_requests])(handler)
        return app

    async def test_logs_success(self) -> None:
        fake = FakeLogger()
        async with TestClient(self._app(lambda ctx: {"ok": True}, fake)) as client:
            await client.get("/foos?x=1")
        [extra] = fake.extras
        assert extra["req"].url == "/foos?x=1"
        assert extra["res"].status == 200
        assert isinstance(extra["duration"], int)

    async def test_logs_redirect(self) -> None:
        fake = FakeLogger()

        async def redirect(ctx):
            ctx.res.set_header("Location", "https://example.com")
            await ctx.res.send(status=302)

        async with TestClient(self._app(redirect, fake)) as client:
            await client.get("/")
        assert fake.extras[0]["res"].status == 302

    async def test_logs_failure_status(self) -> None:
        fake = FakeLogger()

        async def bad_request(ctx):
            await send_text(ctx.res, 400, "no")

        async with TestClient(self._app(bad_request, fake)) as client:
            await client.get("/")
        assert fake.extras[0]["res"].status == 400

    async def test_logs_unexpected_error(self) -> None:
        fake = FakeLogger()

        def broken(ctx):
            raise RuntimeError("expected in this test")

        async with TestClient(self._app(broken, fake)) as client:
            response = await client.get("/")
        assert response.status == 500
        assert fake.extras[0]["res"].status == 500

    async def test_logs_once_across_fall_through(self) -> None:
        fake = FakeLogger()
        app = App()
        app.effect("logger", lambda config: lambda ctx: fake)
        app.add_middleware(log_requests)
        app.get("/foos")(lambda ctx: None)
        app.get("/foos")(lambda ctx: "second")
        async with TestClient(app) as client:
            response = await client.get("/foos")
        assert response.text == "second"
        assert len(fake.calls) == 1
