"""Tests for perch.routing.dispatcher — route selection and dispatch."""

from dataclasses import dataclass, field
from typing import Any

import pytest

from perch.errors import ConfigurationError
from perch.http.response import ResponseState, ResponseWriter
from perch.routing.compose import configure_routes, create_router
from perch.routing.dispatcher import Dispatcher, create_app, split_url
from perch.routing.mount import mount_at
from perch.routing.route import Route


@dataclass
class FakeRequest:
    method: str
    url: str


@dataclass
class FakeResponse:
    headers_sent: bool = False
    sent: list[Any] = field(default_factory=list)


def _writer() -> tuple[ResponseWriter, list[dict]]:
    messages: list[dict] = []

    async def send(message: dict) -> None:
        messages.append(message)

    return ResponseWriter(send), messages


def returns(value: Any):
    def handler(ctx):
        return value

    return handler


def echo(name: str):
    def handler(ctx):
        return {"route": name, "params": dict(ctx.params), "query": dict(ctx.query)}

    return handler


class TestSplitUrl:
    def test_path_and_query(self) -> None:
        pathname, query = split_url("/foos?page=2&tag=a")
        assert pathname == "/foos"
        assert query == {"page": "2", "tag": "a"}

    def test_fragment_dropped(self) -> None:
        pathname, query = split_url("/foos?page=2#top")
        assert pathname == "/foos"
        assert query == {"page": "2"}

    def test_empty(self) -> None:
        pathname, query = split_url("")
        assert pathname == "/"
        assert len(query) == 0


class TestRouteSelection:
    async def test_first_match_wins(self) -> None:
        dispatch = create_app([Route("get", "/a", echo("one")), Route("get", "/a", echo("two"))])
        result = await dispatch(FakeRequest("GET", "/a"), FakeResponse())
        assert result["route"] == "one"

    async def test_params_and_query(self) -> None:
        dispatch = create_app([Route("get", "/foos/:fooId", echo("foo"))])
        result = await dispatch(FakeRequest("GET", "/foos/7?expand=bars"), FakeResponse())
        assert result == {"route": "foo", "params": {"fooId": "7"}, "query": {"expand": "bars"}}

    async def test_deeper_route_beats_prefix_match(self) -> None:
        dispatch = create_app(
            [
                Route("get", "/foos/:fooId", echo("h1")),
                Route("get", "/foos/:fooId/bars/:barId", echo("h2")),
            ]
        )
        result = await dispatch(FakeRequest("GET", "/foos/1/bars/2"), FakeResponse())
        assert result["route"] == "h2"
        assert result["params"] == {"fooId": "1", "barId": "2"}

    async def test_prefix_match_used_when_nothing_exact(self) -> None:
        dispatch = create_app([Route("get", "/docs", echo("docs"))])
        result = await dispatch(FakeRequest("GET", "/docs/intro"), FakeResponse())
        assert result["route"] == "docs"

    async def test_method_case_insensitive(self) -> None:
        dispatch = create_app([Route("Post", "/foos", returns("created"))])
        assert await dispatch(FakeRequest("post", "/foos"), FakeResponse()) == "created"

    async def test_method_mismatch_skips_matcher(self) -> None:
        calls = []

        class CountingHandler:
            def __call__(self, ctx):
                calls.append(ctx.pathname)
                return "post"

        dispatch = create_app(
            [Route("post", "/foos", CountingHandler()), Route("get", "/foos", returns("get"))]
        )
        [post_route, _] = dispatch.routes
        original = post_route.matcher

        class Spy:
            used = 0

            def match(self, pathname):
                Spy.used += 1
                return original.match(pathname)

        object.__setattr__(post_route, "matcher", Spy())
        assert await dispatch(FakeRequest("GET", "/foos"), FakeResponse()) == "get"
        assert Spy.used == 0
        assert calls == []

    async def test_no_match_returns_none(self) -> None:
        dispatch = create_app([Route("get", "/foos", returns("x"))])
        assert await dispatch(FakeRequest("GET", "/bars"), FakeResponse()) is None
        assert await dispatch(FakeRequest("DELETE", "/foos"), FakeResponse()) is None

    async def test_catch_all_appended_last(self) -> None:
        dispatch = create_app(
            [
                Route("get", "/foos", returns("foos")),
                Route("post", "/bars", returns("bars")),
                Route("all", "/*", returns("not found")),
            ]
        )
        assert await dispatch(FakeRequest("GET", "/foos"), FakeResponse()) == "foos"
        assert await dispatch(FakeRequest("PUT", "/foos"), FakeResponse()) == "not found"
        assert await dispatch(FakeRequest("GET", "/bars"), FakeResponse()) == "not found"
        assert await dispatch(FakeRequest("PATCH", "/x/y/z"), FakeResponse()) == "not found"

    async def test_prefix_route_before_catch_all(self) -> None:
        dispatch = create_app(
            configure_routes(
                [
                    {"method": "get", "pattern": "/static", "handler": returns("static")},
                    {"method": "all", "pattern": "/*", "handler": returns("not found")},
                ]
            )
        )
        assert await dispatch(FakeRequest("GET", "/static/app.css"), FakeResponse()) == "static"
        assert await dispatch(FakeRequest("GET", "/static"), FakeResponse()) == "static"
        assert await dispatch(FakeRequest("POST", "/static/app.css"), FakeResponse()) == "not found"
        assert await dispatch(FakeRequest("GET", "/other"), FakeResponse()) == "not found"

    async def test_exact_route_after_catch_all_still_wins(self) -> None:
        dispatch = create_app(
            [Route("all", "/*", returns("not found")), Route("get", "/foos", returns("foos"))]
        )
        assert await dispatch(FakeRequest("GET", "/foos"), FakeResponse()) == "foos"

    async def test_mounted_routes(self) -> None:
        routes = [
            *configure_routes(mount_at("/prefix", [Route("get", "/mounted", returns("h"))])),
            *configure_routes([Route("get", "/unmounted", returns("h2"))]),
        ]
        dispatch = create_app(routes)
        assert await dispatch(FakeRequest("GET", "/prefix/mounted"), FakeResponse()) == "h"
        assert await dispatch(FakeRequest("GET", "/unmounted"), FakeResponse()) == "h2"
        assert await dispatch(FakeRequest("GET", "/mounted"), FakeResponse()) is None

    async def test_declined_request_falls_through(self) -> None:
        dispatch = create_app(
            [Route("get", "/foos", returns(None)), Route("get", "/foos", returns("second"))]
        )
        assert await dispatch(FakeRequest("GET", "/foos"), FakeResponse()) == "second"

    async def test_idempotent(self) -> None:
        routes = create_router(
            config={"a": 1},
            routes=[Route("get", "/foos/:fooId", echo("foo"))],
        )
        first = await create_app(routes)(FakeRequest("GET", "/foos/1?x=y"), FakeResponse())
        second = await create_app(routes)(FakeRequest("GET", "/foos/1?x=y"), FakeResponse())
        assert first == second


class TestHandledDetection:
    async def test_headers_sent_counts_as_handled(self) -> None:
        async def writes(ctx):
            await ctx.res.send("hi", status=201)

        res, messages = _writer()
        dispatch = create_app([Route("get", "/", writes), Route("get", "/", returns("late"))])
        assert await dispatch(FakeRequest("GET", "/"), res) is None
        assert res.state is ResponseState.SENT
        assert messages[0]["status"] == 201

    async def test_plain_headers_sent_flag(self) -> None:
        def writes(ctx):
            ctx.res.headers_sent = True

        res = FakeResponse()
        dispatch = create_app([Route("get", "/", writes), Route("get", "/", returns("late"))])
        assert await dispatch(FakeRequest("GET", "/"), res) is None
        assert res.headers_sent is True

    async def test_falsy_result_is_handled(self) -> None:
        dispatch = create_app([Route("get", "/", returns("")), Route("get", "/", returns("x"))])
        assert await dispatch(FakeRequest("GET", "/"), FakeResponse()) == ""


class TestContextAndEffects:
    async def test_context_contents(self) -> None:
        seen = {}

        def handler(ctx):
            seen.update(
                pathname=ctx.pathname,
                config=dict(ctx.config),
                effects=dict(ctx.effects),
                req=ctx.req,
            )
            return "ok"

        req = FakeRequest("GET", "/foos?x=1")
        routes = configure_routes(
            [Route("get", "/foos", handler, config={"b": 2})],
            config={"a": 1},
            effects={"clock": lambda config: lambda ctx: "tick"},
        )
        await create_app(routes)(req, FakeResponse())
        assert seen == {
            "pathname": "/foos",
            "config": {"a": 1, "b": 2},
            "effects": {"clock": "tick"},
            "req": req,
        }

    async def test_effect_failure_skips_handler(self) -> None:
        ran = []

        async def boom(ctx):
            raise LookupError("boom")

        def handler(ctx):
            ran.append(True)
            return "ok"

        dispatch = create_app(
            [
                Route(
                    "get",
                    "/",
                    handler,
                    effects={"a": lambda config: lambda ctx: 1, "b": lambda config: boom},
                )
            ]
        )
        with pytest.raises(LookupError, match="boom"):
            await dispatch(FakeRequest("GET", "/"), FakeResponse())
        assert ran == []

    async def test_handler_error_propagates(self) -> None:
        def handler(ctx):
            raise RuntimeError("nope")

        dispatch = create_app([Route("get", "/", handler), Route("get", "/", returns("x"))])
        with pytest.raises(RuntimeError, match="nope"):
            await dispatch(FakeRequest("GET", "/"), FakeResponse())

    async def test_effects_built_once_per_compile(self) -> None:
        builds = []

        def builder(config):
            builds.append(config)
            return lambda ctx: "value"

        dispatch = create_app([Route("get", "/", returns("ok"), effects={"e": builder})])
        for _ in range(3):
            await dispatch(FakeRequest("GET", "/"), FakeResponse())
        assert len(builds) == 1

    async def test_cache_shared_across_fall_through(self) -> None:
        def first(ctx):
            ctx.cache.set("seen", "first")
            return None

        def second(ctx):
            return ctx.cache.get("seen")

        dispatch = create_app([Route("get", "/", first), Route("get", "/", second)])
        assert await dispatch(FakeRequest("GET", "/"), FakeResponse()) == "first"


class TestMiddlewareOrder:
    async def test_first_declared_is_outermost(self) -> None:
        trail: list[str] = []

        def tracer(name: str):
            async def mw(ctx, next):
                trail.append(f"{name}:in")
                result = await next(ctx)
                trail.append(f"{name}:out")
                return f"{name}({result})"

            return mw

        def handler(ctx):
            trail.append("handler")
            return "h"

        routes = configure_routes(
            [Route("get", "/", handler, middlewares=(tracer("route"),))],
            middlewares=[tracer("outer"), tracer("inner")],
        )
        result = await create_app(routes)(FakeRequest("GET", "/"), FakeResponse())
        assert result == "outer(inner(route(h)))"
        assert trail == [
            "outer:in",
            "inner:in",
            "route:in",
            "handler",
            "route:out",
            "inner:out",
            "outer:out",
        ]

    async def test_middleware_can_short_circuit(self) -> None:
        async def deny(ctx, next):
            return "denied"

        dispatch = create_app([Route("get", "/", returns("ok"), middlewares=(deny,))])
        assert await dispatch(FakeRequest("GET", "/"), FakeResponse()) == "denied"

    async def test_middleware_sees_effects(self) -> None:
        async def mw(ctx, next):
            return ctx.effects["name"]

        dispatch = create_app(
            [
                Route(
                    "get",
                    "/",
                    returns("ok"),
                    effects={"name": lambda config: lambda ctx: "effect"},
                    middlewares=(mw,),
                )
            ]
        )
        assert await dispatch(FakeRequest("GET", "/"), FakeResponse()) == "effect"


class TestCreateApp:
    def test_accepts_mappings(self) -> None:
        dispatch = create_app([{"method": "get", "pattern": "/", "handler": returns("x")}])
        assert isinstance(dispatch, Dispatcher)
        assert len(dispatch) == 1

    def test_invalid_route_fails_at_compile(self) -> None:
        with pytest.raises(ConfigurationError):
            create_app([Route("get", "no-slash", returns("x"))])
