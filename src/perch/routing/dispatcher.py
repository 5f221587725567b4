"""Dispatcher — compile resolved routes once, then route each request.

Per request the dispatcher moves through::

    SCANNING -> MATCHED -> EFFECTS_RESOLVING -> HANDLING -> DONE
    SCANNING -> EXHAUSTED

Routes are scanned in declaration order. The method is checked before
the (more expensive) path match. A route whose pattern consumes the
whole pathname is dispatched as soon as it is reached; a route that only
matches a leading part of the pathname (``/foos/:fooId`` against
``/foos/1/bars/2``) is held back and tried, in declaration order, only
after the scan found no exact route that handled the request.

A request is handled once a handler returns something other than
``None`` or the response writer reports its headers as sent. Errors from
effects, middleware or handlers are not caught here.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from perch._internal.types import ComposedHandler
from perch.context import RequestCache, RequestContext
from perch.effects.protocol import EffectInstantiator
from perch.effects.resolver import configure_effects, resolve_effects
from perch.http.query import QueryParams
from perch.http.response import ResponseState
from perch.middleware.protocol import apply_middlewares
from perch.routing.compose import RouteLike, configure_routes
from perch.routing.pattern import PathMatch, PathMatcher, compile_pattern
from perch.routing.route import Route

logger = logging.getLogger("perch.dispatch")


@dataclass(frozen=True, slots=True)
class CompiledRoute:
    """A route ready to serve: matcher, composed handler, configured effects."""

    route: Route
    method: str | None  # None matches every method
    config: Mapping[str, Any]
    matcher: PathMatcher
    handler: ComposedHandler
    instantiators: Mapping[str, EffectInstantiator]

    def accepts(self, method: str) -> bool:
        """Whether this route serves *method* (already upper-cased)."""
        return self.method is None or self.method == method


def compile_route(route: Route) -> CompiledRoute:
    """Compile one resolved route."""
    return CompiledRoute(
        route=route,
        method=None if route.matches_all_methods else route.method_upper,
        config=route.config,
        matcher=compile_pattern(route.pattern),
        handler=apply_middlewares(route.handler, route.middlewares),
        instantiators=configure_effects(route.config, route.effects),
    )


def split_url(url: str) -> tuple[str, QueryParams]:
    """Split a relative request URL into ``(pathname, query)``."""
    without_fragment = url.split("#", 1)[0]
    pathname, _, query_string = without_fragment.partition("?")
    return pathname or "/", QueryParams(query_string)


def response_sent(res: Any) -> bool:
    """Whether *res* has already sent its headers.

    Understands ``ResponseWriter.state`` and falls back to a plain
    ``headers_sent`` flag for other response objects.
    """
    state = getattr(res, "state", None)
    if isinstance(state, ResponseState):
        return state is ResponseState.SENT
    return bool(getattr(res, "headers_sent", False))


class Dispatcher:
    """A compiled route table behaving as ``async (req, res) -> result | None``.

    The table is immutable and shared by all concurrent requests;
    everything per-request lives in the ``RequestContext``.

    Usage::

        dispatch = create_app(configure_routes(routes))
        result = await dispatch(req, res)
    """

    __slots__ = ("_routes",)

    def __init__(self, routes: Sequence[Route]) -> None:
        self._routes: tuple[CompiledRoute, ...] = tuple(compile_route(r) for r in routes)

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        return self._routes

    def __len__(self) -> int:
        return len(self._routes)

    async def __call__(self, req: Any, res: Any) -> Any:
        pathname, query = split_url(req.url)
        method = req.method.upper()
        base = RequestContext(req=req, res=res, cache=RequestCache())
        deferred: list[tuple[CompiledRoute, PathMatch]] = []

        for compiled in self._routes:
            if not compiled.accepts(method):
                continue
            match = compiled.matcher.match(pathname)
            if match is None:
                continue
            if not match.exact:
                deferred.append((compiled, match))
                continue
            handled, result = await self._run(compiled, match, base, query, pathname)
            if handled:
                return result

        for compiled, match in deferred:
            handled, result = await self._run(compiled, match, base, query, pathname)
            if handled:
                return result

        logger.debug("No route handled %s %s", method, pathname)
        return None

    async def _run(
        self,
        compiled: CompiledRoute,
        match: PathMatch,
        base: RequestContext,
        query: QueryParams,
        pathname: str,
    ) -> tuple[bool, Any]:
        logger.debug(
            "%s %s matched %s %s",
            base.req.method,
            pathname,
            compiled.route.method,
            compiled.route.pattern,
        )
        context = base.with_url(query=query, params=match.params, pathname=pathname)
        context = context.with_config(compiled.config)
        effects = await resolve_effects(compiled.instantiators, context)
        result = await compiled.handler(context.with_effects(effects))
        return result is not None or response_sent(base.res), result


def create_app(routes: Sequence[RouteLike]) -> Dispatcher:
    """Compile *routes* into a ``Dispatcher``.

    The routes go through ``configure_routes`` without defaults first
    (a no-op for already resolved routes), so mappings are accepted and
    malformed declarations fail here, at startup.
    """
    return Dispatcher(configure_routes(routes))
