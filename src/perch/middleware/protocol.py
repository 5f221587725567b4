"""Middleware protocol and chain composition.

A middleware is any callable matching::

    async def my_mw(ctx: RequestContext, next: Next) -> Any: ...

No base class required. It may inspect or replace the context, call
``next`` (or not), and transform the result. Middlewares listed first
wrap everything after them, so the first one is outermost.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, TypeAlias

from perch._internal.invoke import invoke
from perch._internal.types import ComposedHandler, Handler
from perch.context import RequestContext

# The rest of the chain, ending in the route handler
Next: TypeAlias = Callable[[RequestContext], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for perch middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx, next):
            start = time.monotonic()
            try:
                return await next(ctx)
            finally:
                ctx.effects["logger"].info("took %.3fs", time.monotonic() - start)

        # Class middleware
        class RequireHeader:
            def __init__(self, name): self.name = name
            async def __call__(self, ctx, next):
                if self.name not in ctx.req.headers:
                    raise HTTPError(400, f"Missing {self.name}")
                return await next(ctx)
    """

    async def __call__(self, ctx: RequestContext, next: Next) -> Any: ...


def apply_middlewares(handler: Handler, middlewares: Sequence[Middleware]) -> ComposedHandler:
    """Wrap *handler* in *middlewares*, first one outermost.

    Composition happens once, when a route is compiled; the returned
    coroutine function is reused for every request.
    """

    async def endpoint(ctx: RequestContext) -> Any:
        return await invoke(handler, ctx)

    chain: ComposedHandler = endpoint
    for middleware in reversed(middlewares):
        chain = _link(middleware, chain)
    return chain


def _link(middleware: Middleware, next_: ComposedHandler) -> ComposedHandler:
    async def call(ctx: RequestContext) -> Any:
        return await invoke(middleware, ctx, next_)

    return call
