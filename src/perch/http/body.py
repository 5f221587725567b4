"""Cached request body helpers.

A body can only be received once, but it is often wanted twice (say,
by a signature-checking middleware and then by the handler). These
helpers read through the request context's ``RequestCache``, so each
representation is produced at most once per request::

    from perch.http import body

    async def create_foo(ctx):
        payload = await body.json(ctx)
        ...

The router itself never touches the body.
"""

import json as json_module
from typing import Any
from urllib.parse import parse_qs

from perch.context import RequestContext
from perch.errors import HTTPError

DEFAULT_LIMIT = 1024 * 1024  # 1 MB

_RAW_KEY = "body:raw"


def body_limit(ctx: RequestContext, limit: int | None = None) -> int:
    """*limit*, else the route's ``max_body_size``, else ``DEFAULT_LIMIT``."""
    if limit is not None:
        return limit
    return int(ctx.config.get("max_body_size", DEFAULT_LIMIT))


async def buffer(ctx: RequestContext, *, limit: int | None = None) -> bytes:
    """The raw body bytes."""
    return await ctx.cache.memoize(_RAW_KEY, lambda: ctx.req.body(limit=body_limit(ctx, limit)))


async def text(ctx: RequestContext, *, limit: int | None = None, encoding: str = "utf-8") -> str:
    """The body decoded as text. Undecodable bodies raise 400."""

    async def decode() -> str:
        raw = await buffer(ctx, limit=limit)
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError as exc:
            raise HTTPError(400, f"Request body is not valid {encoding}") from exc

    return await ctx.cache.memoize(f"body:text:{encoding}", decode)


async def json(ctx: RequestContext, *, limit: int | None = None) -> Any:
    """The body parsed as JSON. Malformed JSON raises 400."""

    async def parse() -> Any:
        raw = await text(ctx, limit=limit)
        try:
            return json_module.loads(raw)
        except json_module.JSONDecodeError as exc:
            raise HTTPError(400, f"Invalid JSON: {exc.msg}") from exc

    return await ctx.cache.memoize("body:json", parse)


async def urlencoded(ctx: RequestContext, *, limit: int | None = None) -> dict[str, Any]:
    """The body parsed as ``application/x-www-form-urlencoded``.

    Single values come back as strings, repeated keys as lists.
    """

    async def parse() -> dict[str, Any]:
        raw = await text(ctx, limit=limit)
        parsed = parse_qs(raw, keep_blank_values=True)
        return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}

    return await ctx.cache.memoize("body:urlencoded", parse)
