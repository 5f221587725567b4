"""Per-request context.

The dispatcher builds one ``RequestContext`` per matched route and grows
it in stages, each stage returning a new object::

    base    {req, res, cache}
    url     + {query, params, pathname}
    config  + {config}
    effects + {effects}

Effect instantiators see the context before the last stage, so
``ctx.effects`` is empty while effects are being created.

``RequestCache`` holds whatever a request wants to remember for its own
lifetime (parsed bodies, mostly). It is created once per request and
shared by every context built for that request, so a body parsed by
middleware on one route is still cached if dispatch falls through to the
next route.
"""

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from perch.http.query import QueryParams

EMPTY: Mapping[str, Any] = MappingProxyType({})


class RequestCache:
    """Explicit per-request key/value cache.

    Usage::

        payload = await ctx.cache.memoize("body:json", lambda: parse(ctx.req))
    """

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    async def memoize(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for *key*, awaiting *factory* on first use."""
        if key in self._values:
            return self._values[key]
        value = await factory()
        self._values[key] = value
        return value

    def __repr__(self) -> str:
        return f"<RequestCache keys={sorted(self._values)!r}>"


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Everything a middleware or handler knows about the current request.

    Handlers receive it as their only argument::

        def show_foo(ctx):
            return {"id": ctx.params["fooId"], "page": ctx.query.get("page")}
    """

    req: Any
    res: Any
    cache: RequestCache = field(default_factory=RequestCache)
    query: QueryParams = field(default_factory=QueryParams)
    params: Mapping[str, str] = field(default_factory=lambda: EMPTY)
    pathname: str = ""
    config: Mapping[str, Any] = field(default_factory=lambda: EMPTY)
    effects: Mapping[str, Any] = field(default_factory=lambda: EMPTY)

    def with_url(
        self,
        *,
        query: QueryParams,
        params: Mapping[str, str],
        pathname: str,
    ) -> "RequestContext":
        """Return a copy carrying the matched URL data."""
        return replace(
            self,
            query=query,
            params=MappingProxyType(dict(params)),
            pathname=pathname,
        )

    def with_config(self, config: Mapping[str, Any]) -> "RequestContext":
        """Return a copy carrying the route's merged config."""
        return replace(self, config=config)

    def with_effects(self, effects: Mapping[str, Any]) -> "RequestContext":
        """Return a copy carrying the resolved effects."""
        return replace(self, effects=MappingProxyType(dict(effects)))
