"""Effect protocols.

An effect is a request-scoped resource (logger, API client, session)
made in two steps:

1. ``EffectBuilder(config)`` runs once per route when the app is
   compiled and returns an instantiator bound to the merged config.
2. ``EffectInstantiator(context)`` runs once per matched request and
   returns the effect, or an awaitable of it.

Any pair of plain callables with these shapes works::

    def clock(config):
        zone = config.get("timezone", "UTC")

        def instantiate(ctx):
            return Clock(zone)

        return instantiate

An instantiator that holds a resource across requests may also define
``async aclose()``; ``App.shutdown`` awaits it once.
"""

from collections.abc import Awaitable, Mapping
from typing import Any, Protocol

from perch.context import RequestContext


class EffectInstantiator(Protocol):
    """Creates one effect for one request (sync or async)."""

    def __call__(self, context: RequestContext) -> Any | Awaitable[Any]: ...


class EffectBuilder(Protocol):
    """Binds an effect to a route's merged config."""

    def __call__(self, config: Mapping[str, Any]) -> EffectInstantiator: ...
