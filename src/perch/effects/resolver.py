"""Effect configuration and concurrent per-request resolution."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import anyio

from perch._internal.invoke import invoke
from perch.context import EMPTY, RequestContext
from perch.effects.protocol import EffectBuilder, EffectInstantiator


def configure_effects(
    config: Mapping[str, Any],
    builders: Mapping[str, EffectBuilder],
) -> Mapping[str, EffectInstantiator]:
    """Apply every builder to *config*. Runs once per route at compile time."""
    return MappingProxyType({name: builder(config) for name, builder in builders.items()})


async def resolve_effects(
    instantiators: Mapping[str, EffectInstantiator],
    context: RequestContext,
) -> Mapping[str, Any]:
    """Create every effect for this request, concurrently.

    All instantiators start against the same *context* snapshot, so none
    can observe another's creation order, and total time is bounded by
    the slowest one. If any fails, the rest are cancelled and the
    original exception of the first failure propagates (never an
    exception group). On success the result has exactly the
    instantiators' keys.
    """
    if not instantiators:
        return EMPTY

    resolved: dict[str, Any] = {}
    failures: list[BaseException] = []

    async def _resolve(name: str, instantiate: EffectInstantiator) -> None:
        try:
            resolved[name] = await invoke(instantiate, context)
        except Exception as exc:
            failures.append(exc)
            raise

    try:
        async with anyio.create_task_group() as tg:
            for name, instantiate in instantiators.items():
                tg.start_soon(_resolve, name, instantiate, name=f"effect:{name}")
    except BaseExceptionGroup:
        if failures:
            raise failures[0] from None
        raise

    return MappingProxyType({name: resolved[name] for name in instantiators})
