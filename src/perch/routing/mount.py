"""Mounting — move a set of routes under a path prefix."""

from collections.abc import Mapping, Sequence
from typing import Any

from perch.errors import ConfigurationError
from perch.routing.compose import RouteLike
from perch.routing.route import Route

_PLACEHOLDER_CHARS = frozenset(":*()?")


def mount_at(prefix: str, routes: Sequence[RouteLike]) -> list[RouteLike]:
    """Return copies of *routes* whose pattern is ``prefix + pattern``.

    Nothing else about a route changes; mappings stay mappings. The
    prefix must be a plain path: captures in a prefix could collide with
    the routes' own parameter names, so they are rejected::

        mount_at("/admin", routes)        # ok
        mount_at("/orgs/:orgId", routes)  # ConfigurationError
    """
    if not isinstance(prefix, str):
        msg = f"Mount prefix must be a string, got {type(prefix).__name__}."
        raise ConfigurationError(msg)
    if not prefix.startswith("/"):
        msg = f"Mount prefix {prefix!r} must start with '/'."
        raise ConfigurationError(msg)
    found = _PLACEHOLDER_CHARS.intersection(prefix)
    if found:
        msg = (
            f"Mount prefix {prefix!r} must not contain parameters or wildcards "
            f"(found {' '.join(sorted(found))})."
        )
        raise ConfigurationError(msg)

    return [_prefixed(prefix, route, index) for index, route in enumerate(routes)]


def _prefixed(prefix: str, route: Any, index: int) -> RouteLike:
    if isinstance(route, Route):
        return route.with_pattern(prefix + _pattern_of(route.pattern, index))
    if isinstance(route, Mapping):
        if "pattern" not in route:
            msg = f"Route #{index} has no pattern to mount."
            raise ConfigurationError(msg)
        return {**route, "pattern": prefix + _pattern_of(route["pattern"], index)}
    msg = f"Route #{index} must be a Route or a mapping, got {type(route).__name__}."
    raise ConfigurationError(msg)


def _pattern_of(pattern: object, index: int) -> str:
    if not isinstance(pattern, str):
        msg = f"Route #{index}: pattern must be a string, got {type(pattern).__name__}."
        raise ConfigurationError(msg)
    return pattern
