"""Route composition — merge router-level defaults into each route.

``configure_routes`` (and its keyword-only twin ``create_router``) takes
route declarations plus shared config, effects and middlewares and
returns a flat list of self-contained routes ready for ``create_app``.
Because the output is just routes again, lists can be remixed freely::

    api = configure_routes(api_routes, config={"pageSize": 20})
    admin = configure_routes(mount_at("/admin", admin_routes), middlewares=[require_admin])
    app = create_app([*api, *admin, *not_found])
"""

from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Any, TypeAlias

from perch.errors import ConfigurationError
from perch.routing.pattern import parse_pattern
from perch.routing.route import METHOD_TOKEN, Route

RouteLike: TypeAlias = Route | Mapping[str, Any]


def configure_routes(
    routes: Sequence[RouteLike],
    *,
    config: Mapping[str, Any] | None = None,
    effects: Mapping[str, Callable[..., Any]] | None = None,
    middlewares: Sequence[Callable[..., Any]] | None = None,
) -> list[Route]:
    """Resolve *routes* against router-level defaults.

    For each route, ``config`` and ``effects`` are shallow-merged with the
    route's own values winning, and ``middlewares`` are the router-level
    ones followed by the route's. Inputs are never mutated and output
    order matches input order.

    Raises ``ConfigurationError`` describing the first malformed input.
    """
    base_config = _check_mapping(config, "Router config")
    base_effects = _check_effects(effects, "Router effects")
    base_middlewares = _check_middlewares(middlewares, "Router middlewares")

    if isinstance(routes, (str, bytes, Mapping)) or not isinstance(routes, Sequence):
        msg = f"Routes must be a sequence of routes, got {type(routes).__name__}."
        raise ConfigurationError(msg)

    resolved: list[Route] = []
    for index, declared in enumerate(routes):
        route = _coerce(declared, index)
        where = f"Route #{index} ({route.method!r} {route.pattern!r})"
        _check_route(route, where)

        route_config = _check_mapping(route.config, f"{where} config")
        route_effects = _check_effects(route.effects, f"{where} effects")
        route_middlewares = _check_middlewares(route.middlewares, f"{where} middlewares")

        resolved.append(
            Route(
                method=route.method,
                pattern=route.pattern,
                handler=route.handler,
                config=MappingProxyType({**base_config, **route_config}),
                effects=MappingProxyType({**base_effects, **route_effects}),
                middlewares=(*base_middlewares, *route_middlewares),
            )
        )
    return resolved


def create_router(
    *,
    routes: Sequence[RouteLike] = (),
    config: Mapping[str, Any] | None = None,
    effects: Mapping[str, Callable[..., Any]] | None = None,
    middlewares: Sequence[Callable[..., Any]] | None = None,
) -> list[Route]:
    """Keyword-only form of ``configure_routes``."""
    return configure_routes(routes, config=config, effects=effects, middlewares=middlewares)


# -- Validation --


def _coerce(declared: object, index: int) -> Route:
    if isinstance(declared, Route):
        return declared
    if isinstance(declared, Mapping):
        try:
            return Route.from_mapping(declared)
        except ConfigurationError as exc:
            msg = f"Route #{index}: {exc}"
            raise ConfigurationError(msg) from exc
    msg = f"Route #{index} must be a Route or a mapping, got {type(declared).__name__}."
    raise ConfigurationError(msg)


def _check_route(route: Route, where: str) -> None:
    if not isinstance(route.method, str) or not route.method.strip():
        msg = f"{where}: method must be a non-empty string."
        raise ConfigurationError(msg)
    if METHOD_TOKEN.fullmatch(route.method) is None:
        msg = f"{where}: {route.method!r} is not a valid HTTP method token."
        raise ConfigurationError(msg)
    try:
        parse_pattern(route.pattern)
    except ConfigurationError as exc:
        msg = f"{where}: {exc}"
        raise ConfigurationError(msg) from exc
    if not callable(route.handler):
        msg = f"{where}: handler must be callable, got {type(route.handler).__name__}."
        raise ConfigurationError(msg)


def _check_mapping(value: object, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        msg = f"{what} must be a mapping, got {type(value).__name__}."
        raise ConfigurationError(msg)
    return value


def _check_effects(value: object, what: str) -> Mapping[str, Callable[..., Any]]:
    effects = _check_mapping(value, what)
    for name, builder in effects.items():
        if not isinstance(name, str) or not name:
            msg = f"{what}: effect names must be non-empty strings, got {name!r}."
            raise ConfigurationError(msg)
        if not callable(builder):
            msg = f"{what}: effect {name!r} must be callable, got {type(builder).__name__}."
            raise ConfigurationError(msg)
    return effects


def _check_middlewares(value: object, what: str) -> tuple[Callable[..., Any], ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        msg = f"{what} must be a sequence, got {type(value).__name__}."
        raise ConfigurationError(msg)
    for position, middleware in enumerate(value):
        if not callable(middleware):
            msg = f"{what}: item #{position} must be callable, got {type(middleware).__name__}."
            raise ConfigurationError(msg)
    return tuple(value)
