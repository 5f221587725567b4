"""Routing — patterns, composition, mounting and dispatch.

Routes are plain data. ``configure_routes`` folds shared config,
effects and middlewares into each route, ``mount_at`` moves routes
under a prefix, and ``create_app`` compiles the final list into an
immutable ``Dispatcher``.
"""

from perch.routing.compose import configure_routes, create_router
from perch.routing.dispatcher import CompiledRoute, Dispatcher, create_app
from perch.routing.mount import mount_at
from perch.routing.pattern import PathMatch, PathMatcher, compile_pattern
from perch.routing.route import ALL, Route

__all__ = [
    "ALL",
    "CompiledRoute",
    "Dispatcher",
    "PathMatch",
    "PathMatcher",
    "Route",
    "compile_pattern",
    "configure_routes",
    "create_app",
    "create_router",
    "mount_at",
]
