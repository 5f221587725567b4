"""Perch — composable routing and middleware for async Python services.

Routes are plain data: a method, a path pattern, a handler, plus the
config, effects and middleware that apply to it. Lists of routes are
composed with shared defaults, mounted under prefixes and concatenated,
then compiled once into a dispatcher.

Basic usage::

    from perch import App, create_router
    from perch.apps import not_found

    def show_foo(ctx):
        return {"id": ctx.params["fooId"]}

    routes = create_router(
        config={"pageSize": 20},
        routes=[{"method": "get", "pattern": "/foos/:fooId", "handler": show_foo}],
    )

    app = App()
    app.add_routes([*routes, *not_found])

Effects (``pip install perch[api,session]``)::

    from perch.effects import api_client, logger, session
"""

import importlib

__version__ = "0.1.0"
__all__ = [
    "ALL",
    "App",
    "AppConfig",
    "ConfigParam",
    "ConfigurationError",
    "HTTPError",
    "NotFound",
    "PerchError",
    "Redirect",
    "Request",
    "RequestContext",
    "Response",
    "ResponseAlreadySent",
    "ResponseState",
    "ResponseWriter",
    "Route",
    "configure_routes",
    "create_app",
    "create_router",
    "load_config",
    "load_config_from_path",
    "mount_at",
]

# Public name -> defining module
_EXPORTS = {
    "ALL": "perch.routing.route",
    "App": "perch.app",
    "AppConfig": "perch.config",
    "ConfigParam": "perch.config",
    "ConfigurationError": "perch.errors",
    "HTTPError": "perch.errors",
    "NotFound": "perch.errors",
    "PerchError": "perch.errors",
    "Redirect": "perch.http.response",
    "Request": "perch.http.request",
    "RequestContext": "perch.context",
    "Response": "perch.http.response",
    "ResponseAlreadySent": "perch.errors",
    "ResponseState": "perch.http.response",
    "ResponseWriter": "perch.http.response",
    "Route": "perch.routing.route",
    "configure_routes": "perch.routing.compose",
    "create_app": "perch.routing.dispatcher",
    "create_router": "perch.routing.compose",
    "load_config": "perch.config",
    "load_config_from_path": "perch.config",
    "mount_at": "perch.routing.mount",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    module_name = _EXPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    return getattr(importlib.import_module(module_name), name)
