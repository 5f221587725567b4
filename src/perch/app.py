"""Perch application class.

Mutable during setup (route registration, middleware, effects).
Frozen at runtime when ``__call__()`` is first invoked.
"""

import threading
from collections.abc import Callable, Sequence
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch._internal.types import Handler, Hook
from perch.config import AppConfig
from perch.effects.protocol import EffectBuilder
from perch.middleware.protocol import Middleware
from perch.routing.compose import RouteLike, configure_routes
from perch.routing.dispatcher import Dispatcher, create_app
from perch.routing.mount import mount_at
from perch.routing.route import Route
from perch.server.handler import handle_request


class App:
    """The perch application.

    Routes registered here, and route lists added with ``add_routes`` or
    ``mount``, are composed with the app-wide settings, effects and
    middleware when the app freezes::

        app = App(AppConfig(debug=True))
        app.settings["log_level"] = "debug"
        app.effect("logger", logger)
        app.add_middleware(log_requests)

        @app.get("/foos/:fooId")
        def show_foo(ctx):
            return {"id": ctx.params["fooId"]}

        app.mount("/admin", admin_routes)
        app.add_routes(not_found)

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app.
    """

    __slots__ = (
        "_dispatcher",
        "_effects",
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_pending_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "settings",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        # Application config: every route sees it as ctx.config
        self.settings: dict[str, Any] = dict(settings or {})
        self._pending_routes: list[RouteLike] = []
        self._middleware_list: list[Middleware] = []
        self._effects: dict[str, EffectBuilder] = {}
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._dispatcher: Dispatcher | None = None

    # -- Route registration --

    def route(
        self,
        method: str,
        pattern: str,
        *,
        config: dict[str, Any] | None = None,
        effects: dict[str, EffectBuilder] | None = None,
        middlewares: Sequence[Middleware] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            method: HTTP method, or ``"all"`` for every method.
            pattern: Path pattern, e.g. ``/foos/:fooId``.
            config: Route config, merged over ``app.settings``.
            effects: Route effects, merged over the app-wide ones.
            middlewares: Run inside the app-wide middleware.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            self._pending_routes.append(
                Route(
                    method=method,
                    pattern=pattern,
                    handler=func,
                    config=config or {},
                    effects=effects or {},
                    middlewares=tuple(middlewares),
                )
            )
            return func

        return decorator

    def get(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("get", pattern, **kwargs)

    def post(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("post", pattern, **kwargs)

    def put(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("put", pattern, **kwargs)

    def patch(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("patch", pattern, **kwargs)

    def delete(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("delete", pattern, **kwargs)

    def add_routes(self, routes: Sequence[RouteLike]) -> None:
        """Append a list of routes (``Route`` objects or mappings), in order."""
        self._check_not_frozen()
        self._pending_routes.extend(routes)

    def mount(self, prefix: str, routes: Sequence[RouteLike]) -> None:
        """Append *routes* with their patterns moved under *prefix*."""
        self.add_routes(mount_at(prefix, routes))

    # -- Middleware and effects --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware around every route (first added is outermost)."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    def effect(self, name: str, builder: EffectBuilder) -> None:
        """Make ``ctx.effects[name]`` available to every route."""
        self._check_not_frozen()
        self._effects[name] = builder

    # -- Lifecycle hooks --

    def on_startup(self, func: Hook) -> Hook:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.

        Usage::

            @app.on_startup
            async def setup():
                await db.connect()
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Runtime --

    @property
    def dispatcher(self) -> Dispatcher:
        """The compiled route table (freezes the app)."""
        self._ensure_frozen()
        assert self._dispatcher is not None
        return self._dispatcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self.dispatcher,
            debug=self.config.debug,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (so broken routes fail here), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        await invoke(hook)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def shutdown(self) -> None:
        """Run shutdown hooks, then close effects that hold resources.

        Any effect instantiator with an ``aclose()`` coroutine method (the
        ``api_client`` effect, for one) is closed once, after the hooks.
        """
        for hook in self._shutdown_hooks:
            await invoke(hook)
        if self._dispatcher is None:
            return
        closed: set[int] = set()
        for compiled in self._dispatcher.routes:
            for instantiator in compiled.instantiators.values():
                aclose = getattr(instantiator, "aclose", None)
                if aclose is None or id(instantiator) in closed:
                    continue
                closed.add(id(instantiator))
                await aclose()

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        routes = configure_routes(
            self._pending_routes,
            config={**self._defaults(), **self.settings},
            effects=self._effects,
            middlewares=self._middleware_list,
        )
        self._dispatcher = create_app(routes)
        self._frozen = True

    def _defaults(self) -> dict[str, Any]:
        """Route config seeded from ``AppConfig``; ``settings`` override it."""
        return {
            "log_level": self.config.log_level,
            "log_format": self.config.log_format,
            "max_body_size": self.config.max_body_size,
        }

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and effects before the first request."
            )
            raise RuntimeError(msg)
