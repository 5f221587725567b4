"""Version endpoints for deployed services.

``version_routes`` returns two routes:

    GET /version.json  -> {"name", "version", "commit", "builtAt", "environment"}
    GET /version       -> the same, as aligned plain text

``build`` usually comes from a ``build.json`` written by CI; missing
fields read ``n/a``. ``environment`` defaults to the first label of the
host name.
"""

import socket
from collections.abc import Mapping
from typing import Any

from perch.context import RequestContext
from perch.routing.route import Route
from perch.send import send_json, send_text

_UNKNOWN = "n/a"


def render_version(info: Mapping[str, Any]) -> str:
    return (
        f" project: {info['name']}\n"
        f" version: v{info['version']}\n"
        f"git hash: {info['commit']}\n"
        f"   built: {info['builtAt']}\n"
        f"     tag: {info['environment']}\n"
    )


def version_info(
    name: str,
    version: str,
    build: Mapping[str, Any] | None = None,
    *,
    environment: str | None = None,
) -> dict[str, Any]:
    build = build or {}
    return {
        "commit": build.get("commit", _UNKNOWN),
        "builtAt": build.get("builtAt", _UNKNOWN),
        # "@scope/name" -> "name"
        "name": name.rsplit("/", 1)[-1],
        "version": version,
        "environment": environment or socket.gethostname().split(".", 1)[0],
    }


def version_routes(
    name: str,
    version: str,
    build: Mapping[str, Any] | None = None,
    *,
    environment: str | None = None,
) -> list[Route]:
    """Routes serving the version of the running service.

    Usage::

        app.add_routes(version_routes("@acme/foos", "1.4.0", {"commit": "abc123"}))
    """
    info = version_info(name, version, build, environment=environment)
    text = render_version(info)

    async def version_json(ctx: RequestContext) -> None:
        await send_json(ctx.res, 200, info)

    async def version_text(ctx: RequestContext) -> None:
        await send_text(ctx.res, 200, text)

    return [
        Route(method="get", pattern="/version.json", handler=version_json),
        Route(method="get", pattern="/version", handler=version_text),
    ]
